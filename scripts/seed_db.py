"""
Seed script for the configured complaint store.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured store: python scripts/seed_db.py --apply
  - Force Firestore even if STORE_BACKEND=memory: python scripts/seed_db.py --apply --backend firestore

Behavior:
  - Builds the demo complaints (timestamps relative to now).
  - Writes each complaint that is not already present.

NOTE: When applying to real Firestore, ensure `FIREBASE_CREDENTIALS_PATH` is set in `.env`.
"""

import argparse
from datetime import datetime, timezone

from sevasetu.services.container import build_store
from sevasetu.services.demo_data import demo_complaints, seed_demo_complaints


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write demo complaints instead of dry-run")
    parser.add_argument("--backend", choices=["memory", "firestore"], default=None, help="Override STORE_BACKEND")
    args = parser.parse_args()

    now = datetime.now(timezone.utc)

    if not args.apply:
        for complaint in demo_complaints(now):
            print(f"Preparing: complaints/{complaint.id} ({complaint.status.value})")
        print("Dry run complete. Re-run with --apply to write to the store.")
        return

    store = build_store(args.backend)
    inserted = seed_demo_complaints(store, now)
    print(f"Seeding completed: {inserted} complaint(s) written.")


if __name__ == "__main__":
    main()
