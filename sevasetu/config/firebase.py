"""
Firebase initialization.
Single Firebase app / Firestore client for SevaSetu, only touched when a
Firebase-backed store is configured (STORE_BACKEND=firestore or
EVIDENCE_BACKEND=firebase).
"""

from typing import Optional
import json
import logging
import os

import firebase_admin
from firebase_admin import credentials, firestore, initialize_app

from sevasetu.core.settings import settings

logger = logging.getLogger(__name__)

db: Optional[firestore.Client] = None

REQUIRED_CREDENTIAL_FIELDS = ["type", "project_id", "private_key", "client_email"]


def _load_certificate(cred_path: str) -> credentials.Certificate:
    """Validate the service account file before handing it to the SDK."""
    if not os.path.exists(cred_path):
        raise RuntimeError(
            f"Firebase credentials file not found: {cred_path}\n"
            f"Check FIREBASE_CREDENTIALS_PATH in .env (cwd: {os.getcwd()})"
        )

    try:
        with open(cred_path, "r", encoding="utf-8") as f:
            cred_data = json.load(f)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Firebase credentials file is not valid JSON: {e}")

    missing_fields = [field for field in REQUIRED_CREDENTIAL_FIELDS if field not in cred_data]
    if missing_fields:
        raise RuntimeError(
            f"Firebase credentials file is missing required fields: {missing_fields}\n"
            f"Download a fresh service account key from Firebase Console."
        )

    logger.info(f"[FIREBASE] Credentials file validated: {cred_path} (project {cred_data.get('project_id', 'N/A')})")
    return credentials.Certificate(cred_path)


def initialize_firebase_app() -> None:
    """Initialize the default Firebase app once per process."""
    if firebase_admin._apps:
        return

    options = {}
    if settings.FIREBASE_STORAGE_BUCKET:
        options["storageBucket"] = settings.FIREBASE_STORAGE_BUCKET
    if settings.FIREBASE_PROJECT_ID:
        options["projectId"] = settings.FIREBASE_PROJECT_ID

    if settings.FIREBASE_CREDENTIALS_PATH:
        initialize_app(_load_certificate(settings.FIREBASE_CREDENTIALS_PATH), options or None)
        logger.info("[FIREBASE] Admin SDK initialized with service account")
    else:
        logger.info("[FIREBASE] No credentials path set, using Application Default Credentials")
        initialize_app(options=options or None)


def initialize_firestore() -> firestore.Client:
    global db

    if db is not None:
        return db

    try:
        initialize_firebase_app()
        db = firestore.client()
    except RuntimeError:
        raise
    except Exception as e:
        raise RuntimeError(
            f"Firestore initialization FAILED. Error: {e}\n"
            f"Please check your Firebase credentials and configuration."
        )

    logger.info(f"[FIRESTORE] Using Firestore project: {settings.FIREBASE_PROJECT_ID or 'default'}")
    return db


def get_db() -> firestore.Client:
    """
    Get the initialized Firestore client.

    Raises RuntimeError if Firestore cannot be initialized.
    """
    if db is None:
        initialize_firestore()
    return db
