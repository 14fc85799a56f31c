"""
External collaborators consumed by the lifecycle engine.

Only the interfaces matter to the engine. The default implementations are
simple and demo-safe:
- SystemClock: wall clock in UTC
- InMemoryEvidenceStore / FirebaseStorageEvidenceStore: opaque artifact refs
- SimulatedPositionSource: officer standing next to the job (small jitter)
- StaticOfficerRoster: fixed roster of field officers
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
import hashlib
import logging
import random
import threading

from sevasetu.core.exceptions import NotFound
from sevasetu.models.complaint import Coordinates, Officer

logger = logging.getLogger(__name__)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current timestamp (timezone-aware)."""
        pass


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class EvidenceStore(ABC):
    """
    Stores raw photo bytes and returns an opaque artifact reference.

    The engine never decodes image bytes; it only keeps the reference.
    """

    @abstractmethod
    def store(self, raw: bytes, content_type: str = "image/jpeg") -> str:
        pass


class InMemoryEvidenceStore(EvidenceStore):
    """Content-addressed in-process evidence store (sha256 refs)."""

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def store(self, raw: bytes, content_type: str = "image/jpeg") -> str:
        if not raw:
            raise ValueError("Evidence payload is empty")
        digest = hashlib.sha256(raw).hexdigest()
        ref = f"evidence://sha256/{digest}"
        with self._lock:
            self._blobs[ref] = raw
        logger.info(f"Stored evidence {ref[:32]}... ({len(raw)} bytes, {content_type})")
        return ref

    def exists(self, ref: str) -> bool:
        with self._lock:
            return ref in self._blobs


class FirebaseStorageEvidenceStore(EvidenceStore):
    """Evidence store backed by the Firebase Storage bucket."""

    def __init__(self, bucket_name: Optional[str] = None, prefix: str = "evidence"):
        from firebase_admin import storage
        from sevasetu.config.firebase import initialize_firebase_app

        initialize_firebase_app()
        self.bucket = storage.bucket(bucket_name)
        self.prefix = prefix

    def store(self, raw: bytes, content_type: str = "image/jpeg") -> str:
        if not raw:
            raise ValueError("Evidence payload is empty")
        digest = hashlib.sha256(raw).hexdigest()
        path = f"{self.prefix}/{digest}"
        blob = self.bucket.blob(path)
        blob.upload_from_string(raw, content_type=content_type)
        logger.info(f"✅ Uploaded evidence to gs://{self.bucket.name}/{path}")
        return f"gs://{self.bucket.name}/{path}"


class PositionSource(ABC):
    @abstractmethod
    def current_position(self, near: Optional[Coordinates] = None) -> Coordinates:
        """
        Current observed position of the officer device.

        Args:
            near: Target location; a simulated source may use it as an anchor
        """
        pass


class SimulatedPositionSource(PositionSource):
    """
    Pretends the officer is standing at the job site.

    Jitter is +/- JITTER_DEGREES/2 on each axis (a few meters), well inside
    the default 20m geofence.
    """

    JITTER_DEGREES = 0.0001

    def __init__(self, rng: Optional[random.Random] = None, fallback: Optional[Coordinates] = None):
        self.rng = rng or random.Random()
        self.fallback = fallback or Coordinates(lat=26.9124, lng=75.7873)

    def current_position(self, near: Optional[Coordinates] = None) -> Coordinates:
        anchor = near or self.fallback
        return Coordinates(
            lat=anchor.lat + (self.rng.random() - 0.5) * self.JITTER_DEGREES,
            lng=anchor.lng + (self.rng.random() - 0.5) * self.JITTER_DEGREES,
        )


class OfficerRoster(ABC):
    @abstractmethod
    def lookup(self, officer_id: str) -> Officer:
        """Return the officer or raise NotFound."""
        pass

    @abstractmethod
    def list_officers(self) -> List[Officer]:
        pass


class StaticOfficerRoster(OfficerRoster):
    def __init__(self, officers: Iterable[Officer]):
        self._officers = {officer.id: officer for officer in officers}

    def lookup(self, officer_id: str) -> Officer:
        officer = self._officers.get(officer_id)
        if officer is None:
            raise NotFound(f"Officer {officer_id} not found")
        return officer

    def list_officers(self) -> List[Officer]:
        return list(self._officers.values())
