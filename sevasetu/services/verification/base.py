"""
Verification Provider Base Interface.

Defines the contract for automated evidence checks.
All verification providers must implement this interface.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from sevasetu.models.complaint import CamelModel, Complaint, Verdict


class VerificationStage(str, Enum):
    """Internal stages of one verification run, in execution order."""
    INIT = "init"
    GEOFENCE = "geofence"
    TIMESTAMP = "timestamp"
    VISUAL = "visual_change"
    FRAUD = "anti_fraud"
    DONE = "done"


# Stages that call into the provider
CHECK_STAGES = [
    VerificationStage.GEOFENCE,
    VerificationStage.TIMESTAMP,
    VerificationStage.VISUAL,
    VerificationStage.FRAUD,
]


class RunState(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class StageOutcome:
    """Result of one provider check."""

    def __init__(self, passed: bool, notes: Optional[List[str]] = None):
        self.passed = passed
        self.notes = notes or []

    def __repr__(self) -> str:
        return f"StageOutcome(passed={self.passed}, notes={self.notes})"


class VerificationCheckpoint(CamelModel):
    """Observable progress marker emitted once per stage."""
    complaint_id: str
    stage: VerificationStage
    passed: bool
    note: str = ""
    at: datetime


class VerificationRun(CamelModel):
    """Progress record of the latest verification of one complaint."""
    complaint_id: str
    state: RunState = RunState.QUEUED
    stage: VerificationStage = VerificationStage.INIT
    checkpoints: List[VerificationCheckpoint] = Field(default_factory=list)
    verdict: Optional[Verdict] = None
    error: Optional[str] = None
    queued_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class VerificationProvider(ABC):
    """
    Abstract base class for verification providers.

    Each check receives a private snapshot of the complaint and must not
    write to the store. Checks may block; the engine enforces time budgets.
    """

    @abstractmethod
    def get_model_info(self) -> Dict[str, str]:
        """
        Get model information (name, version).

        Returns:
            Dict with 'name' and 'version' keys
        """
        pass

    @abstractmethod
    def check_geofence(self, complaint: Complaint) -> StageOutcome:
        """Re-validate that the officer position matches the complaint location."""
        pass

    @abstractmethod
    def check_timestamp(self, complaint: Complaint, now: datetime) -> StageOutcome:
        """Check that submission / work timestamps are plausible."""
        pass

    @abstractmethod
    def detect_change(self, complaint: Complaint) -> StageOutcome:
        """
        Compare before/after evidence.

        `passed` is the deciding signal of the verdict.
        """
        pass

    @abstractmethod
    def check_fraud(self, complaint: Complaint) -> StageOutcome:
        """Match the submission against known fraud patterns."""
        pass

    @abstractmethod
    def confidence_score(self, change_detected: bool) -> int:
        """Confidence (0-100) to report for a completed run."""
        pass
