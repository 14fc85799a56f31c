"""
Simulated Verification Provider - policy-driven stand-in for image analysis.

No model inference happens here. The visual-change outcome is a weighted
coin flip (success bias), everything else is a cheap deterministic check.
Inject a seeded random.Random for reproducible runs.
"""

from datetime import datetime
from typing import Dict, Optional
import logging
import random
import time

from sevasetu.core.settings import settings
from sevasetu.models.complaint import Complaint
from sevasetu.services.geofence import GeofenceValidator
from sevasetu.services.verification.base import StageOutcome, VerificationProvider

logger = logging.getLogger(__name__)


class SimulatedVerificationProvider(VerificationProvider):
    """
    Simulated multi-check analysis.

    Approved runs score in [score_min, score_max]; flagged runs score
    `flagged_score`.
    """

    MODEL_NAME = "simulated-change-detector"
    MODEL_VERSION = "1.0.0"

    POSITIVE_NOTES = ["Significant repair detected", "Lighting conditions matched"]
    NEGATIVE_NOTES = ["Minimal visual change detected", "Suspicious activity"]

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        success_bias: Optional[float] = None,
        score_min: Optional[int] = None,
        score_max: Optional[int] = None,
        flagged_score: Optional[int] = None,
        stage_delay_seconds: Optional[float] = None,
        geofence: Optional[GeofenceValidator] = None,
    ):
        self.rng = rng or random.Random()
        self.success_bias = settings.VERIFICATION_SUCCESS_BIAS if success_bias is None else success_bias
        self.score_min = settings.VERIFICATION_APPROVED_SCORE_MIN if score_min is None else score_min
        self.score_max = settings.VERIFICATION_APPROVED_SCORE_MAX if score_max is None else score_max
        self.flagged_score = settings.VERIFICATION_FLAGGED_SCORE if flagged_score is None else flagged_score
        self.stage_delay_seconds = (
            settings.VERIFICATION_STAGE_DELAY_SECONDS if stage_delay_seconds is None else stage_delay_seconds
        )
        self.geofence = geofence or GeofenceValidator()

        if not 0.0 <= self.success_bias <= 1.0:
            raise ValueError(f"success_bias must be within [0, 1], got {self.success_bias}")
        if not 0 <= self.score_min <= self.score_max <= 100:
            raise ValueError(f"Invalid approved score range {self.score_min}..{self.score_max}")

    def _simulate_work(self) -> None:
        if self.stage_delay_seconds > 0:
            time.sleep(self.stage_delay_seconds)

    def get_model_info(self) -> Dict[str, str]:
        return {"name": self.MODEL_NAME, "version": self.MODEL_VERSION}

    def check_geofence(self, complaint: Complaint) -> StageOutcome:
        self._simulate_work()
        if complaint.officer_coordinates is None:
            return StageOutcome(False, ["No officer position recorded"])
        result = self.geofence.verify(complaint.coordinates, complaint.officer_coordinates)
        if result.passed:
            return StageOutcome(True, [f"Coordinates match within {result.distance_meters:.0f}m"])
        return StageOutcome(False, [f"Officer position {result.distance_meters:.0f}m from reported location"])

    def check_timestamp(self, complaint: Complaint, now: datetime) -> StageOutcome:
        self._simulate_work()
        started = complaint.work_start_time
        if started is not None and not (complaint.submission_time <= started <= now):
            return StageOutcome(False, ["Work start time is inconsistent with submission metadata"])
        return StageOutcome(True)

    def detect_change(self, complaint: Complaint) -> StageOutcome:
        self._simulate_work()
        change_detected = self.rng.random() < self.success_bias
        if change_detected:
            return StageOutcome(True, list(self.POSITIVE_NOTES))
        logger.warning(f"⚠️ No significant change detected for {complaint.id}")
        return StageOutcome(False, list(self.NEGATIVE_NOTES))

    def check_fraud(self, complaint: Complaint) -> StageOutcome:
        self._simulate_work()
        if complaint.before_photo and complaint.before_photo == complaint.after_photo:
            return StageOutcome(False, ["Before and after evidence are the same artifact"])
        return StageOutcome(True)

    def confidence_score(self, change_detected: bool) -> int:
        if change_detected:
            return self.rng.randint(self.score_min, self.score_max)
        return self.flagged_score
