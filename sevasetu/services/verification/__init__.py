"""
Automated verification of submitted field work.

Simulated, policy-driven checks; no model inference.
"""

from sevasetu.services.verification.base import (
    RunState,
    StageOutcome,
    VerificationCheckpoint,
    VerificationProvider,
    VerificationRun,
    VerificationStage,
)
from sevasetu.services.verification.engine import VerificationEngine
from sevasetu.services.verification.simulated_provider import SimulatedVerificationProvider

__all__ = [
    "RunState",
    "StageOutcome",
    "VerificationCheckpoint",
    "VerificationProvider",
    "VerificationRun",
    "VerificationStage",
    "VerificationEngine",
    "SimulatedVerificationProvider",
]
