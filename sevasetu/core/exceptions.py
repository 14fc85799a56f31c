"""
Domain exception hierarchy for the complaint lifecycle engine.

These exceptions represent business-rule violations inside the service layer.
They are deliberately NOT FastAPI ``HTTPException`` subclasses so the services
stay framework-agnostic. ``sevasetu.main`` maps them to HTTP responses:

    DomainError         400
    MissingEvidence     400
    NotFound            404
    Conflict            409
    InvalidTransition   409
    VotingNotAllowed    409
    GeofenceFailed      422  (retryable)
    OutOfServiceArea    422
    Busy                503  (retryable)

Every rejection is non-destructive: a service that raises one of these has
not written anything to the complaint store.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for all domain / business-rule errors."""

    status_code = 400
    retryable = False

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__


class NotFound(DomainError):
    """Operation on an unknown complaint (or officer) identifier."""

    status_code = 404

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate creation attempt.
    """

    status_code = 409

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A lifecycle event that is not legal from the complaint's current status.

    Example::

        raise InvalidTransition(current="Submitted", event="close")
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        current: Optional[str] = None,
        event: Optional[str] = None,
        allowed: Optional[list] = None,
    ) -> None:
        if message is None:
            message = f"Invalid status transition: event '{event}' is not allowed from '{current}'."
            if allowed is not None:
                message += f" Allowed events from {current}: {allowed}"
        super().__init__(message)
        self.current = current
        self.event = event
        self.allowed = allowed or []


class VotingNotAllowed(InvalidTransition):
    """Community votes are only accepted on completed (Verified/Closed) work."""


class MissingEvidence(DomainError):
    """Work submitted without both before and after evidence."""

    def __init__(self, missing: Optional[list] = None) -> None:
        self.missing = missing or []
        super().__init__(f"Work submission requires before and after evidence (missing: {', '.join(self.missing)})")


class GeofenceFailed(DomainError):
    """
    Officer position is outside the geofence of the complaint.

    Retryable: the officer may move closer and verify again.
    """

    status_code = 422
    retryable = True

    def __init__(
        self,
        distance_meters: Optional[float] = None,
        tolerance_meters: Optional[float] = None,
        message: Optional[str] = None,
    ) -> None:
        self.distance_meters = distance_meters
        self.tolerance_meters = tolerance_meters
        if message is None:
            message = (
                f"You are too far from the reported location: {distance_meters:.1f}m away "
                f"(tolerance {tolerance_meters:.0f}m)"
            )
        super().__init__(message)


class OutOfServiceArea(DomainError):
    """Coordinates fall outside the configured service-area bounding box."""

    status_code = 422


class Busy(DomainError):
    """The verification engine cannot admit this request right now."""

    status_code = 503
    retryable = True

    def __init__(self, message: str = "Verification engine is busy, retry later.") -> None:
        super().__init__(message)
