"""Error taxonomy for the scheduling core.

Every rejected precondition is raised as a ``SchedulingError`` subclass. Each
subclass carries the HTTP status the API surfaces it with and a stable ``kind``
string that names the invariant which blocked the operation.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for all domain and store errors raised by the core."""

    status_code: int = 400
    kind: str = "SchedulingError"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message())

    @property
    def message(self) -> str:
        return str(self)

    def default_message(self) -> str:
        return self.kind


# --- Lifecycle ---


class InvalidTransition(SchedulingError):
    kind = "InvalidTransition"

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change status from '{current}' to '{requested}'")


class NeedsSession(SchedulingError):
    kind = "NeedsSession"

    def default_message(self) -> str:
        return "Experiment needs at least one session before it can be opened"


class NotesRequired(SchedulingError):
    kind = "NotesRequired"

    def default_message(self) -> str:
        return "Rejection notes are required"


class DeletionNotAllowed(SchedulingError):
    kind = "DeletionNotAllowed"

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"Experiment cannot be deleted while '{status}'")


class InvalidSession(SchedulingError):
    kind = "InvalidSession"


class ExperimentLocked(SchedulingError):
    kind = "ExperimentLocked"

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"Sessions cannot be changed while the experiment is '{status}'")


# --- Registration ---


class ExperimentNotOpen(SchedulingError):
    kind = "ExperimentNotOpen"

    def default_message(self) -> str:
        return "Experiment is not open for registration"


class SessionFull(SchedulingError):
    kind = "SessionFull"

    def default_message(self) -> str:
        return "Session is full"


class AlreadyRegistered(SchedulingError):
    kind = "AlreadyRegistered"

    def default_message(self) -> str:
        return "Already registered for this session"


class NotRegistered(SchedulingError):
    kind = "NotRegistered"

    def default_message(self) -> str:
        return "Not registered for this session"


class CapacityBelowActive(SchedulingError):
    kind = "CapacityBelowActive"

    def __init__(self, requested: int, active: int) -> None:
        self.requested = requested
        self.active = active
        super().__init__(
            f"maxParticipants {requested} is below the {active} active participant(s)"
        )


# --- Lookup ---


class NotFound(SchedulingError):
    status_code = 404
    kind = "NotFound"


class ExperimentNotFound(NotFound):
    kind = "ExperimentNotFound"

    def default_message(self) -> str:
        return "Experiment not found"


class SessionNotFound(NotFound):
    kind = "SessionNotFound"

    def default_message(self) -> str:
        return "Session not found"


class ParticipantNotFound(NotFound):
    kind = "ParticipantNotFound"

    def default_message(self) -> str:
        return "Participant not found"


class UserNotFound(NotFound):
    kind = "UserNotFound"

    def default_message(self) -> str:
        return "User not found"


# --- Caller ---


class Unauthorized(SchedulingError):
    status_code = 401
    kind = "Unauthorized"

    def default_message(self) -> str:
        return "Please authenticate"


class Forbidden(SchedulingError):
    status_code = 403
    kind = "Forbidden"

    def default_message(self) -> str:
        return "Not authorized"


# --- Store ---


class StoreUnavailable(SchedulingError):
    """The experiment store could not complete the request; safe to retry."""

    status_code = 503
    kind = "StoreUnavailable"

    def default_message(self) -> str:
        return "Experiment store unavailable, please retry"


class ConcurrentModification(Exception):
    """A conditional update lost its version check.

    Internal to the store: consumed by the retry loop, never surfaced to callers.
    """
