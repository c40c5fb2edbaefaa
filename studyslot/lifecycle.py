"""Experiment status state machine.

The transition table below is the single source of truth for which status
changes are legal. ``can_transition`` is role-agnostic: it only encodes the
topology plus the session-count guard on entering ``open``. Which caller may
drive which edge is decided by the service layer (researcher edges) and by
the review gate (admin edges).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from studyslot.errors import DeletionNotAllowed, InvalidTransition, NeedsSession
from studyslot.models.experiment import ExperimentStatus

S = ExperimentStatus


class TransitionReason(StrEnum):
    INVALID_TRANSITION = "InvalidTransition"
    NEEDS_SESSION = "NeedsSession"


@dataclass(frozen=True)
class TransitionCheck:
    ok: bool
    reason: TransitionReason | None = None


TRANSITIONS: dict[ExperimentStatus, frozenset[ExperimentStatus]] = {
    S.DRAFT: frozenset({S.PENDING_REVIEW}),
    S.PENDING_REVIEW: frozenset({S.DRAFT, S.APPROVED, S.REJECTED}),
    S.APPROVED: frozenset({S.OPEN}),
    S.REJECTED: frozenset({S.PENDING_REVIEW}),
    S.OPEN: frozenset({S.COMPLETED, S.IN_PROGRESS}),
    S.IN_PROGRESS: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset({S.DRAFT}),
    S.CANCELLED: frozenset(),
}

# Administrative override: any status may be cancelled.
_OVERRIDE_TARGET = S.CANCELLED

# Edges only the admin review gate may drive.
ADMIN_EDGES: frozenset[tuple[ExperimentStatus, ExperimentStatus]] = frozenset(
    {(S.PENDING_REVIEW, S.APPROVED), (S.PENDING_REVIEW, S.REJECTED)}
)

DELETABLE_STATUSES: frozenset[ExperimentStatus] = frozenset(
    {S.DRAFT, S.REJECTED, S.APPROVED, S.COMPLETED}
)

LOCKED_STATUSES: frozenset[ExperimentStatus] = frozenset({S.COMPLETED, S.CANCELLED})

_OK = TransitionCheck(ok=True)


def can_transition(
    current: ExperimentStatus,
    requested: ExperimentStatus,
    session_count: int,
) -> TransitionCheck:
    """Decide whether *current* may move to *requested*.

    Self-transitions are a no-op success. The session guard only applies on the
    ``approved -> open`` edge; skipping states is an invalid transition even
    when sessions exist.
    """
    if current == requested:
        return _OK
    if requested == _OVERRIDE_TARGET:
        return _OK
    if requested not in TRANSITIONS[current]:
        return TransitionCheck(ok=False, reason=TransitionReason.INVALID_TRANSITION)
    if requested == S.OPEN and session_count < 1:
        return TransitionCheck(ok=False, reason=TransitionReason.NEEDS_SESSION)
    return _OK


def ensure_transition(
    current: ExperimentStatus,
    requested: ExperimentStatus,
    session_count: int,
) -> None:
    """Raise the error matching ``can_transition``'s denial reason."""
    check = can_transition(current, requested, session_count)
    if check.ok:
        return
    if check.reason == TransitionReason.NEEDS_SESSION:
        raise NeedsSession()
    raise InvalidTransition(current.value, requested.value)


def is_researcher_edge(current: ExperimentStatus, requested: ExperimentStatus) -> bool:
    """True for edges a researcher may drive through the edit intent."""
    if current == requested:
        return True
    return (current, requested) not in ADMIN_EDGES and requested != _OVERRIDE_TARGET


def ensure_deletable(status: ExperimentStatus) -> None:
    if status not in DELETABLE_STATUSES:
        raise DeletionNotAllowed(status.value)
