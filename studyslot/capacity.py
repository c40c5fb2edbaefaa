"""Capacity projections over a session's participant list.

Recomputed on every call; none of these values is ever stored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from studyslot.models.experiment import Participant, Session


def active_participants(session: Session) -> list[Participant]:
    return [p for p in session.participants if p.is_active]


def active_count(session: Session) -> int:
    return sum(1 for p in session.participants if p.is_active)


def spots_left(session: Session) -> int:
    return max(0, session.max_participants - active_count(session))


def is_full(session: Session) -> bool:
    return spots_left(session) == 0


def active_record_for(session: Session, user_id: str) -> Participant | None:
    """The user's non-cancelled participant record in *session*, if any."""
    for participant in session.participants:
        if participant.user == user_id and participant.is_active:
            return participant
    return None
