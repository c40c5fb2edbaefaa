"""Session create/edit/delete on the experiment aggregate."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from studyslot.capacity import active_count
from studyslot.errors import CapacityBelowActive, ExperimentLocked, InvalidSession
from studyslot.lifecycle import LOCKED_STATUSES
from studyslot.models.experiment import ExperimentStatus, Session

if TYPE_CHECKING:
    from studyslot.models.experiment import Experiment

_EDITABLE_FIELDS = frozenset({"start_time", "end_time", "location", "max_participants", "notes"})


def ensure_unlocked(experiment: Experiment) -> None:
    if experiment.status in LOCKED_STATUSES:
        raise ExperimentLocked(experiment.status.value)


def add_session(
    experiment: Experiment,
    start_time: datetime,
    end_time: datetime,
    location: str | None = None,
    max_participants: int | None = None,
    notes: str | None = None,
) -> tuple[Experiment, Session]:
    """Append a session; capacity and location default to the experiment's."""
    ensure_unlocked(experiment)
    session = _build_session(
        start_time=start_time,
        end_time=end_time,
        location=location or experiment.location,
        max_participants=max_participants or experiment.max_participants,
        notes=notes,
    )
    updated = experiment.model_copy(update={"sessions": [*experiment.sessions, session]})
    return updated, session


def update_session(
    experiment: Experiment,
    session_id: str,
    changes: dict[str, Any],
) -> tuple[Experiment, Session]:
    """Apply *changes* to one session, re-validating the merged result."""
    ensure_unlocked(experiment)
    session = experiment.get_session(session_id)
    unknown = set(changes) - _EDITABLE_FIELDS
    if unknown:
        raise InvalidSession(f"Fields not editable: {', '.join(sorted(unknown))}")

    merged = session.model_dump() | changes
    new_capacity = merged["max_participants"]
    active = active_count(session)
    if new_capacity < active:
        raise CapacityBelowActive(new_capacity, active)

    updated = _build_session(**merged)
    return experiment.with_session(updated), updated


def delete_session(experiment: Experiment, session_id: str) -> Experiment:
    """Remove a session; an open experiment left without sessions falls back to approved."""
    ensure_unlocked(experiment)
    experiment.get_session(session_id)
    sessions = [s for s in experiment.sessions if s.id != session_id]
    update: dict[str, Any] = {"sessions": sessions}
    if not sessions and experiment.status == ExperimentStatus.OPEN:
        update["status"] = ExperimentStatus.APPROVED
    return experiment.model_copy(update=update)


def _build_session(**fields: Any) -> Session:
    try:
        return Session(**fields)
    except ValidationError as exc:
        messages = "; ".join(err["msg"] for err in exc.errors())
        raise InvalidSession(messages) from exc
