"""Register/cancel operations on a session's participant list.

These are pure functions over the experiment aggregate: they check every
precondition against the aggregate they are handed and return a new aggregate
with the change applied. Atomicity comes from the store, which runs them inside
``Database.mutate_experiment`` so the check and the write see the same version.

The participant list is append-only. Cancelling flips a record's status;
registering again after a cancellation appends a fresh record so the history of
the cancelled attempt is preserved.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from studyslot.capacity import active_record_for, is_full
from studyslot.errors import (
    AlreadyRegistered,
    ExperimentNotOpen,
    NotRegistered,
    ParticipantNotFound,
    SessionFull,
)
from studyslot.models.base import utcnow
from studyslot.models.experiment import ExperimentStatus, Participant, ParticipantStatus

if TYPE_CHECKING:
    from studyslot.models.experiment import Experiment, Session


def register(
    experiment: Experiment,
    session_id: str,
    user_id: str,
    now: datetime | None = None,
) -> tuple[Experiment, Participant]:
    """Append a ``registered`` participant record for *user_id*.

    Raises ExperimentNotOpen, SessionNotFound, SessionFull or AlreadyRegistered,
    checked in that order.
    """
    if experiment.status != ExperimentStatus.OPEN:
        raise ExperimentNotOpen()
    session = experiment.get_session(session_id)
    if is_full(session):
        raise SessionFull()
    if active_record_for(session, user_id) is not None:
        raise AlreadyRegistered()

    participant = Participant(
        user=user_id,
        status=ParticipantStatus.REGISTERED,
        signup_time=now or utcnow(),
    )
    updated = session.model_copy(update={"participants": [*session.participants, participant]})
    return experiment.with_session(updated), participant


def cancel(
    experiment: Experiment,
    session_id: str,
    user_id: str,
) -> tuple[Experiment, Participant]:
    """Mark the caller's active record as ``cancelled``.

    A user without an active record (never registered, or already cancelled)
    gets NotRegistered.
    """
    session = experiment.get_session(session_id)
    record = active_record_for(session, user_id)
    if record is None:
        raise NotRegistered()
    return _replace_status(experiment, session, record, ParticipantStatus.CANCELLED)


def set_participant_status(
    experiment: Experiment,
    session_id: str,
    user_id: str,
    status: ParticipantStatus,
) -> tuple[Experiment, Participant]:
    """Set any participant status chosen by the researcher.

    No ordering is imposed among the five statuses. The record edited is the
    user's active one, or their most recent record when all are cancelled.
    Reviving a cancelled record still has to fit in the session, so capacity
    is checked in that single case.
    """
    session = experiment.get_session(session_id)
    record = active_record_for(session, user_id)
    if record is None:
        record = _latest_record_for(session, user_id)
        if record is None:
            raise ParticipantNotFound()
        if status != ParticipantStatus.CANCELLED and is_full(session):
            raise SessionFull()
    return _replace_status(experiment, session, record, status)


def _latest_record_for(session: Session, user_id: str) -> Participant | None:
    for participant in reversed(session.participants):
        if participant.user == user_id:
            return participant
    return None


def _replace_status(
    experiment: Experiment,
    session: Session,
    record: Participant,
    status: ParticipantStatus,
) -> tuple[Experiment, Participant]:
    changed = record.model_copy(update={"status": status})
    participants = [changed if p.id == record.id else p for p in session.participants]
    updated = session.model_copy(update={"participants": participants})
    return experiment.with_session(updated), changed
