"""Role-specific views over a set of experiments.

All filters are pure and keep the relative order of their input unless they
explicitly sort.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from studyslot.capacity import active_record_for, spots_left
from studyslot.models.base import as_utc, utcnow
from studyslot.models.experiment import ExperimentStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from studyslot.models.experiment import Experiment, Session

S = ExperimentStatus

RESEARCHER_PRIORITY: dict[ExperimentStatus, int] = {
    S.OPEN: 0,
    S.IN_PROGRESS: 0,
    S.APPROVED: 1,
    S.REJECTED: 2,
    S.PENDING_REVIEW: 3,
    S.DRAFT: 4,
    S.COMPLETED: 5,
    S.CANCELLED: 6,
}


def for_subject(
    experiments: Iterable[Experiment],
    subject_id: str,
    now: datetime | None = None,
) -> list[Experiment]:
    """Experiments a subject can still sign up for.

    1. only ``open`` experiments;
    2. minus those where the subject already holds an active record in any session;
    3. sessions reduced to those starting after *now* with spots left;
    4. minus experiments whose reduced session list is empty.
    """
    now = as_utc(now) if now is not None else utcnow()
    visible: list[Experiment] = []
    for experiment in experiments:
        if experiment.status != S.OPEN:
            continue
        if _is_committed(experiment, subject_id):
            continue
        sessions = [s for s in experiment.sessions if _is_bookable(s, now)]
        if not sessions:
            continue
        visible.append(experiment.model_copy(update={"sessions": sessions}))
    return visible


def for_researcher(experiments: Iterable[Experiment]) -> list[Experiment]:
    """Active work first, then by review outcome; newest update first within a status group."""
    by_recency = sorted(experiments, key=lambda e: e.updated_at, reverse=True)
    return sorted(by_recency, key=lambda e: RESEARCHER_PRIORITY[e.status])


def for_admin_pending(experiments: Iterable[Experiment]) -> list[Experiment]:
    return [e for e in experiments if e.status == S.PENDING_REVIEW]


def sessions_of_subject(experiments: Iterable[Experiment], subject_id: str) -> list[Experiment]:
    """Experiments the subject has signed up for, reduced to the sessions they signed up to.

    Cancelled records count: the subject sees the history of their attempts.
    """
    result: list[Experiment] = []
    for experiment in experiments:
        sessions = [
            s for s in experiment.sessions if any(p.user == subject_id for p in s.participants)
        ]
        if sessions:
            result.append(experiment.model_copy(update={"sessions": sessions}))
    return result


def _is_committed(experiment: Experiment, subject_id: str) -> bool:
    return any(active_record_for(s, subject_id) is not None for s in experiment.sessions)


def _is_bookable(session: Session, now: datetime) -> bool:
    return session.start_time > now and spots_left(session) > 0
