"""Admin review gate for the ``pending_review -> approved/rejected`` edge."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from studyslot.errors import InvalidTransition, NotesRequired
from studyslot.lifecycle import ensure_transition
from studyslot.models.base import utcnow
from studyslot.models.experiment import AdminReview, ExperimentStatus

if TYPE_CHECKING:
    from studyslot.models.experiment import Experiment


def approve(
    experiment: Experiment,
    reviewer: str,
    notes: str = "",
    now: datetime | None = None,
) -> Experiment:
    return _review(experiment, ExperimentStatus.APPROVED, reviewer, notes, now)


def reject(
    experiment: Experiment,
    reviewer: str,
    notes: str,
    now: datetime | None = None,
) -> Experiment:
    """Reject with a mandatory reason; blank notes raise NotesRequired."""
    if experiment.status != ExperimentStatus.PENDING_REVIEW:
        raise InvalidTransition(experiment.status.value, ExperimentStatus.REJECTED.value)
    if not notes or not notes.strip():
        raise NotesRequired()
    return _review(experiment, ExperimentStatus.REJECTED, reviewer, notes.strip(), now)


def cancel(experiment: Experiment) -> Experiment:
    """Administrative override moving any experiment to ``cancelled``."""
    ensure_transition(experiment.status, ExperimentStatus.CANCELLED, len(experiment.sessions))
    return experiment.model_copy(update={"status": ExperimentStatus.CANCELLED})


def _review(
    experiment: Experiment,
    outcome: ExperimentStatus,
    reviewer: str,
    notes: str,
    now: datetime | None,
) -> Experiment:
    # Only a pending_review experiment can be reviewed; a self-transition
    # (approving an approved experiment) is not a review.
    if experiment.status != ExperimentStatus.PENDING_REVIEW:
        raise InvalidTransition(experiment.status.value, outcome.value)
    ensure_transition(experiment.status, outcome, len(experiment.sessions))
    review = AdminReview(reviewer=reviewer, review_date=now or utcnow(), notes=notes)
    return experiment.model_copy(update={"status": outcome, "admin_review": review})
