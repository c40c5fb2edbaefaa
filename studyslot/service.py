"""Scheduling service: role-aware intents over the experiment store.

Each intent validates its caller's ownership, then hands a pure function from
``lifecycle``, ``schedule``, ``registration`` or ``review`` to
``mutate_experiment`` so the precondition check and the write happen against
the same stored version. Role membership itself is established upstream by the
authorization boundary; the service only receives the already-resolved caller id.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from studyslot import lifecycle, registration, review, schedule, visibility
from studyslot.errors import ExperimentNotFound, Forbidden, SchedulingError
from studyslot.metrics import registrations_total, status_transitions_total
from studyslot.models.base import utcnow
from studyslot.models.experiment import Experiment, ExperimentStatus
from studyslot.models.user import UserRole

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from studyslot.db import EventDict
    from studyslot.models.experiment import ParticipantStatus
    from studyslot.models.user import User
    from studyslot.protocols import ExperimentStorePort

logger = structlog.get_logger()

EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "location",
        "duration",
        "compensation",
        "requirements",
        "max_participants",
        "irb_document",
    }
)


class SchedulingService:
    def __init__(
        self,
        store: ExperimentStorePort,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.clock = clock

    # --- Experiments ---

    def create_experiment(
        self,
        researcher_id: str,
        fields: dict[str, Any],
        status: ExperimentStatus | None = None,
    ) -> Experiment:
        """Create a draft owned by *researcher_id*.

        An initial *status* is treated as a transition out of ``draft``, so only
        ``draft`` and ``pending_review`` are accepted.
        """
        now = self.clock()
        experiment = Experiment(researcher=researcher_id, created_at=now, updated_at=now, **fields)
        if status is not None:
            self._check_researcher_edge(experiment, status)
            lifecycle.ensure_transition(experiment.status, status, len(experiment.sessions))
            experiment = experiment.model_copy(update={"status": status})
        return self.store.create_experiment(experiment, actor_id=researcher_id)

    def get_experiment(self, experiment_id: str) -> Experiment:
        return self.store.require_experiment(experiment_id)

    def update_experiment(
        self,
        researcher_id: str,
        experiment_id: str,
        changes: dict[str, Any],
        status: ExperimentStatus | None = None,
    ) -> Experiment:
        """Edit descriptive fields and optionally request a status change."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise Forbidden(f"Fields not editable: {', '.join(sorted(unknown))}")

        transition: dict[str, ExperimentStatus] = {}

        def apply(current: Experiment) -> Experiment:
            self._ensure_owner(current, researcher_id)
            update: dict[str, Any] = dict(changes)
            if status is not None and status != current.status:
                self._check_researcher_edge(current, status)
                lifecycle.ensure_transition(current.status, status, len(current.sessions))
                update["status"] = status
                transition["from"] = current.status
            return Experiment.model_validate(current.model_dump() | update)

        updated = self.store.mutate_experiment(
            experiment_id,
            apply,
            event="experiment_updated",
            message=_describe_status_change,
            actor_id=researcher_id,
        )
        if "from" in transition:
            self._record_transition(experiment_id, transition["from"], updated.status)
        return updated

    def delete_experiment(self, researcher_id: str, experiment_id: str) -> Experiment:
        def check(current: Experiment) -> None:
            self._ensure_owner(current, researcher_id)
            lifecycle.ensure_deletable(current.status)

        deleted = self.store.delete_experiment(experiment_id, check, actor_id=researcher_id)
        logger.info("experiment_deleted", experiment_id=experiment_id, status=deleted.status)
        return deleted

    # --- Listing ---

    def list_for(
        self,
        caller: User,
        status: ExperimentStatus | None = None,
        search: str | None = None,
    ) -> list[Experiment]:
        """The experiment list each role is allowed to see.

        Subjects always get the open-for-registration view whatever *status*
        they ask for.
        """
        if caller.role == UserRole.SUBJECT:
            candidates = self.store.list_experiments(ExperimentStatus.OPEN, search=search)
            return visibility.for_subject(candidates, caller.id, self.clock())
        researcher_id = caller.id if caller.role == UserRole.RESEARCHER else None
        experiments = self.store.list_experiments(
            status, researcher_id=researcher_id, search=search
        )
        return visibility.for_researcher(experiments)

    def list_all(self) -> list[Experiment]:
        return visibility.for_researcher(self.store.list_experiments())

    def list_pending_reviews(self) -> list[Experiment]:
        return visibility.for_admin_pending(self.store.list_experiments())

    def my_sessions(self, subject_id: str) -> list[Experiment]:
        return visibility.sessions_of_subject(self.store.list_experiments(), subject_id)

    def get_log(self, caller: User, experiment_id: str) -> list[EventDict]:
        experiment = self.store.require_experiment(experiment_id)
        if caller.role != UserRole.ADMIN:
            self._ensure_owner(experiment, caller.id)
        return self.store.get_log(experiment_id)

    # --- Sessions ---

    def add_session(
        self,
        researcher_id: str,
        experiment_id: str,
        start_time: datetime,
        end_time: datetime,
        location: str | None = None,
        max_participants: int | None = None,
        notes: str | None = None,
    ) -> Experiment:
        def apply(current: Experiment) -> Experiment:
            self._ensure_owner(current, researcher_id)
            updated, _ = schedule.add_session(
                current,
                start_time=start_time,
                end_time=end_time,
                location=location,
                max_participants=max_participants,
                notes=notes,
            )
            return updated

        updated = self.store.mutate_experiment(
            experiment_id,
            apply,
            event="session_added",
            message=lambda _old, new: f"Session {new.sessions[-1].id} added",
            actor_id=researcher_id,
        )
        logger.info("session_added", experiment_id=experiment_id, sessions=len(updated.sessions))
        return updated

    def update_session(
        self,
        researcher_id: str,
        experiment_id: str,
        session_id: str,
        changes: dict[str, Any],
    ) -> Experiment:
        def apply(current: Experiment) -> Experiment:
            self._ensure_owner(current, researcher_id)
            updated, _ = schedule.update_session(current, session_id, changes)
            return updated

        return self.store.mutate_experiment(
            experiment_id,
            apply,
            event="session_updated",
            message=f"Session {session_id} updated: {', '.join(sorted(changes))}",
            actor_id=researcher_id,
        )

    def delete_session(self, researcher_id: str, experiment_id: str, session_id: str) -> Experiment:
        """Delete a session; removing the last one of an open experiment reverts it to approved."""
        transition: dict[str, ExperimentStatus] = {}

        def apply(current: Experiment) -> Experiment:
            self._ensure_owner(current, researcher_id)
            updated = schedule.delete_session(current, session_id)
            if updated.status != current.status:
                transition["from"] = current.status
            return updated

        updated = self.store.mutate_experiment(
            experiment_id,
            apply,
            event="session_deleted",
            message=lambda old, new: (
                f"Session {session_id} deleted"
                + (
                    f"; status {old.status.value} -> {new.status.value}"
                    if old.status != new.status
                    else ""
                )
            ),
            actor_id=researcher_id,
        )
        if "from" in transition:
            self._record_transition(experiment_id, transition["from"], updated.status)
        logger.info("session_deleted", experiment_id=experiment_id, session_id=session_id)
        return updated

    # --- Registration ---

    def register(self, subject_id: str, experiment_id: str, session_id: str) -> Experiment:
        def apply(current: Experiment) -> Experiment:
            updated, _ = registration.register(current, session_id, subject_id, now=self.clock())
            return updated

        try:
            updated = self.store.mutate_experiment(
                experiment_id,
                apply,
                event="participant_registered",
                message=f"User {subject_id} registered for session {session_id}",
                actor_id=subject_id,
            )
        except SchedulingError as exc:
            registrations_total.labels(outcome=exc.kind).inc()
            logger.info(
                "registration_rejected",
                experiment_id=experiment_id,
                session_id=session_id,
                kind=exc.kind,
            )
            raise
        registrations_total.labels(outcome="registered").inc()
        logger.info("participant_registered", experiment_id=experiment_id, session_id=session_id)
        return updated

    def cancel_registration(
        self, subject_id: str, experiment_id: str, session_id: str
    ) -> Experiment:
        def apply(current: Experiment) -> Experiment:
            updated, _ = registration.cancel(current, session_id, subject_id)
            return updated

        updated = self.store.mutate_experiment(
            experiment_id,
            apply,
            event="registration_cancelled",
            message=f"User {subject_id} cancelled session {session_id}",
            actor_id=subject_id,
        )
        registrations_total.labels(outcome="cancelled").inc()
        logger.info("registration_cancelled", experiment_id=experiment_id, session_id=session_id)
        return updated

    def set_participant_status(
        self,
        researcher_id: str,
        experiment_id: str,
        session_id: str,
        user_id: str,
        status: ParticipantStatus,
    ) -> Experiment:
        def apply(current: Experiment) -> Experiment:
            self._ensure_owner(current, researcher_id)
            updated, _ = registration.set_participant_status(current, session_id, user_id, status)
            return updated

        updated = self.store.mutate_experiment(
            experiment_id,
            apply,
            event="participant_status_changed",
            message=f"User {user_id} in session {session_id} set to {status.value}",
            actor_id=researcher_id,
        )
        logger.info(
            "participant_status_changed",
            experiment_id=experiment_id,
            session_id=session_id,
            status=status,
        )
        return updated

    # --- Admin ---

    def approve(self, admin_id: str, experiment_id: str, notes: str = "") -> Experiment:
        return self._review(
            admin_id,
            experiment_id,
            lambda current: review.approve(current, admin_id, notes, now=self.clock()),
        )

    def reject(self, admin_id: str, experiment_id: str, notes: str) -> Experiment:
        return self._review(
            admin_id,
            experiment_id,
            lambda current: review.reject(current, admin_id, notes, now=self.clock()),
        )

    def cancel_experiment(self, admin_id: str, experiment_id: str) -> Experiment:
        return self._review(admin_id, experiment_id, review.cancel, event="experiment_cancelled")

    def repair_sessionless(self, actor_id: str = "repair") -> list[str]:
        """Move open or in-progress experiments without sessions back to approved."""
        repaired: list[str] = []
        broken = self.store.list_experiments([ExperimentStatus.OPEN, ExperimentStatus.IN_PROGRESS])
        for experiment in broken:
            if experiment.sessions:
                continue

            def apply(current: Experiment) -> Experiment:
                if current.sessions or current.status not in (
                    ExperimentStatus.OPEN,
                    ExperimentStatus.IN_PROGRESS,
                ):
                    return current
                return current.model_copy(update={"status": ExperimentStatus.APPROVED})

            updated = self.store.mutate_experiment(
                experiment.id,
                apply,
                event="status_repaired",
                message=_describe_status_change,
                actor_id=actor_id,
            )
            if updated.status == ExperimentStatus.APPROVED:
                self._record_transition(experiment.id, experiment.status, updated.status)
                repaired.append(experiment.id)
        return repaired

    # --- Helpers ---

    def _review(
        self,
        admin_id: str,
        experiment_id: str,
        fn: Callable[[Experiment], Experiment],
        event: str = "experiment_reviewed",
    ) -> Experiment:
        before: dict[str, ExperimentStatus] = {}

        def apply(current: Experiment) -> Experiment:
            before["status"] = current.status
            return fn(current)

        updated = self.store.mutate_experiment(
            experiment_id,
            apply,
            event=event,
            message=_describe_status_change,
            actor_id=admin_id,
        )
        if before.get("status") not in (None, updated.status):
            self._record_transition(experiment_id, before["status"], updated.status)
        return updated

    @staticmethod
    def _ensure_owner(experiment: Experiment, researcher_id: str) -> None:
        # Other researchers' experiments are reported as missing, not forbidden.
        if experiment.researcher != researcher_id:
            raise ExperimentNotFound()

    @staticmethod
    def _check_researcher_edge(experiment: Experiment, status: ExperimentStatus) -> None:
        if not lifecycle.is_researcher_edge(experiment.status, status):
            raise Forbidden(
                f"Only an administrator can change status from "
                f"'{experiment.status.value}' to '{status.value}'"
            )

    @staticmethod
    def _record_transition(
        experiment_id: str, old: ExperimentStatus, new: ExperimentStatus
    ) -> None:
        status_transitions_total.labels(from_status=old.value, to_status=new.value).inc()
        logger.info("status_changed", experiment_id=experiment_id, old=old, new=new)


def _describe_status_change(old: Experiment, new: Experiment) -> str:
    if old.status == new.status:
        return "Details updated"
    return f"Status {old.status.value} -> {new.status.value}"
