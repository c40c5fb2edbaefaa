"""SQLAlchemy-backed experiment store with conditional-update helpers."""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypedDict

import structlog
from pydantic import TypeAdapter
from sqlalchemy import delete, or_, select, text, update
from sqlalchemy.exc import InterfaceError, OperationalError

from studyslot.db.engine import create_db_engine, create_session_factory
from studyslot.db.orm import Base, ExperimentEventRow, ExperimentRow, UserRow
from studyslot.errors import ConcurrentModification, ExperimentNotFound, StoreUnavailable
from studyslot.metrics import store_conflicts_total
from studyslot.models.experiment import (
    AdminReview,
    Experiment,
    ExperimentStatus,
    IrbDocument,
    Session,
)
from studyslot.models.user import User, UserRole
from studyslot.retry import RetryExhaustedError, with_retry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from pathlib import Path

    from sqlalchemy import Engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.orm import Session as DbSession

logger = structlog.get_logger()

_SESSIONS = TypeAdapter(list[Session])
_REQUIREMENTS = TypeAdapter(list[str])


class EventDict(TypedDict):
    id: int
    experiment_id: str
    event: str
    message: str
    actor_id: str
    worker_id: str
    created_at: str


class Database:
    """The experiment store.

    Every write to an experiment goes through a conditional UPDATE on
    ``(id, version)``. A writer that read a stale version matches zero rows and
    retries its whole read/check/apply cycle, so two writers can never both act
    on the same snapshot.
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        *,
        max_retries: int = 5,
        retry_base_delay: float = 0.01,
        worker_id: str = "",
    ):
        self.db_path = str(db_path)
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.worker_id = worker_id
        self._engine: Engine = create_db_engine(self.db_path)
        self._session_factory: sessionmaker[DbSession] = create_session_factory(self._engine)

    @property
    def engine(self) -> Engine:
        """Expose the SQLAlchemy engine for inspection and advanced use."""
        return self._engine

    @property
    def Session(self) -> sessionmaker[DbSession]:  # noqa: N802
        """Expose the session factory for consumers that need direct access."""
        return self._session_factory

    def init_schema(self) -> None:
        """Create all tables via ORM metadata."""
        Base.metadata.create_all(self._engine)

    def close(self) -> None:
        self._engine.dispose()

    def check_connection(self) -> bool:
        """Verify the database is reachable. Returns True or raises StoreUnavailable."""
        with self._store_errors(), self._session_factory() as session:
            session.execute(text("SELECT 1"))
        return True

    # --- Experiments ---

    def create_experiment(self, experiment: Experiment, actor_id: str = "") -> Experiment:
        with self._store_errors(), self._session_factory() as session:
            row = ExperimentRow(
                id=experiment.id,
                researcher_id=experiment.researcher,
                version=1,
                created_at=_dt_str(experiment.created_at),
                **self._experiment_values(experiment),
            )
            session.add(row)
            session.add(
                self._event_row(
                    experiment.id,
                    "experiment_created",
                    f"Created in status {experiment.status.value}",
                    actor_id,
                )
            )
            session.commit()
        logger.info("experiment_created", experiment_id=experiment.id, status=experiment.status)
        return experiment

    def get_experiment(self, experiment_id: str) -> Experiment | None:
        with self._store_errors(), self._session_factory() as session:
            row = session.get(ExperimentRow, experiment_id)
            if row is None:
                return None
            return self._row_to_experiment(row)

    def require_experiment(self, experiment_id: str) -> Experiment:
        experiment = self.get_experiment(experiment_id)
        if experiment is None:
            raise ExperimentNotFound()
        return experiment

    def list_experiments(
        self,
        status: ExperimentStatus | Iterable[ExperimentStatus] | None = None,
        researcher_id: str | None = None,
        search: str | None = None,
    ) -> list[Experiment]:
        """List experiments, newest first."""
        with self._store_errors(), self._session_factory() as session:
            stmt = select(ExperimentRow).order_by(
                ExperimentRow.created_at.desc(), ExperimentRow.id
            )
            if isinstance(status, ExperimentStatus):
                stmt = stmt.where(ExperimentRow.status == status.value)
            elif status is not None:
                stmt = stmt.where(ExperimentRow.status.in_([s.value for s in status]))
            if researcher_id is not None:
                stmt = stmt.where(ExperimentRow.researcher_id == researcher_id)
            if search:
                pattern = f"%{search.strip()}%"
                stmt = stmt.where(
                    or_(
                        ExperimentRow.title.ilike(pattern),
                        ExperimentRow.description.ilike(pattern),
                    )
                )
            rows = session.scalars(stmt).all()
            return [self._row_to_experiment(r) for r in rows]

    def mutate_experiment(
        self,
        experiment_id: str,
        fn: Callable[[Experiment], Experiment],
        *,
        event: str,
        message: str | Callable[[Experiment, Experiment], str] = "",
        actor_id: str = "",
    ) -> Experiment:
        """Apply *fn* to the stored aggregate as one atomic conditional update.

        *fn* receives the current aggregate and returns the new one, raising a
        SchedulingError when a precondition fails; that error propagates
        untouched and nothing is written. When the write loses the version race
        the read/apply cycle starts over, up to ``max_retries`` times, after
        which StoreUnavailable is raised.
        """

        def attempt() -> Experiment:
            current, version = self._load(experiment_id)
            updated = fn(current)
            if updated == current:
                return current
            updated = updated.model_copy(update={"updated_at": datetime.now(UTC)})
            detail = message(current, updated) if callable(message) else message
            self._write(experiment_id, version, updated, event, detail, actor_id)
            return updated

        return self._with_conflict_retry(attempt, f"mutate:{event}")

    def delete_experiment(
        self,
        experiment_id: str,
        check: Callable[[Experiment], None],
        actor_id: str = "",
    ) -> Experiment:
        """Delete an experiment if *check* accepts the version that is deleted."""

        def attempt() -> Experiment:
            current, version = self._load(experiment_id)
            check(current)
            with self._store_errors(), self._session_factory() as session:
                result = session.execute(
                    delete(ExperimentRow)
                    .where(ExperimentRow.id == experiment_id, ExperimentRow.version == version)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    session.rollback()
                    self._conflict(experiment_id, version)
                session.add(
                    self._event_row(
                        experiment_id,
                        "experiment_deleted",
                        f"Deleted in status {current.status.value}",
                        actor_id,
                    )
                )
                session.commit()
            return current

        return self._with_conflict_retry(attempt, "delete_experiment")

    # --- Audit log ---

    def log_event(
        self,
        experiment_id: str,
        event: str,
        message: str = "",
        actor_id: str = "",
    ) -> None:
        with self._store_errors(), self._session_factory() as session:
            session.add(self._event_row(experiment_id, event, message, actor_id))
            session.commit()

    def get_log(self, experiment_id: str) -> list[EventDict]:
        with self._store_errors(), self._session_factory() as session:
            stmt = (
                select(ExperimentEventRow)
                .where(ExperimentEventRow.experiment_id == experiment_id)
                .order_by(ExperimentEventRow.id)
            )
            rows = session.scalars(stmt).all()
            return [
                {
                    "id": r.id,
                    "experiment_id": r.experiment_id,
                    "event": r.event,
                    "message": r.message,
                    "actor_id": r.actor_id,
                    "worker_id": r.worker_id,
                    "created_at": r.created_at,
                }
                for r in rows
            ]

    # --- Users ---

    def create_user(self, user: User) -> User:
        with self._store_errors(), self._session_factory() as session:
            session.add(
                UserRow(
                    id=user.id,
                    email=user.email,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    role=user.role.value,
                    institution=user.institution,
                    department=user.department,
                    created_at=_dt_str(user.created_at),
                )
            )
            session.commit()
        return user

    def get_user(self, user_id: str) -> User | None:
        with self._store_errors(), self._session_factory() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return None
            return self._row_to_user(row)

    def list_users(self, role: UserRole | None = None) -> list[User]:
        with self._store_errors(), self._session_factory() as session:
            stmt = select(UserRow).order_by(UserRow.last_name, UserRow.first_name)
            if role:
                stmt = stmt.where(UserRow.role == role.value)
            return [self._row_to_user(r) for r in session.scalars(stmt).all()]

    # --- Helpers ---

    def _load(self, experiment_id: str) -> tuple[Experiment, int]:
        with self._store_errors(), self._session_factory() as session:
            row = session.get(ExperimentRow, experiment_id)
            if row is None:
                raise ExperimentNotFound()
            return self._row_to_experiment(row), row.version

    def _write(
        self,
        experiment_id: str,
        version: int,
        experiment: Experiment,
        event: str,
        message: str,
        actor_id: str,
    ) -> None:
        with self._store_errors(), self._session_factory() as session:
            result = session.execute(
                update(ExperimentRow)
                .where(ExperimentRow.id == experiment_id, ExperimentRow.version == version)
                .values(version=version + 1, **self._experiment_values(experiment))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                self._conflict(experiment_id, version)
            session.add(self._event_row(experiment_id, event, message, actor_id))
            session.commit()

    def _conflict(self, experiment_id: str, version: int) -> None:
        store_conflicts_total.inc()
        logger.debug("store_conflict", experiment_id=experiment_id, version=version)
        raise ConcurrentModification(f"Experiment {experiment_id} changed since version {version}")

    def _with_conflict_retry(self, fn: Callable[[], Experiment], label: str) -> Experiment:
        try:
            return with_retry(
                fn,
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                retryable=(ConcurrentModification,),
                label=label,
            )
        except RetryExhaustedError as exc:
            logger.error("store_contention_exhausted", operation=label)
            raise StoreUnavailable(
                "Experiment is being modified concurrently, please retry"
            ) from exc

    @contextmanager
    def _store_errors(self) -> Iterator[None]:
        try:
            yield
        except (OperationalError, InterfaceError) as exc:
            logger.error("store_unavailable", error=str(exc), db_path=self.db_path)
            raise StoreUnavailable() from exc

    def _event_row(
        self, experiment_id: str, event: str, message: str, actor_id: str
    ) -> ExperimentEventRow:
        return ExperimentEventRow(
            experiment_id=experiment_id,
            event=event,
            message=message,
            actor_id=actor_id,
            worker_id=self.worker_id,
        )

    @staticmethod
    def _experiment_values(experiment: Experiment) -> dict[str, Any]:
        review = experiment.admin_review
        irb = experiment.irb_document
        return {
            "title": experiment.title,
            "description": experiment.description,
            "status": experiment.status.value,
            "location": experiment.location,
            "duration": experiment.duration,
            "compensation": experiment.compensation,
            "requirements_json": json.dumps(experiment.requirements),
            "max_participants": experiment.max_participants,
            "sessions_json": _SESSIONS.dump_json(experiment.sessions).decode(),
            "irb_document_json": irb.model_dump_json() if irb else None,
            "reviewed_by": review.reviewer if review else None,
            "review_notes": review.notes if review else "",
            "reviewed_at": _dt_str(review.review_date) if review else None,
            "updated_at": _dt_str(experiment.updated_at),
        }

    @staticmethod
    def _row_to_experiment(row: ExperimentRow) -> Experiment:
        review = None
        if row.reviewed_by is not None and row.reviewed_at is not None:
            review = AdminReview(
                reviewer=row.reviewed_by,
                review_date=_parse_dt(row.reviewed_at),
                notes=row.review_notes,
            )
        irb = None
        if row.irb_document_json:
            irb = IrbDocument.model_validate_json(row.irb_document_json)
        return Experiment(
            id=row.id,
            title=row.title,
            description=row.description,
            researcher=row.researcher_id,
            status=ExperimentStatus(row.status),
            location=row.location,
            duration=row.duration,
            compensation=row.compensation,
            requirements=_REQUIREMENTS.validate_json(row.requirements_json),
            max_participants=row.max_participants,
            sessions=_SESSIONS.validate_json(row.sessions_json),
            irb_document=irb,
            admin_review=review,
            created_at=_parse_dt(row.created_at),
            updated_at=_parse_dt(row.updated_at),
        )

    @staticmethod
    def _row_to_user(row: UserRow) -> User:
        return User(
            id=row.id,
            email=row.email,
            first_name=row.first_name,
            last_name=row.last_name,
            role=UserRole(row.role),
            institution=row.institution,
            department=row.department,
            created_at=_parse_dt(row.created_at),
        )


def _dt_str(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_dt(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
