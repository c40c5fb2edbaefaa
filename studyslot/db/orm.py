"""SQLAlchemy ORM models mapping to the studyslot database tables."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow_str() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class Base(DeclarativeBase):
    pass


class ExperimentRow(Base):
    """One experiment document.

    Sessions and their participants live in ``sessions_json`` so the whole
    aggregate is written by a single conditional UPDATE guarded by ``version``.
    """

    __tablename__ = "experiments"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    researcher_id: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    location: Mapped[str] = mapped_column(Text, nullable=False, default="")
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    compensation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    requirements_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    sessions_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    irb_document_json: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    # Review fields (written only by the admin review gate)
    reviewed_by: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    review_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reviewed_at: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    # Optimistic concurrency
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Timestamps
    created_at: Mapped[str] = mapped_column(Text, nullable=False, default=_utcnow_str)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False, default=_utcnow_str)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending_review', 'approved', 'rejected', "
            "'open', 'in_progress', 'completed', 'cancelled')",
            name="ck_experiments_status",
        ),
        CheckConstraint("max_participants >= 1", name="ck_experiments_max_participants"),
        Index("idx_experiments_status", "status"),
        Index("idx_experiments_researcher", "researcher_id"),
    )


class ExperimentEventRow(Base):
    """Append-only audit trail of applied mutations.

    No foreign key to ``experiments``: the trail outlives a deleted experiment.
    """

    __tablename__ = "experiment_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    experiment_id: Mapped[str] = mapped_column(Text, nullable=False)
    event: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    actor_id: Mapped[str] = mapped_column(Text, nullable=False, default="")
    worker_id: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[str] = mapped_column(Text, nullable=False, default=_utcnow_str)

    __table_args__ = (Index("idx_experiment_events_experiment", "experiment_id"),)


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    role: Mapped[str] = mapped_column(Text, nullable=False)
    institution: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    department: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    created_at: Mapped[str] = mapped_column(Text, nullable=False, default=_utcnow_str)

    __table_args__ = (
        CheckConstraint(
            "role IN ('researcher', 'subject', 'admin')",
            name="ck_users_role",
        ),
    )
