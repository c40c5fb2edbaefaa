"""Experiment aggregate: the experiment, its sessions and their participants."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import Field, field_validator, model_validator

from studyslot.errors import SessionNotFound
from studyslot.models.base import DomainModel, as_utc, new_id, utcnow


class ExperimentStatus(StrEnum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantStatus(StrEnum):
    REGISTERED = "registered"
    CONFIRMED = "confirmed"
    ATTENDED = "attended"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"


class Participant(DomainModel):
    """One registration attempt of a user for a session."""

    id: str = Field(default_factory=new_id, alias="_id")
    user: str
    status: ParticipantStatus = ParticipantStatus.REGISTERED
    signup_time: datetime = Field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status != ParticipantStatus.CANCELLED


class Session(DomainModel):
    """A scheduled, capacity-limited occurrence of an experiment."""

    id: str = Field(default_factory=new_id, alias="_id")
    start_time: datetime
    end_time: datetime
    max_participants: int = Field(ge=1)
    location: str = ""
    notes: str | None = None
    participants: list[Participant] = Field(default_factory=list)

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_tz(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _end_after_start(self) -> Session:
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class IrbDocument(DomainModel):
    """Metadata of the uploaded IRB approval; the file itself lives elsewhere."""

    filename: str
    original_name: str = ""
    mimetype: str = ""
    size: int = 0
    upload_date: datetime = Field(default_factory=utcnow)


class AdminReview(DomainModel):
    reviewer: str
    review_date: datetime = Field(default_factory=utcnow)
    notes: str = ""


class Experiment(DomainModel):
    """A proposed study owned by one researcher."""

    id: str = Field(default_factory=new_id, alias="_id")
    title: str
    description: str = ""
    researcher: str
    status: ExperimentStatus = ExperimentStatus.DRAFT
    location: str = ""
    duration: int = Field(default=60, ge=1)
    compensation: str = ""
    requirements: list[str] = Field(default_factory=list)
    max_participants: int = Field(default=1, ge=1)
    sessions: list[Session] = Field(default_factory=list)
    irb_document: IrbDocument | None = None
    admin_review: AdminReview | None = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def get_session(self, session_id: str) -> Session:
        for session in self.sessions:
            if session.id == session_id:
                return session
        raise SessionNotFound()

    def with_session(self, updated: Session) -> Experiment:
        """Return a copy with *updated* replacing the session of the same id."""
        sessions = [updated if s.id == updated.id else s for s in self.sessions]
        return self.model_copy(update={"sessions": sessions})
