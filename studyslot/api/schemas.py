"""API request/response schemas (separate from domain models)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from studyslot.models.experiment import ExperimentStatus, IrbDocument, ParticipantStatus

T = TypeVar("T")

# --- Responses ---


class Envelope(BaseModel, Generic[T]):
    """``{"success": true, "data": ...}`` wrapper shared by every endpoint."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: T


class MessageData(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class LogEntryResponse(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    experiment_id: str
    event: str
    message: str
    actor_id: str
    worker_id: str
    created_at: str


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    status: str
    version: str
    db_connected: bool
    checks: dict[str, bool] = Field(default_factory=dict)


# --- Requests ---


class _Request(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def changes(self, *, keep_none: frozenset[str] = frozenset()) -> dict[str, Any]:
        """Fields the client actually sent, snake_cased; explicit nulls dropped."""
        sent = self.model_dump(exclude_unset=True)
        return {k: v for k, v in sent.items() if v is not None or k in keep_none}


class CreateExperimentRequest(_Request):
    title: str = Field(min_length=1)
    description: str = ""
    location: str = ""
    duration: int = Field(default=60, ge=1)
    compensation: str = ""
    requirements: list[str] = Field(default_factory=list)
    max_participants: int = Field(default=1, ge=1)
    irb_document: IrbDocument | None = None
    status: ExperimentStatus | None = None


class UpdateExperimentRequest(_Request):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    location: str | None = None
    duration: int | None = Field(default=None, ge=1)
    compensation: str | None = None
    requirements: list[str] | None = None
    max_participants: int | None = Field(default=None, ge=1)
    irb_document: IrbDocument | None = None
    status: ExperimentStatus | None = None


class CreateSessionRequest(_Request):
    start_time: datetime
    end_time: datetime
    location: str | None = None
    max_participants: int | None = Field(default=None, ge=1)
    notes: str | None = None


class UpdateSessionRequest(_Request):
    start_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = None
    max_participants: int | None = Field(default=None, ge=1)
    notes: str | None = None


class UpdateParticipantRequest(_Request):
    status: ParticipantStatus


class ReviewRequest(_Request):
    notes: str = ""
