"""Re-exports all Pydantic models."""

from studyslot.models.base import DomainModel
from studyslot.models.experiment import (
    AdminReview,
    Experiment,
    ExperimentStatus,
    IrbDocument,
    Participant,
    ParticipantStatus,
    Session,
)
from studyslot.models.user import User, UserRole

__all__ = [
    "AdminReview",
    "DomainModel",
    "Experiment",
    "ExperimentStatus",
    "IrbDocument",
    "Participant",
    "ParticipantStatus",
    "Session",
    "User",
    "UserRole",
]
