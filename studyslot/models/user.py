"""Users as seen by the core: an id and a role."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from studyslot.models.base import DomainModel, new_id, utcnow


class UserRole(StrEnum):
    RESEARCHER = "researcher"
    SUBJECT = "subject"
    ADMIN = "admin"


class User(DomainModel):
    id: str = Field(default_factory=new_id, alias="_id")
    email: str
    first_name: str = ""
    last_name: str = ""
    role: UserRole
    institution: str | None = None
    department: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
