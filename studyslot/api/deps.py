"""FastAPI dependency injection and the caller boundary."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Header, Request

from studyslot.config import Settings
from studyslot.db import Database
from studyslot.errors import Forbidden, Unauthorized
from studyslot.logging import bind_caller
from studyslot.models.user import User, UserRole
from studyslot.service import SchedulingService
from studyslot.users import UserDirectory


def _get_db(request: Request) -> Database:
    """Get the database instance from app state."""
    return request.app.state.db  # type: ignore[no-any-return]


def _get_settings(request: Request) -> Settings:
    """Get the settings instance from app state."""
    return request.app.state.settings  # type: ignore[no-any-return]


def _get_service(request: Request) -> SchedulingService:
    return request.app.state.service  # type: ignore[no-any-return]


def _get_directory(request: Request) -> UserDirectory:
    return request.app.state.users  # type: ignore[no-any-return]


DbDep = Annotated[Database, Depends(_get_db)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]
ServiceDep = Annotated[SchedulingService, Depends(_get_service)]
DirectoryDep = Annotated[UserDirectory, Depends(_get_directory)]


def _get_caller(
    users: DirectoryDep,
    x_user_id: Annotated[str | None, Header()] = None,
) -> User:
    """Resolve the user id forwarded by the upstream authenticator."""
    if not x_user_id:
        raise Unauthorized()
    user = users.get(x_user_id)
    if user is None:
        raise Unauthorized()
    bind_caller(user.id, user.role.value)
    return user


CallerDep = Annotated[User, Depends(_get_caller)]


def require_role(*roles: UserRole) -> Any:
    """Dependency factory admitting only callers holding one of *roles*."""

    def dependency(caller: CallerDep) -> User:
        if caller.role not in roles:
            raise Forbidden()
        return caller

    return Depends(dependency)


ResearcherDep = Annotated[User, require_role(UserRole.RESEARCHER)]
SubjectDep = Annotated[User, require_role(UserRole.SUBJECT)]
AdminDep = Annotated[User, require_role(UserRole.ADMIN)]
