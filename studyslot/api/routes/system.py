"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response

from studyslot import __version__
from studyslot.api.deps import DbDep, DirectoryDep
from studyslot.api.schemas import Envelope, HealthResponse
from studyslot.errors import StoreUnavailable

router = APIRouter(tags=["system"])


@router.get("/health", response_model=Envelope[HealthResponse])
def health_check(
    db: DbDep,
    users: DirectoryDep,
    response: Response,
) -> Envelope[HealthResponse]:
    db_ok = True
    try:
        db.check_connection()
    except StoreUnavailable:
        db_ok = False
    if not db_ok:
        response.status_code = 503

    return Envelope(
        success=db_ok,
        data=HealthResponse(
            status="healthy" if db_ok else "unhealthy",
            version=__version__,
            db_connected=db_ok,
            checks={"database": db_ok, "userCache": users.cache_ok()},
        ),
    )
