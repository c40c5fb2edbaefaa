"""Session endpoints for the owning researcher."""

from __future__ import annotations

from fastapi import APIRouter

from studyslot.api.deps import ResearcherDep, ServiceDep
from studyslot.api.schemas import (
    CreateSessionRequest,
    Envelope,
    MessageData,
    UpdateSessionRequest,
)
from studyslot.models.experiment import Experiment

router = APIRouter(prefix="/experiments/{experiment_id}/sessions", tags=["sessions"])


@router.post("", response_model=Envelope[Experiment], status_code=201)
def add_session(
    experiment_id: str,
    body: CreateSessionRequest,
    caller: ResearcherDep,
    service: ServiceDep,
) -> Envelope[Experiment]:
    updated = service.add_session(
        caller.id,
        experiment_id,
        start_time=body.start_time,
        end_time=body.end_time,
        location=body.location,
        max_participants=body.max_participants,
        notes=body.notes,
    )
    return Envelope(data=updated)


@router.patch("/{session_id}", response_model=Envelope[Experiment])
def update_session(
    experiment_id: str,
    session_id: str,
    body: UpdateSessionRequest,
    caller: ResearcherDep,
    service: ServiceDep,
) -> Envelope[Experiment]:
    changes = body.changes(keep_none=frozenset({"notes"}))
    return Envelope(data=service.update_session(caller.id, experiment_id, session_id, changes))


@router.delete("/{session_id}", response_model=Envelope[MessageData])
def delete_session(
    experiment_id: str,
    session_id: str,
    caller: ResearcherDep,
    service: ServiceDep,
) -> Envelope[MessageData]:
    service.delete_session(caller.id, experiment_id, session_id)
    return Envelope(data=MessageData(message="Session deleted successfully"))
