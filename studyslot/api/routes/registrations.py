"""Subject registration and participant status endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from studyslot.api.deps import ResearcherDep, ServiceDep, SubjectDep
from studyslot.api.schemas import Envelope, MessageData, UpdateParticipantRequest
from studyslot.models.experiment import Experiment

router = APIRouter(
    prefix="/experiments/{experiment_id}/sessions/{session_id}",
    tags=["registrations"],
)


@router.post("/register", response_model=Envelope[Experiment])
def register(
    experiment_id: str,
    session_id: str,
    caller: SubjectDep,
    service: ServiceDep,
) -> Envelope[Experiment]:
    return Envelope(data=service.register(caller.id, experiment_id, session_id))


@router.delete("/register", response_model=Envelope[MessageData])
def cancel_registration(
    experiment_id: str,
    session_id: str,
    caller: SubjectDep,
    service: ServiceDep,
) -> Envelope[MessageData]:
    service.cancel_registration(caller.id, experiment_id, session_id)
    return Envelope(data=MessageData(message="Registration cancelled successfully"))


@router.patch("/participants/{user_id}", response_model=Envelope[Experiment])
def update_participant(
    experiment_id: str,
    session_id: str,
    user_id: str,
    body: UpdateParticipantRequest,
    caller: ResearcherDep,
    service: ServiceDep,
) -> Envelope[Experiment]:
    updated = service.set_participant_status(
        caller.id, experiment_id, session_id, user_id, body.status
    )
    return Envelope(data=updated)
