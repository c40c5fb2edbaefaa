"""Experiment CRUD endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from studyslot.api.deps import CallerDep, ResearcherDep, ServiceDep, SubjectDep
from studyslot.api.schemas import (
    CreateExperimentRequest,
    Envelope,
    LogEntryResponse,
    MessageData,
    UpdateExperimentRequest,
)
from studyslot.models.experiment import Experiment, ExperimentStatus

router = APIRouter(prefix="/experiments", tags=["experiments"])


@router.get("", response_model=Envelope[list[Experiment]])
def list_experiments(
    caller: CallerDep,
    service: ServiceDep,
    status: ExperimentStatus | None = None,
    search: str | None = None,
) -> Envelope[list[Experiment]]:
    return Envelope(data=service.list_for(caller, status=status, search=search))


@router.post("", response_model=Envelope[Experiment], status_code=201)
def create_experiment(
    body: CreateExperimentRequest,
    caller: ResearcherDep,
    service: ServiceDep,
) -> Envelope[Experiment]:
    fields = body.changes()
    status = fields.pop("status", None)
    return Envelope(data=service.create_experiment(caller.id, fields, status=status))


@router.get("/my-sessions", response_model=Envelope[list[Experiment]])
def my_sessions(
    caller: SubjectDep,
    service: ServiceDep,
) -> Envelope[list[Experiment]]:
    return Envelope(data=service.my_sessions(caller.id))


@router.get("/{experiment_id}", response_model=Envelope[Experiment])
def get_experiment(
    experiment_id: str,
    _caller: CallerDep,
    service: ServiceDep,
) -> Envelope[Experiment]:
    return Envelope(data=service.get_experiment(experiment_id))


@router.patch("/{experiment_id}", response_model=Envelope[Experiment])
def update_experiment(
    experiment_id: str,
    body: UpdateExperimentRequest,
    caller: ResearcherDep,
    service: ServiceDep,
) -> Envelope[Experiment]:
    changes = body.changes(keep_none=frozenset({"irb_document"}))
    status = changes.pop("status", None)
    updated = service.update_experiment(caller.id, experiment_id, changes, status=status)
    return Envelope(data=updated)


@router.delete("/{experiment_id}", response_model=Envelope[MessageData])
def delete_experiment(
    experiment_id: str,
    caller: ResearcherDep,
    service: ServiceDep,
) -> Envelope[MessageData]:
    service.delete_experiment(caller.id, experiment_id)
    return Envelope(data=MessageData(message="Experiment deleted successfully"))


@router.get("/{experiment_id}/log", response_model=Envelope[list[LogEntryResponse]])
def get_experiment_log(
    experiment_id: str,
    caller: CallerDep,
    service: ServiceDep,
) -> Envelope[list[LogEntryResponse]]:
    entries = service.get_log(caller, experiment_id)
    return Envelope(data=[LogEntryResponse(**e) for e in entries])
