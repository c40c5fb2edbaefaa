"""Administrator endpoints: review queue, approval, rejection and cancellation."""

from __future__ import annotations

from fastapi import APIRouter

from studyslot.api.deps import AdminDep, ServiceDep
from studyslot.api.schemas import Envelope, ReviewRequest
from studyslot.models.experiment import Experiment

router = APIRouter(prefix="/experiments", tags=["reviews"])


@router.get("/admin/pending", response_model=Envelope[list[Experiment]])
def list_pending_reviews(
    _admin: AdminDep,
    service: ServiceDep,
) -> Envelope[list[Experiment]]:
    return Envelope(data=service.list_pending_reviews())


@router.get("/admin/all", response_model=Envelope[list[Experiment]])
def list_all_experiments(
    _admin: AdminDep,
    service: ServiceDep,
) -> Envelope[list[Experiment]]:
    return Envelope(data=service.list_all())


@router.post("/{experiment_id}/approve", response_model=Envelope[Experiment])
def approve_experiment(
    experiment_id: str,
    admin: AdminDep,
    service: ServiceDep,
    body: ReviewRequest | None = None,
) -> Envelope[Experiment]:
    notes = body.notes if body else ""
    return Envelope(data=service.approve(admin.id, experiment_id, notes))


@router.post("/{experiment_id}/reject", response_model=Envelope[Experiment])
def reject_experiment(
    experiment_id: str,
    admin: AdminDep,
    service: ServiceDep,
    body: ReviewRequest | None = None,
) -> Envelope[Experiment]:
    notes = body.notes if body else ""
    return Envelope(data=service.reject(admin.id, experiment_id, notes))


@router.post("/{experiment_id}/cancel", response_model=Envelope[Experiment])
def cancel_experiment(
    experiment_id: str,
    admin: AdminDep,
    service: ServiceDep,
) -> Envelope[Experiment]:
    return Envelope(data=service.cancel_experiment(admin.id, experiment_id))
