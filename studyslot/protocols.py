"""Port interfaces (Protocols) for the collaborators the core depends on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from studyslot.db import EventDict
    from studyslot.models.experiment import Experiment, ExperimentStatus
    from studyslot.models.user import User


@runtime_checkable
class ExperimentStorePort(Protocol):
    """Transactional document store keyed by experiment id."""

    def create_experiment(self, experiment: Experiment, actor_id: str = "") -> Experiment: ...
    def get_experiment(self, experiment_id: str) -> Experiment | None: ...
    def require_experiment(self, experiment_id: str) -> Experiment: ...
    def list_experiments(
        self,
        status: ExperimentStatus | Iterable[ExperimentStatus] | None = None,
        researcher_id: str | None = None,
        search: str | None = None,
    ) -> list[Experiment]: ...
    def mutate_experiment(
        self,
        experiment_id: str,
        fn: Callable[[Experiment], Experiment],
        *,
        event: str,
        message: str | Callable[[Experiment, Experiment], str] = "",
        actor_id: str = "",
    ) -> Experiment: ...
    def delete_experiment(
        self,
        experiment_id: str,
        check: Callable[[Experiment], None],
        actor_id: str = "",
    ) -> Experiment: ...
    def get_log(self, experiment_id: str) -> list[EventDict]: ...


@runtime_checkable
class UserCachePort(Protocol):
    """Key/value cache for user lookups with a staleness window."""

    def get(self, user_id: str) -> User | None: ...
    def set(self, user: User) -> None: ...
    def delete(self, user_id: str) -> None: ...
    def ping(self) -> bool: ...
