from __future__ import annotations

from abc import ABC, abstractmethod

from jobscraper.core.models import InsertResult, JobRecord, ScheduleBinding, SearchSpecification


class JobStore(ABC):
    """Persistence consumed by the engine and scheduler.

    ``insert_if_absent`` must report ``inserted=True`` at most once per
    ``(url, source)`` pair.
    """

    @abstractmethod
    def insert_if_absent(self, record: JobRecord) -> InsertResult:
        raise NotImplementedError

    @abstractmethod
    def list_specifications(self) -> list[SearchSpecification]:
        raise NotImplementedError

    @abstractmethod
    def get_specification(self, spec_id: int) -> SearchSpecification | None:
        raise NotImplementedError

    @abstractmethod
    def list_schedule_bindings(self) -> list[ScheduleBinding]:
        raise NotImplementedError

    @abstractmethod
    def update_last_run(self, binding_id: int, last_run: str, next_run: str) -> None:
        raise NotImplementedError
