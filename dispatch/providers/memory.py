"""In-memory directories built from model lists.

Used as a test double and by callers that already hold a snapshot of the data.
"""

from collections.abc import Iterable
from datetime import date

from dispatch.core.schemas import Assignment, Contractor, Job
from dispatch.providers.base import AssignmentDirectory, ContractorDirectory, JobDirectory


class InMemoryContractorDirectory(ContractorDirectory):
    def __init__(
        self,
        contractors: Iterable[Contractor] = (),
        dispatcher_lists: dict[int, list[int]] | None = None,
    ) -> None:
        self._contractors = {c.id: c for c in contractors}
        self._dispatcher_lists = dict(dispatcher_lists or {})

    async def get_by_id(self, contractor_id: int) -> Contractor | None:
        return self._contractors.get(contractor_id)

    async def get_active_ids(self) -> list[int]:
        return sorted(c.id for c in self._contractors.values() if c.is_active)

    async def get_dispatcher_list(self, dispatcher_id: int) -> list[int]:
        return list(self._dispatcher_lists.get(dispatcher_id, []))


class InMemoryJobDirectory(JobDirectory):
    def __init__(self, jobs: Iterable[Job] = ()) -> None:
        self._jobs = {j.id: j for j in jobs}

    async def get_by_id(self, job_id: int) -> Job | None:
        return self._jobs.get(job_id)


class InMemoryAssignmentDirectory(AssignmentDirectory):
    """Filters assignments by contractor, active status, and job date.

    Assignments without an embedded job are joined against ``jobs`` by id.
    One whose job is unknown keeps ``job=None`` and is returned regardless of
    date, so the engine sees it and skips it.
    """

    def __init__(
        self,
        assignments: Iterable[Assignment] = (),
        jobs: Iterable[Job] = (),
    ) -> None:
        self._assignments = list(assignments)
        self._jobs = {j.id: j for j in jobs}

    async def get_active_assignments(self, contractor_id: int, day: date) -> list[Assignment]:
        result: list[Assignment] = []
        for a in self._assignments:
            if a.contractor_id != contractor_id or not a.is_active:
                continue
            job = a.job or self._jobs.get(a.job_id)
            if job is None:
                result.append(a)
            elif job.desired_start.date() == day:
                result.append(a.model_copy(update={"job": job}))
        return result
