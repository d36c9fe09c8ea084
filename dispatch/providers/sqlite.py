"""SQLite-backed directories over dispatch.core.db."""

import sqlite3
from datetime import date

from dispatch.core.db import (
    get_active_assignments,
    get_active_contractor_ids,
    get_contractor,
    get_dispatcher_list,
    get_job,
)
from dispatch.core.schemas import Assignment, Contractor, Job
from dispatch.providers.base import AssignmentDirectory, ContractorDirectory, JobDirectory


class SqliteContractorDirectory(ContractorDirectory):
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def get_by_id(self, contractor_id: int) -> Contractor | None:
        return get_contractor(self._conn, contractor_id)

    async def get_active_ids(self) -> list[int]:
        return get_active_contractor_ids(self._conn)

    async def get_dispatcher_list(self, dispatcher_id: int) -> list[int]:
        return get_dispatcher_list(self._conn, dispatcher_id)


class SqliteJobDirectory(JobDirectory):
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def get_by_id(self, job_id: int) -> Job | None:
        return get_job(self._conn, job_id)


class SqliteAssignmentDirectory(AssignmentDirectory):
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def get_active_assignments(self, contractor_id: int, day: date) -> list[Assignment]:
        return get_active_assignments(self._conn, contractor_id, day)
