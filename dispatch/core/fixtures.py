"""Load contractors, jobs, assignments, and dispatcher lists from a YAML data file.

Expected shape::

    contractors:
      - {id: 1, name: "Ada Plumbing", working_hours_start: "09:00", ...}
    jobs:
      - {id: 10, desired_start: "2026-11-02T10:00:00", latitude: 40.7, ...}
    assignments:
      - {id: 100, job_id: 10, contractor_id: 1, status: Accepted}
    dispatcher_lists:
      7: [1, 2, 3]
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from dispatch.core.db import (
    add_to_dispatcher_list,
    upsert_assignment,
    upsert_contractor,
    upsert_job,
)
from dispatch.core.schemas import Assignment, Contractor, Job

logger = logging.getLogger(__name__)


class DataFile(BaseModel):
    """Validated contents of a data import file."""

    contractors: list[Contractor] = Field(default_factory=list)
    jobs: list[Job] = Field(default_factory=list)
    assignments: list[Assignment] = Field(default_factory=list)
    dispatcher_lists: dict[int, list[int]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def assignments_reference_known_rows(self) -> "DataFile":
        job_ids = {j.id for j in self.jobs}
        contractor_ids = {c.id for c in self.contractors}
        for a in self.assignments:
            if a.job_id not in job_ids:
                msg = f"assignment {a.id} references unknown job {a.job_id}"
                raise ValueError(msg)
            if a.contractor_id not in contractor_ids:
                msg = f"assignment {a.id} references unknown contractor {a.contractor_id}"
                raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def job_times_share_awareness(self) -> "DataFile":
        """Aware and naive start times cannot be compared, so a file uses one kind."""
        aware = [j.id for j in self.jobs if j.desired_start.tzinfo is not None]
        if aware and len(aware) != len(self.jobs):
            naive = [j.id for j in self.jobs if j.desired_start.tzinfo is None]
            msg = (
                f"jobs mix timezone-aware {aware} and naive {naive} desired_start values"
            )
            raise ValueError(msg)
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> "DataFile":
        path = Path(path)
        if not path.exists():
            msg = f"Data file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)


def import_data(conn: sqlite3.Connection, path: str | Path) -> dict[str, int]:
    """Write every row of a YAML data file into the database.

    Returns counts per section; dispatcher list entries already present are
    not counted.
    """
    data = DataFile.from_yaml(path)

    for contractor in data.contractors:
        upsert_contractor(conn, contractor)
    for job in data.jobs:
        upsert_job(conn, job)
    for assignment in data.assignments:
        upsert_assignment(conn, assignment)

    listed = 0
    for dispatcher_id, contractor_ids in data.dispatcher_lists.items():
        for contractor_id in contractor_ids:
            if add_to_dispatcher_list(conn, dispatcher_id, contractor_id):
                listed += 1

    counts = {
        "contractors": len(data.contractors),
        "jobs": len(data.jobs),
        "assignments": len(data.assignments),
        "dispatcher_lists": listed,
    }
    logger.info("Imported %s from %s", counts, path)
    return counts
