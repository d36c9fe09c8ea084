"""Availability engine: can a contractor take a job at a given time?

A job is accepted when:
  1. its start and end (duration + travel padding) both fall inside the
     contractor's working hours, compared by time of day, half-open
     [start, end);
  2. it leaves at least ``buffer_time_minutes`` before and after every active
     assignment that day (a gap exactly equal to the buffer is fine);
  3. it does not overlap any active assignment.
"""

import logging
from datetime import date, datetime, time, timedelta, tzinfo

from dispatch.core.config import AvailabilityConfig
from dispatch.core.errors import InvalidArgumentError, NotFoundError
from dispatch.core.schemas import Assignment
from dispatch.providers.base import AssignmentDirectory, ContractorDirectory

logger = logging.getLogger(__name__)

SLOT_LENGTH = timedelta(hours=1)


def has_time_overlap(
    start1: datetime, end1: datetime, start2: datetime, end2: datetime,
) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap."""
    return start1 < end2 and start2 < end1


def is_within_working_hours(moment: datetime, start: time, end: time) -> bool:
    """Compare time of day only: ``start <= t < end``."""
    return start <= moment.time() < end


def assignment_window(assignment: Assignment) -> tuple[datetime, datetime] | None:
    """Return [start, end) of an assignment's job, or None if the job is unknown."""
    job = assignment.job
    if job is None:
        return None
    duration = job.estimated_duration_hours or 0.0
    return job.desired_start, job.desired_start + timedelta(hours=duration)


def check_comparable(moment: datetime, assignment: Assignment, window_start: datetime) -> None:
    """Raise InvalidArgumentError if one datetime is timezone-aware and the other naive."""
    if (moment.tzinfo is None) != (window_start.tzinfo is None):
        msg = (
            f"Cannot compare {moment.isoformat()} with assignment {assignment.id} "
            f"starting {window_start.isoformat()}: mixed timezone-aware and naive times"
        )
        raise InvalidArgumentError(msg)


class AvailabilityEngine:
    """Checks contractor calendars against working hours and active assignments.

    The buffer is read from config once, at construction.
    """

    def __init__(
        self,
        contractors: ContractorDirectory,
        assignments: AssignmentDirectory,
        config: AvailabilityConfig | None = None,
    ) -> None:
        self._contractors = contractors
        self._assignments = assignments
        self._buffer = timedelta(minutes=(config or AvailabilityConfig()).buffer_time_minutes)

    @property
    def buffer(self) -> timedelta:
        return self._buffer

    async def is_available(
        self,
        contractor_id: int,
        desired_start: datetime,
        duration_hours: float,
        travel_time_minutes: int = 0,
    ) -> bool:
        """Return True if the contractor can take the job without conflicts.

        Raises:
            InvalidArgumentError: Non-positive id or duration, negative travel time,
                or an assignment whose start differs from desired_start in
                timezone awareness.
            NotFoundError: The contractor does not exist.
        """
        if contractor_id <= 0:
            msg = f"Contractor ID must be a positive number, got {contractor_id}"
            raise InvalidArgumentError(msg)
        if duration_hours <= 0:
            msg = f"Job duration must be greater than zero, got {duration_hours}"
            raise InvalidArgumentError(msg)
        if travel_time_minutes < 0:
            msg = f"Travel time cannot be negative, got {travel_time_minutes}"
            raise InvalidArgumentError(msg)

        contractor = await self._contractors.get_by_id(contractor_id)
        if contractor is None:
            msg = f"Contractor with ID {contractor_id} not found"
            raise NotFoundError(msg)

        job_end = desired_start + timedelta(hours=duration_hours, minutes=travel_time_minutes)
        hours = (contractor.working_hours_start, contractor.working_hours_end)

        if not is_within_working_hours(desired_start, *hours):
            logger.info(
                "Contractor %d unavailable at %s: job starts outside working hours",
                contractor_id, desired_start,
            )
            return False
        if not is_within_working_hours(job_end, *hours):
            logger.info(
                "Contractor %d unavailable at %s: job extends beyond working hours",
                contractor_id, desired_start,
            )
            return False

        active = await self._assignments.get_active_assignments(
            contractor_id, desired_start.date(),
        )
        for assignment in active:
            window = assignment_window(assignment)
            if window is None:
                continue
            existing_start, existing_end = window
            check_comparable(desired_start, assignment, existing_start)

            # Desired job first, existing job after it
            if job_end <= existing_start < job_end + self._buffer:
                logger.info(
                    "Contractor %d unavailable at %s: insufficient buffer before assignment %d",
                    contractor_id, desired_start, assignment.id,
                )
                return False

            # Existing job first, desired job after it
            if existing_end <= desired_start < existing_end + self._buffer:
                logger.info(
                    "Contractor %d unavailable at %s: insufficient buffer after assignment %d",
                    contractor_id, desired_start, assignment.id,
                )
                return False

            if has_time_overlap(desired_start, job_end, existing_start, existing_end):
                logger.info(
                    "Contractor %d unavailable at %s: overlaps assignment %d (%s - %s)",
                    contractor_id, desired_start, assignment.id, existing_start, existing_end,
                )
                return False

        logger.info(
            "Contractor %d available at %s for %sh (+%dm travel)",
            contractor_id, desired_start, duration_hours, travel_time_minutes,
        )
        return True

    async def get_available_time_slots(
        self,
        contractor_id: int,
        day: date,
        tz: tzinfo | None = None,
    ) -> list[datetime]:
        """Return one-hour slot starts within working hours that are free of assignments.

        Slots step by one hour from the start of working hours; a trailing
        partial hour is not offered. Unknown contractors yield an empty list.
        """
        contractor = await self._contractors.get_by_id(contractor_id)
        if contractor is None:
            logger.warning("Time slots requested for unknown contractor %d", contractor_id)
            return []

        current = datetime.combine(day, contractor.working_hours_start, tzinfo=tz)
        windows: list[tuple[datetime, datetime]] = []
        for assignment in await self._assignments.get_active_assignments(contractor_id, day):
            window = assignment_window(assignment)
            if window is not None:
                check_comparable(current, assignment, window[0])
                windows.append(window)

        end = datetime.combine(day, contractor.working_hours_end, tzinfo=tz)
        slots: list[datetime] = []
        while current + SLOT_LENGTH <= end:
            slot_end = current + SLOT_LENGTH
            if not any(has_time_overlap(current, slot_end, s, e) for s, e in windows):
                slots.append(current)
            current = slot_end
        return slots
