"""Abstract collaborators consumed by the engine."""

from abc import ABC, abstractmethod
from datetime import date

from dispatch.core.schemas import Assignment, Contractor, Job


class ContractorDirectory(ABC):
    """Read access to contractor profiles and candidate id sets."""

    @abstractmethod
    async def get_by_id(self, contractor_id: int) -> Contractor | None:
        """Return the contractor, or None if it does not exist."""

    @abstractmethod
    async def get_active_ids(self) -> list[int]:
        """Return ids of all active contractors."""

    @abstractmethod
    async def get_dispatcher_list(self, dispatcher_id: int) -> list[int]:
        """Return contractor ids on a dispatcher's curated list."""


class JobDirectory(ABC):
    @abstractmethod
    async def get_by_id(self, job_id: int) -> Job | None:
        """Return the job, or None if it does not exist."""


class AssignmentDirectory(ABC):
    @abstractmethod
    async def get_active_assignments(self, contractor_id: int, day: date) -> list[Assignment]:
        """Return Pending/Accepted/InProgress assignments whose job falls on ``day``."""


class DistanceProvider(ABC):
    """Road distance and travel time between two coordinates."""

    @abstractmethod
    async def get_distance(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float,
    ) -> float:
        """Distance in miles."""

    @abstractmethod
    async def get_travel_time(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float,
    ) -> int:
        """Travel time in whole minutes."""

    async def close(self) -> None:
        """Release network resources. No-op unless overridden."""


class DistanceCache(ABC):
    """Key/value store for distance lookups.

    Implementations raise CacheFailureError when the backing store fails.
    """

    @abstractmethod
    def get(self, key: str) -> float | None:
        """Return the cached value, or None on a miss."""

    @abstractmethod
    def set(self, key: str, value: float) -> None:
        """Store a value."""
