"""Core data models for the recommendation engine."""

from datetime import datetime, time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TradeType(str, Enum):
    FLOORING = "Flooring"
    HVAC = "HVAC"
    PLUMBING = "Plumbing"
    ELECTRICAL = "Electrical"
    OTHER = "Other"


class AssignmentStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


# Only these block a contractor's calendar.
ACTIVE_ASSIGNMENT_STATUSES = frozenset({
    AssignmentStatus.PENDING,
    AssignmentStatus.ACCEPTED,
    AssignmentStatus.IN_PROGRESS,
})


class Job(BaseModel):
    """A job posted by a customer."""

    model_config = ConfigDict(frozen=True)

    id: int
    desired_start: datetime
    estimated_duration_hours: float | None = Field(default=None, gt=0.0)
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    job_type: TradeType = TradeType.OTHER
    location: str = ""
    description: str = ""


class Contractor(BaseModel):
    """A contractor profile with a daily working-hours window."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    working_hours_start: time
    working_hours_end: time
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    average_rating: float | None = Field(default=None, ge=0.0)
    review_count: int = Field(default=0, ge=0)
    is_active: bool = True
    trade_type: TradeType | None = None


class Assignment(BaseModel):
    """An existing commitment of a contractor to a job.

    ``job`` is the joined job row; None when the job could not be resolved.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    job_id: int
    contractor_id: int
    status: AssignmentStatus = AssignmentStatus.PENDING
    job: Job | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_ASSIGNMENT_STATUSES


class ScoreComponents(BaseModel):
    """Normalized inputs to the weighted score."""

    model_config = ConfigDict(frozen=True)

    availability_score: float = Field(ge=0.0, le=1.0)
    rating_score: float = Field(ge=0.0, le=1.0)
    distance_score: float = Field(ge=0.0, le=1.0)


class Recommendation(BaseModel):
    """A scored candidate contractor for a job."""

    model_config = ConfigDict(frozen=True)

    contractor_id: int
    name: str
    score: float = Field(ge=0.0, le=1.0)
    rating: float | None = None
    review_count: int = 0
    distance: float
    travel_time: int
    available_time_slots: list[datetime] = Field(default_factory=list)
    components: ScoreComponents


class RecommendationResponse(BaseModel):
    """Ranked recommendations plus a status message for the caller."""

    recommendations: list[Recommendation] = Field(default_factory=list)
    message: str
