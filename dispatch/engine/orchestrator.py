"""Orchestrator: ranks candidate contractors for a job.

Data flow:
  1. Resolve the job and reject past start times
  2. Resolve candidate ids (dispatcher list or all active contractors)
  3. Per candidate, concurrently: distance + travel time → availability →
     normalize → score → open time slots
  4. Sort by score desc, contractor id asc; keep the top N
"""

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import datetime, tzinfo

from dispatch.core.config import RecommendationConfig
from dispatch.core.errors import InvalidArgumentError, NotFoundError
from dispatch.core.schemas import (
    Job,
    Recommendation,
    RecommendationResponse,
    ScoreComponents,
)
from dispatch.engine.availability import AvailabilityEngine
from dispatch.engine.normalizer import normalize_distance, normalize_rating
from dispatch.engine.scoring import score_components
from dispatch.providers.base import ContractorDirectory, DistanceProvider, JobDirectory

logger = logging.getLogger(__name__)

MESSAGE_SUCCESS = "Success"
MESSAGE_NO_CONTRACTORS = "No available contractors"

# Scores equal up to this many decimals rank as ties.
SCORE_SORT_PRECISION = 9

Clock = Callable[[tzinfo | None], datetime]


class RecommendationOrchestrator:
    """Produces the top-N recommendation list for a job."""

    def __init__(
        self,
        contractors: ContractorDirectory,
        jobs: JobDirectory,
        distance: DistanceProvider,
        availability: AvailabilityEngine,
        config: RecommendationConfig | None = None,
        clock: Clock = datetime.now,
    ) -> None:
        self._contractors = contractors
        self._jobs = jobs
        self._distance = distance
        self._availability = availability
        self._config = config or RecommendationConfig()
        self._clock = clock

    async def get_recommendations(
        self,
        job_id: int,
        dispatcher_id: int,
        contractor_list_only: bool = False,
    ) -> RecommendationResponse:
        """Rank contractors for a job.

        Raises:
            NotFoundError: The job does not exist.
            InvalidArgumentError: The job's desired start is not in the future.
        """
        logger.info(
            "Recommendations for job %d by dispatcher %d (list only: %s)",
            job_id, dispatcher_id, contractor_list_only,
        )

        job = await self._jobs.get_by_id(job_id)
        if job is None:
            msg = f"Job with ID {job_id} not found"
            raise NotFoundError(msg)

        now = self._clock(job.desired_start.tzinfo)
        if job.desired_start <= now:
            msg = f"Desired date/time must be in the future: {job.desired_start.isoformat()}"
            raise InvalidArgumentError(msg)

        if contractor_list_only:
            candidate_ids = await self._contractors.get_dispatcher_list(dispatcher_id)
        else:
            candidate_ids = await self._contractors.get_active_ids()
        candidate_ids = list(dict.fromkeys(candidate_ids))

        if not candidate_ids:
            logger.warning(
                "No candidate contractors for job %d (list only: %s)",
                job_id, contractor_list_only,
            )
            return RecommendationResponse(message=MESSAGE_NO_CONTRACTORS)

        scored = await self._score_all(candidate_ids, job)
        scored.sort(key=lambda r: (-round(r.score, SCORE_SORT_PRECISION), r.contractor_id))
        top = scored[: self._config.max_recommendations]

        if not top:
            logger.warning("No contractors could be scored for job %d", job_id)
            return RecommendationResponse(message=MESSAGE_NO_CONTRACTORS)

        logger.info(
            "Job %d: %d candidates, %d scored, returning %d",
            job_id, len(candidate_ids), len(scored), len(top),
        )
        return RecommendationResponse(recommendations=top, message=MESSAGE_SUCCESS)

    async def _score_all(self, candidate_ids: list[int], job: Job) -> list[Recommendation]:
        """Fan out per-candidate scoring, bounded by concurrency and an overall deadline.

        Candidates still running at the deadline are cancelled and omitted.
        """
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def bounded(contractor_id: int) -> Recommendation | None:
            async with semaphore:
                return await self._score_candidate_safely(contractor_id, job)

        tasks = [asyncio.create_task(bounded(cid)) for cid in candidate_ids]
        done, pending = await asyncio.wait(tasks, timeout=self._config.timeout_seconds)

        if pending:
            logger.warning(
                "Recommendation sweep for job %d timed out after %.1fs: %d of %d candidates omitted",
                job.id, self._config.timeout_seconds, len(pending), len(tasks),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        return [r for t in tasks if t in done and (r := t.result()) is not None]

    async def _score_candidate_safely(
        self, contractor_id: int, job: Job,
    ) -> Recommendation | None:
        """Score one candidate; a failure omits that candidate only."""
        try:
            return await self._score_candidate(contractor_id, job)
        except Exception as e:
            logger.warning("Scoring failed for contractor %d: %s", contractor_id, e)
            return None

    async def _score_candidate(self, contractor_id: int, job: Job) -> Recommendation | None:
        contractor = await self._contractors.get_by_id(contractor_id)
        if contractor is None or not contractor.is_active:
            logger.debug("Skipping missing or inactive contractor %d", contractor_id)
            return None

        coords = (job.latitude, job.longitude, contractor.latitude, contractor.longitude)
        distance = await self._distance.get_distance(*coords)
        travel_time = await self._distance.get_travel_time(*coords)

        duration = job.estimated_duration_hours or self._config.default_job_duration_hours
        available = await self._availability.is_available(
            contractor_id, job.desired_start, duration, travel_time,
        )

        components = ScoreComponents(
            availability_score=1.0 if available else 0.0,
            rating_score=normalize_rating(contractor.average_rating),
            distance_score=normalize_distance(distance),
        )
        score = score_components(components)

        slots = await self._availability.get_available_time_slots(
            contractor_id, job.desired_start.date(), job.desired_start.tzinfo,
        )

        logger.debug(
            "Contractor %d: score=%.4f available=%s rating=%s distance=%.2fmi travel=%dm",
            contractor_id, score, available, contractor.average_rating, distance, travel_time,
        )
        return Recommendation(
            contractor_id=contractor_id,
            name=contractor.name,
            score=score,
            rating=contractor.average_rating,
            review_count=contractor.review_count,
            distance=distance,
            travel_time=travel_time,
            available_time_slots=slots,
            components=components,
        )


def export_recommendations_json(response: RecommendationResponse) -> str:
    """Render a response in the caller-facing shape; scores rounded to 2 places."""
    data = {
        "recommendations": [
            {
                "contractorId": r.contractor_id,
                "name": r.name,
                "score": round(r.score, 2),
                "rating": r.rating,
                "reviewCount": r.review_count,
                "distance": round(r.distance, 2),
                "travelTime": r.travel_time,
                "availableTimeSlots": [s.isoformat() for s in r.available_time_slots],
            }
            for r in response.recommendations
        ],
        "message": response.message,
    }
    return json.dumps(data, indent=2)
