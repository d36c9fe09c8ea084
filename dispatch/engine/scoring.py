"""Weighted contractor scoring.

score = 0.4 * availability + 0.3 * rating + 0.3 * distance

Inputs must already be normalized to 0-1; anything outside that range means
a normalization bug upstream and is rejected rather than clamped.
"""

from dispatch.core.errors import InvalidArgumentError
from dispatch.core.schemas import ScoreComponents

AVAILABILITY_WEIGHT = 0.4
RATING_WEIGHT = 0.3
DISTANCE_WEIGHT = 0.3
WEIGHTS_TOTAL = AVAILABILITY_WEIGHT + RATING_WEIGHT + DISTANCE_WEIGHT


def calculate_score(
    availability_score: float,
    rating_score: float,
    distance_score: float,
) -> float:
    """Combine the three normalized signals into one score in 0-1.

    Raises:
        InvalidArgumentError: If any input lies outside [0, 1].
    """
    for name, value in (
        ("availability_score", availability_score),
        ("rating_score", rating_score),
        ("distance_score", distance_score),
    ):
        if not 0.0 <= value <= 1.0:
            msg = f"{name} must be between 0.0 and 1.0, got {value}"
            raise InvalidArgumentError(msg)

    return (
        AVAILABILITY_WEIGHT * availability_score
        + RATING_WEIGHT * rating_score
        + DISTANCE_WEIGHT * distance_score
    )


def score_components(components: ScoreComponents) -> float:
    return calculate_score(
        components.availability_score,
        components.rating_score,
        components.distance_score,
    )
