"""Normalize raw contractor signals into comparable 0-1 scores."""

MAX_RATING = 5.0
MAX_DISTANCE_MILES = 50.0
NULL_RATING_BASELINE = 0.5


def normalize_rating(rating: float | None) -> float:
    """Map a 0-5 star rating onto 0-1.

    No rating yet (None) scores a neutral 0.5. Ratings above 5 clamp to 1.0.
    """
    if rating is None:
        return NULL_RATING_BASELINE
    return _clamp(rating / MAX_RATING)


def normalize_distance(miles: float) -> float:
    """Linear decay from 1.0 at 0 miles to 0.0 at MAX_DISTANCE_MILES and beyond."""
    return _clamp(1.0 - miles / MAX_DISTANCE_MILES)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
