"""Score aggregation for batch analysis and staged idea reports.

Pure functions, no DB access. All rounding is half-up, so 2.5 rounds to 3
rather than to the nearest even integer.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

RATING_DIMENSIONS: tuple[str, ...] = (
    "market_potential",
    "feasibility",
    "innovation",
    "competitiveness",
    "profit_potential",
)

MAX_RATING = 10


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round ``value`` half away from zero to ``ndigits`` decimals."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass
class BatchScore:
    """Aggregate of the personas that produced a rating.

    ``scored`` is False when no persona succeeded, which distinguishes a
    missing evaluation from a genuine zero.
    """

    aggregate_ratings: dict[str, float] = field(default_factory=dict)
    overall_score: int = 0
    scored: bool = False
    succeeded: int = 0


def aggregate_batch(ratings: list[dict[str, int]]) -> BatchScore:
    """Average each rating dimension across successful personas.

    The overall score is the sum of the unrounded means over the maximum
    possible sum, as a percentage rounded half-up. Means are reported to one
    decimal place.
    """
    if not ratings:
        return BatchScore(aggregate_ratings={dim: 0.0 for dim in RATING_DIMENSIONS})

    means = {dim: sum(r[dim] for r in ratings) / len(ratings) for dim in RATING_DIMENSIONS}
    max_total = MAX_RATING * len(RATING_DIMENSIONS)
    overall = int(round_half_up(sum(means.values()) / max_total * 100))

    return BatchScore(
        aggregate_ratings={dim: round_half_up(mean, 1) for dim, mean in means.items()},
        overall_score=overall,
        scored=True,
        succeeded=len(ratings),
    )


def average_stage_score(scores: list[int]) -> int | None:
    """Mean of completed stage scores rounded half-up; None when nothing is completed."""
    if not scores:
        return None
    return int(round_half_up(sum(scores) / len(scores)))
