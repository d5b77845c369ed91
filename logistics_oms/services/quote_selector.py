"""
Quote Selector

Pure ranking of carrier quotes under weighted price / speed / reliability
criteria. No I/O; safe to call from anywhere.

Each dimension is min/max normalized across the candidate set so the best
candidate scores 1 and the worst 0. When every candidate has the same value
the dimension scores 1 for all of them.

Ties on composite score are broken by lower price, then fewer days, then
carrier code, then service type, then quote id.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from logistics_oms.core.exceptions import InvalidInputError
from logistics_oms.modules.shipping.carriers.base import Quote

DEFAULT_RELIABILITY = 0.80

# Composite scores are compared at this precision so float noise never
# decides between two otherwise identical quotes.
SCORE_PRECISION = 9


@dataclass(frozen=True)
class SelectionCriteria:
    """Weights for the composite score. Need not sum to 1."""
    price_weight: float
    speed_weight: float
    reliability_weight: float

    def __post_init__(self):
        for name in ("price_weight", "speed_weight", "reliability_weight"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInputError(f"{name} must be a number", details={name: value})
            if not math.isfinite(value) or value < 0:
                raise InvalidInputError(f"{name} must be a non-negative finite number", details={name: value})
            object.__setattr__(self, name, float(value))

    @property
    def total_weight(self) -> float:
        return self.price_weight + self.speed_weight + self.reliability_weight

    def to_dict(self) -> Dict[str, float]:
        return {
            "price": self.price_weight,
            "speed": self.speed_weight,
            "reliability": self.reliability_weight,
        }


# Named presets; the API layer picks one per order
STANDARD = SelectionCriteria(price_weight=0.6, speed_weight=0.2, reliability_weight=0.2)
EXPRESS = SelectionCriteria(price_weight=0.3, speed_weight=0.6, reliability_weight=0.1)


@dataclass(frozen=True)
class ScoredQuote:
    quote: Quote
    price_score: float
    speed_score: float
    reliability_score: float
    composite_score: float

    def sort_key(self):
        q = self.quote
        return (
            -round(self.composite_score, SCORE_PRECISION),
            q.price,
            q.estimated_delivery_days,
            q.carrier_code,
            q.service_type,
            q.quote_id,
        )


@dataclass(frozen=True)
class SelectedQuote:
    """The winning quote together with how it was chosen."""
    quote: Quote
    criteria: SelectionCriteria
    scored: ScoredQuote
    selected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _normalize(values: Sequence[float]) -> List[float]:
    """Higher input -> higher score, scaled to 0..1."""
    low, high = min(values), max(values)
    if high == low:
        return [1.0] * len(values)
    span = high - low
    return [(v - low) / span for v in values]


def score_quotes(
    quotes: Sequence[Quote],
    criteria: SelectionCriteria,
    reliability: Optional[Mapping[str, float]] = None,
    default_reliability: float = DEFAULT_RELIABILITY,
) -> List[ScoredQuote]:
    """
    Score and rank quotes, best first.

    Args:
        quotes: candidate quotes, all in one currency
        criteria: weights for the composite score
        reliability: carrier code -> reliability figure (e.g. on-time rate)
        default_reliability: figure for carriers missing from the mapping

    Raises:
        InvalidInputError: empty quote list or mixed currencies
    """
    if not quotes:
        raise InvalidInputError("Cannot select from an empty quote list")

    currencies = {q.currency for q in quotes}
    if len(currencies) > 1:
        raise InvalidInputError(
            "Quotes must share one currency before selection",
            details={"currencies": sorted(currencies)},
        )

    reliability = reliability or {}

    # Cheaper and faster are better, so negate before normalizing
    price_scores = _normalize([-float(q.price) for q in quotes])
    speed_scores = _normalize([-float(q.estimated_delivery_days) for q in quotes])
    reliability_scores = _normalize([
        float(reliability.get(q.carrier_code, default_reliability)) for q in quotes
    ])

    scored = []
    for quote, p, s, r in zip(quotes, price_scores, speed_scores, reliability_scores):
        composite = (
            criteria.price_weight * p
            + criteria.speed_weight * s
            + criteria.reliability_weight * r
        )
        scored.append(ScoredQuote(
            quote=quote,
            price_score=p,
            speed_score=s,
            reliability_score=r,
            composite_score=composite,
        ))

    scored.sort(key=ScoredQuote.sort_key)
    return scored


def select_scored(
    quotes: Sequence[Quote],
    criteria: SelectionCriteria,
    reliability: Optional[Mapping[str, float]] = None,
    default_reliability: float = DEFAULT_RELIABILITY,
) -> SelectedQuote:
    """Pick the winner and keep its score breakdown for audit."""
    best = score_quotes(quotes, criteria, reliability, default_reliability)[0]
    return SelectedQuote(quote=best.quote, criteria=criteria, scored=best)


def select_best(
    quotes: Sequence[Quote],
    criteria: SelectionCriteria,
    reliability: Optional[Mapping[str, float]] = None,
    default_reliability: float = DEFAULT_RELIABILITY,
) -> Quote:
    """Return the highest-scoring quote from the input list."""
    return select_scored(quotes, criteria, reliability, default_reliability).quote


def criteria_from_settings(settings, express: bool) -> SelectionCriteria:
    """Build the standard or express preset from configuration."""
    if express:
        return SelectionCriteria(
            price_weight=settings.CRITERIA_EXPRESS_PRICE,
            speed_weight=settings.CRITERIA_EXPRESS_SPEED,
            reliability_weight=settings.CRITERIA_EXPRESS_RELIABILITY,
        )
    return SelectionCriteria(
        price_weight=settings.CRITERIA_STANDARD_PRICE,
        speed_weight=settings.CRITERIA_STANDARD_SPEED,
        reliability_weight=settings.CRITERIA_STANDARD_RELIABILITY,
    )
