"""
Filter predicate compiler.

Translates a ``FilterSelection`` into a backend-agnostic list of predicates.
Predicates combine with AND across the list; ``in`` and ``or`` predicates
carry OR semantics within themselves.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from creator_discovery.models.creator import FilterSelection

PREDICATE_OPS = ("eq", "gte", "lte", "in", "ilike", "or")

PRIMARY_NICHE_COLUMN = "primary_niche"
PLATFORM_COLUMN = "platform"
REGION_COLUMN = "location_region"
BUZZ_SCORE_COLUMN = "buzz_score"
BUZZ_SCORE_CATCH_ALL = "Less than 60%"


@dataclass(frozen=True)
class Predicate:
    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in PREDICATE_OPS:
            raise ValueError(f"Unsupported predicate op: {self.op}")

    @classmethod
    def never(cls, field: str) -> "Predicate":
        """A membership test against the empty set; matches no row on any backend."""
        return cls(field, "in", ())

    @property
    def is_always_false(self) -> bool:
        return self.op == "in" and len(self.value) == 0


@dataclass(frozen=True)
class RangeDomain:
    column: str
    minimum: float
    maximum: float
    # A maximum at the domain ceiling means "no upper bound".
    open_ended: bool = False


RANGE_DOMAINS: Dict[str, RangeDomain] = {
    "followers": RangeDomain("followers_count", 30_000, 300_000),
    "engagement": RangeDomain("engagement_rate", 0, 500, open_ended=True),
    "avg_views": RangeDomain("average_views", 5_000, 5_000_000, open_ended=True),
}


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        cleaned = (value or "").strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            ordered.append(cleaned)
    return tuple(ordered)


def is_range_active(name: str, bounds: Optional[Tuple[float, float]]) -> bool:
    if bounds is None:
        return False
    domain = RANGE_DOMAINS[name]
    return bounds[0] != domain.minimum or bounds[1] != domain.maximum


def compile_range(name: str, bounds: Optional[Tuple[float, float]]) -> List[Predicate]:
    if not is_range_active(name, bounds):
        return []
    domain = RANGE_DOMAINS[name]
    low, high = bounds
    predicates: List[Predicate] = []
    if low != domain.minimum:
        predicates.append(Predicate(domain.column, "gte", low))
    at_ceiling = domain.open_ended and high >= domain.maximum
    if high != domain.maximum and not at_ceiling:
        predicates.append(Predicate(domain.column, "lte", high))
    return predicates


def compile_platforms(platforms: Iterable[str]) -> List[Predicate]:
    names = _unique(platform.lower() for platform in platforms)
    if not names:
        return []
    # Stored platform names have inconsistent casing, so match case-insensitively.
    group = tuple(Predicate(PLATFORM_COLUMN, "ilike", f"%{name}%") for name in names)
    return [Predicate(PLATFORM_COLUMN, "or", group)]


def compile_buzz_scores(ranges: Iterable[str]) -> List[Predicate]:
    """
    Buzz score bands.

    Every stored buzz score is currently 0, so the catch-all band matches
    everything and any selection without it matches nothing. Revisit once
    real buzz scores are populated.
    """
    selected = set(ranges)
    if not selected or BUZZ_SCORE_CATCH_ALL in selected:
        return []
    return [Predicate.never(BUZZ_SCORE_COLUMN)]


def compile_filters(selection: Optional[FilterSelection]) -> List[Predicate]:
    """Compile a filter selection into AND-combined predicates."""
    if selection is None:
        return []

    predicates: List[Predicate] = []

    # Secondary niches are displayed but not filtered on.
    niches = _unique(selection.niches)
    if niches:
        predicates.append(Predicate(PRIMARY_NICHE_COLUMN, "in", niches))

    predicates.extend(compile_platforms(selection.platforms))

    for name in ("followers", "engagement", "avg_views"):
        predicates.extend(compile_range(name, getattr(selection, name)))

    regions = _unique(selection.location_regions)
    if regions:
        predicates.append(Predicate(REGION_COLUMN, "in", regions))

    predicates.extend(compile_buzz_scores(selection.buzz_score_ranges))
    return predicates
