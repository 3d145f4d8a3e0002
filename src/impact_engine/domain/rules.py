"""Analysis rules as pure functions.

Everything here is deterministic: no I/O, no port access.  The query
modules under ``impact_engine.application.queries`` combine these rules
with data fetched through the port.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Protocol

from impact_engine.domain.entities import ChainQuery
from impact_engine.domain.enums import Direction, NodeKind, RiskLevel, SortKey


# ---------------------------------------------------------------------------
# Chain queries (one descriptor per depth level)
# ---------------------------------------------------------------------------


def chain_query_for_depth(
    identifier: str,
    start: NodeKind,
    direction: Direction,
    depth: int,
    limit: int,
) -> ChainQuery:
    """Build the descriptor for the chains of exactly *depth* hops.

    Level 1 from a unit reaches the units that consume (downstream) or
    produce (upstream) the fields next to it; each further level adds one
    field -> unit hop.
    """
    if start not in (NodeKind.UNIT, NodeKind.FIELD):
        raise ValueError(f"chains cannot start at a {start.value}")
    return ChainQuery(
        identifier=identifier,
        start=start,
        direction=direction,
        depth=depth,
        limit=limit,
    )


def chain_queries(
    identifier: str,
    start: NodeKind,
    direction: Direction,
    max_depth: int,
    limit: int,
) -> list[ChainQuery]:
    """Descriptors for every level ``1..max_depth``."""
    return [
        chain_query_for_depth(identifier, start, direction, depth, limit)
        for depth in range(1, max_depth + 1)
    ]


# ---------------------------------------------------------------------------
# Risk tiers (consumer count thresholds)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RiskAssessment:
    """Risk tier of a field with its fixed impact statement and advice."""

    level: RiskLevel
    impact: str
    recommendation: str


RISK_TABLE: dict[RiskLevel, RiskAssessment] = {
    RiskLevel.CRITICAL: RiskAssessment(
        RiskLevel.CRITICAL,
        "System-wide failure possible",
        "Implement extensive testing and rollback procedures",
    ),
    RiskLevel.HIGH: RiskAssessment(
        RiskLevel.HIGH,
        "Major subsystem disruption",
        "Require comprehensive impact analysis before changes",
    ),
    RiskLevel.MEDIUM: RiskAssessment(
        RiskLevel.MEDIUM,
        "Moderate impact across multiple functions",
        "Thorough testing of downstream effects required",
    ),
    RiskLevel.LOW: RiskAssessment(
        RiskLevel.LOW,
        "Minimal system disruption",
        "Monitor for changes",
    ),
}


def risk_level(consumer_count: int) -> RiskLevel:
    """Tier a field by how many units consume it."""
    if consumer_count > 1000:
        return RiskLevel.CRITICAL
    if consumer_count > 500:
        return RiskLevel.HIGH
    if consumer_count > 100:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def classify_risk(consumer_count: int) -> RiskAssessment:
    return RISK_TABLE[risk_level(consumer_count)]


# ---------------------------------------------------------------------------
# Field ranking
# ---------------------------------------------------------------------------


class _Fan(Protocol):
    producer_count: int
    consumer_count: int


def impact_ratio(consumer_count: int, producer_count: int) -> float:
    """Consumers per producer; a field nobody produces ranks first."""
    if producer_count == 0:
        return float("inf")
    return consumer_count / producer_count


# Descending sort keys, shared by the in-memory store and the ranking query
FAN_SORT_KEYS: dict[SortKey, Callable[[_Fan], float]] = {
    SortKey.CONSUMERS: lambda f: f.consumer_count,
    SortKey.PRODUCERS: lambda f: f.producer_count,
    SortKey.RATIO: lambda f: impact_ratio(f.consumer_count, f.producer_count),
}


# ---------------------------------------------------------------------------
# Distribution bands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Band:
    """Half-open interval ``[low, high)``; ``high=None`` means unbounded."""

    label: str
    low: int
    high: int | None = None

    def contains(self, value: int) -> bool:
        return value >= self.low and (self.high is None or value < self.high)


@dataclass
class BandCount:
    """Population of one band."""

    label: str
    count: int
    percentage: float


# Consumer-count bands.  These boundaries are independent of the risk tier
# thresholds above.
CONSUMER_BANDS: tuple[Band, ...] = (
    Band("1-9", 1, 10),
    Band("10-99", 10, 100),
    Band("100-999", 100, 1000),
    Band("1000+", 1000, None),
)

PRODUCER_BANDS: tuple[Band, ...] = (
    Band("1", 1, 2),
    Band("2-3", 2, 4),
    Band("4-5", 4, 6),
    Band("6+", 6, None),
)


def bucket(values: Iterable[int], bands: tuple[Band, ...]) -> list[BandCount]:
    """Count *values* per band and express each count as a percentage.

    Values outside every band are ignored.  An empty population yields zero
    counts and zero percentages.
    """
    counts = [0] * len(bands)
    for value in values:
        for idx, band in enumerate(bands):
            if band.contains(value):
                counts[idx] += 1
                break

    total = sum(counts)
    return [
        BandCount(
            label=band.label,
            count=count,
            percentage=round(count / total * 100, 2) if total else 0.0,
        )
        for band, count in zip(bands, counts)
    ]


# ---------------------------------------------------------------------------
# System fragility
# ---------------------------------------------------------------------------

BASE_ACTIONS: tuple[str, ...] = (
    "Implement comprehensive impact analysis tools",
    "Establish change approval process for critical fields",
    "Create automated testing for high-impact dependencies",
    "Document business logic for critical units",
    "Consider service boundaries to reduce coupling",
)
EMERGENCY_ACTION = "URGENT: Establish emergency rollback procedures"
REDESIGN_ACTION = "Consider system architecture redesign"


def fragility_rating(high_risk_count: int) -> RiskLevel:
    """Rate the whole system from its number of HIGH/CRITICAL fields."""
    if high_risk_count > 20:
        return RiskLevel.CRITICAL
    if high_risk_count > 10:
        return RiskLevel.HIGH
    if high_risk_count > 5:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def recommended_actions(fragility: RiskLevel) -> list[str]:
    actions = list(BASE_ACTIONS)
    if fragility is RiskLevel.CRITICAL:
        actions.insert(0, EMERGENCY_ACTION)
        actions.append(REDESIGN_ACTION)
    return actions


# ---------------------------------------------------------------------------
# Path rendering
# ---------------------------------------------------------------------------


def describe_path(units: list[str], fields: list[str]) -> str:
    """Render ``A --[F1]--> B --[F2]--> C``.

    A missing field label between two units renders as a bare arrow.
    """
    if not units:
        return ""
    parts: list[str] = []
    for i, unit in enumerate(units[:-1]):
        parts.append(unit)
        parts.append(f"--[{fields[i]}]-->" if i < len(fields) else "-->")
    parts.append(units[-1])
    return " ".join(parts)
