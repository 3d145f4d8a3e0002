"""Critical field scoring.

Ranks fields by fan-out (consumers), fan-in (producers) or their ratio and
tiers them by risk.  Only fields produced somewhere take part: a field no
unit writes cannot propagate a change.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from impact_engine.domain.enums import RiskLevel, SortKey
from impact_engine.domain.exceptions import InvalidParameterError
from impact_engine.domain.ports import GraphAccessPort
from impact_engine.domain.rules import (
    CONSUMER_BANDS,
    PRODUCER_BANDS,
    FAN_SORT_KEYS,
    BandCount,
    RiskAssessment,
    bucket,
    classify_risk,
    impact_ratio,
)

logger = structlog.get_logger(__name__)


@dataclass
class CriticalFieldsInput:
    min_consumers: int = 1
    sort_by: SortKey = SortKey.CONSUMERS
    limit: int = 50

    def __post_init__(self) -> None:
        if self.min_consumers < 0:
            raise InvalidParameterError(
                "min-consumers must not be negative", {"min_consumers": self.min_consumers}
            )
        if self.limit < 1:
            raise InvalidParameterError(
                "limit must be a positive integer", {"limit": self.limit}
            )
        try:
            self.sort_by = SortKey(self.sort_by)
        except ValueError as exc:
            raise InvalidParameterError(
                "sort-by must be consumers, producers, or ratio", {"sort_by": self.sort_by}
            ) from exc


@dataclass
class FieldImpact:
    field: str
    producer_count: int
    consumer_count: int
    impact_ratio: float
    total_connections: int

    @property
    def risk(self) -> RiskAssessment:
        return classify_risk(self.consumer_count)


@dataclass
class FieldDistribution:
    """Eligible fields bucketed by consumer and by producer count."""

    total_fields: int
    consumer_bands: list[BandCount]
    producer_bands: list[BandCount]


@dataclass
class CriticalFieldsSummary:
    total_fields: int
    top_fields: list[FieldImpact]
    average_consumers: float
    max_consumers: int
    distribution: FieldDistribution | None = None
    risk_counts: dict[RiskLevel, int] = field(default_factory=dict)


def rank_fields(query: CriticalFieldsInput, graph: GraphAccessPort) -> list[FieldImpact]:
    """Fields with at least one producer and ``min_consumers`` consumers.

    Sorted descending by ``query.sort_by``; ties keep the order the graph
    returned them in.  Ordering and the limit are pushed down to the port.
    """
    fans = graph.field_fan(
        min_consumers=query.min_consumers,
        min_producers=1,
        order_by=query.sort_by,
        limit=query.limit,
    )
    ranked = [
        FieldImpact(
            field=fan.field,
            producer_count=fan.producer_count,
            consumer_count=fan.consumer_count,
            impact_ratio=impact_ratio(fan.consumer_count, fan.producer_count),
            total_connections=fan.producer_count + fan.consumer_count,
        )
        for fan in fans
    ]
    ranked.sort(key=FAN_SORT_KEYS[query.sort_by], reverse=True)
    ranked = ranked[: query.limit]
    logger.info("critical_fields.ranked", sort_by=query.sort_by.value, returned=len(ranked))
    return ranked


def field_distribution(graph: GraphAccessPort) -> FieldDistribution:
    """Histogram of every field with producers > 0 and consumers > 0."""
    fans = graph.field_fan(min_consumers=1, min_producers=1)
    return FieldDistribution(
        total_fields=len(fans),
        consumer_bands=bucket((f.consumer_count for f in fans), CONSUMER_BANDS),
        producer_bands=bucket((f.producer_count for f in fans), PRODUCER_BANDS),
    )


def summarize_critical_fields(
    fields: list[FieldImpact],
    distribution: FieldDistribution | None = None,
    top: int = 10,
) -> CriticalFieldsSummary:
    if not fields:
        return CriticalFieldsSummary(
            total_fields=0,
            top_fields=[],
            average_consumers=0.0,
            max_consumers=0,
            distribution=distribution,
        )

    risk_counts = {level: 0 for level in RiskLevel}
    for item in fields:
        risk_counts[item.risk.level] += 1

    return CriticalFieldsSummary(
        total_fields=len(fields),
        top_fields=fields[:top],
        average_consumers=sum(f.consumer_count for f in fields) / len(fields),
        max_consumers=max(f.consumer_count for f in fields),
        distribution=distribution,
        risk_counts=risk_counts,
    )
