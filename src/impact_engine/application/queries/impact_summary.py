"""System-wide impact summary.

Combines four independent aggregations (global stats, connectivity, field
distribution and risk assessment) into one ``SystemReport``.  The
aggregations fan out on a thread pool and the report is only built once all
of them have finished; any failure aborts the whole summary.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

import structlog

from impact_engine.application.queries.critical_fields import (
    CriticalFieldsInput,
    FieldImpact,
    field_distribution,
    rank_fields,
)
from impact_engine.domain.enums import RiskLevel, SortKey
from impact_engine.domain.exceptions import InvalidParameterError
from impact_engine.domain.ports import GraphAccessPort
from impact_engine.domain.rules import BandCount, fragility_rating, recommended_actions

logger = structlog.get_logger(__name__)


@dataclass
class SummaryOptions:
    top_count: int = 10
    rank_limit: int = 50
    include_connectivity: bool = True
    include_distribution: bool = True

    def __post_init__(self) -> None:
        if self.top_count < 1:
            raise InvalidParameterError(
                "top-count must be a positive integer", {"top_count": self.top_count}
            )
        if self.rank_limit < 1:
            raise InvalidParameterError(
                "rank limit must be a positive integer", {"rank_limit": self.rank_limit}
            )


@dataclass
class SystemStats:
    total_units: int
    total_fields: int
    total_edges: int
    avg_input_fields: float
    avg_output_fields: float
    max_input_fields: int
    max_output_fields: int


@dataclass
class ConnectivityStats:
    """Connectivity under the single-component assumption.

    No component analysis is run: the whole unit population is reported as
    one component with no isolated units.
    """

    connected_components: int
    largest_component_size: int
    isolated_units: int
    highly_connected_units: list[tuple[str, int]] = field(default_factory=list)


@dataclass
class FieldDistributionReport:
    consumer_bands: list[BandCount]
    producer_bands: list[BandCount]
    top_consumer_fields: list[FieldImpact]
    top_producer_fields: list[FieldImpact]


@dataclass
class FieldRisk:
    field: str
    consumer_count: int
    level: RiskLevel
    impact: str
    recommendation: str


@dataclass
class RiskReport:
    critical_fields: list[FieldRisk]
    high_risk_count: int
    fragility: RiskLevel
    recommended_actions: list[str]


@dataclass
class SystemReport:
    stats: SystemStats
    connectivity: ConnectivityStats | None
    distribution: FieldDistributionReport | None
    risk: RiskReport
    generated_at: datetime


def summarize(
    graph: GraphAccessPort,
    options: SummaryOptions | None = None,
    max_workers: int | None = None,
) -> SystemReport:
    """Build the system report, running the aggregations concurrently."""
    options = options or SummaryOptions()
    tasks: dict[str, Callable[[], Any]] = {
        "stats": lambda: system_stats(graph),
        "risk": lambda: assess_risk(graph, options.rank_limit),
    }
    if options.include_connectivity:
        tasks["connectivity"] = lambda: connectivity_stats(graph, options.top_count)
    if options.include_distribution:
        tasks["distribution"] = lambda: distribution_report(graph, options.top_count)

    log = logger.bind(parts=sorted(tasks))
    log.debug("summary.start")

    workers = max(1, min(max_workers or len(tasks), len(tasks)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="summary") as pool:
        futures = {name: pool.submit(task) for name, task in tasks.items()}
        results = {name: future.result() for name, future in futures.items()}

    report = SystemReport(
        stats=results["stats"],
        connectivity=results.get("connectivity"),
        distribution=results.get("distribution"),
        risk=results["risk"],
        generated_at=datetime.now(timezone.utc),
    )
    log.info("summary.complete", fragility=report.risk.fragility.value)
    return report


def system_stats(graph: GraphAccessPort) -> SystemStats:
    counts = graph.graph_counts()
    fans = graph.unit_fan()
    inputs = [f.input_count for f in fans]
    outputs = [f.output_count for f in fans]
    return SystemStats(
        total_units=counts.units,
        total_fields=counts.fields,
        total_edges=counts.edges,
        avg_input_fields=sum(inputs) / len(inputs) if inputs else 0.0,
        avg_output_fields=sum(outputs) / len(outputs) if outputs else 0.0,
        max_input_fields=max(inputs, default=0),
        max_output_fields=max(outputs, default=0),
    )


def connectivity_stats(graph: GraphAccessPort, top: int = 10) -> ConnectivityStats:
    total_units = graph.graph_counts().units
    touched = [f for f in graph.unit_fan() if f.touch_points > 0]
    touched.sort(key=lambda f: f.touch_points, reverse=True)
    return ConnectivityStats(
        connected_components=1,
        largest_component_size=total_units,
        isolated_units=0,
        highly_connected_units=[(f.unit, f.touch_points) for f in touched[:top]],
    )


def distribution_report(graph: GraphAccessPort, top: int = 10) -> FieldDistributionReport:
    histogram = field_distribution(graph)
    return FieldDistributionReport(
        consumer_bands=histogram.consumer_bands,
        producer_bands=histogram.producer_bands,
        top_consumer_fields=rank_fields(
            CriticalFieldsInput(sort_by=SortKey.CONSUMERS, limit=top), graph
        ),
        top_producer_fields=rank_fields(
            CriticalFieldsInput(sort_by=SortKey.PRODUCERS, limit=top), graph
        ),
    )


def assess_risk(graph: GraphAccessPort, rank_limit: int = 50) -> RiskReport:
    """Classify the top consumer fields and rate the system from them."""
    ranked = rank_fields(
        CriticalFieldsInput(sort_by=SortKey.CONSUMERS, limit=rank_limit), graph
    )
    critical = [
        FieldRisk(
            field=item.field,
            consumer_count=item.consumer_count,
            level=item.risk.level,
            impact=item.risk.impact,
            recommendation=item.risk.recommendation,
        )
        for item in ranked
    ]
    high_risk = sum(1 for f in critical if f.level.severity >= RiskLevel.HIGH.severity)
    fragility = fragility_rating(high_risk)
    return RiskReport(
        critical_fields=critical,
        high_risk_count=high_risk,
        fragility=fragility,
        recommended_actions=recommended_actions(fragility),
    )
