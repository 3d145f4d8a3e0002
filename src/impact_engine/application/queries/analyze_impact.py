"""Impact and dependency analysis.

Answers "what is affected if this unit/field changes" (downstream) and
"what influences this unit/field" (upstream).  The graph is walked as a
bipartite alternation unit -> field -> unit, one chain query per depth
level; levels run concurrently and are merged in depth order.
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import structlog

from impact_engine.domain.entities import ChainRow
from impact_engine.domain.enums import Direction, NodeKind
from impact_engine.domain.exceptions import InvalidParameterError
from impact_engine.domain.ports import GraphAccessPort
from impact_engine.domain.rules import chain_queries

logger = structlog.get_logger(__name__)

DEFAULT_LEVEL_LIMIT = 100


@dataclass
class ImpactQueryInput:
    identifier: str
    is_field: bool = False
    max_depth: int = 3
    direction: Direction = Direction.DOWNSTREAM
    level_limit: int = DEFAULT_LEVEL_LIMIT

    def __post_init__(self) -> None:
        if not self.identifier:
            raise InvalidParameterError("identifier must not be empty")
        if self.max_depth < 1:
            raise InvalidParameterError(
                "depth must be a positive integer", {"max_depth": self.max_depth}
            )
        if self.level_limit < 1:
            raise InvalidParameterError(
                "level limit must be a positive integer", {"level_limit": self.level_limit}
            )
        try:
            self.direction = Direction(self.direction)
        except ValueError as exc:
            raise InvalidParameterError(
                f"unknown direction: {self.direction}", {"direction": self.direction}
            ) from exc


@dataclass
class ImpactEdge:
    """A unit reached from the source through ``depth`` field hops."""

    source_unit: str | None
    source_output_field: str | None
    affected_unit: str
    affected_output_field: str | None
    depth: int
    path_fields: list[str] = field(default_factory=list)


@dataclass
class ImpactSummary:
    total_affected_units: int
    max_depth: int
    field_impact_counts: list[tuple[str, int]]
    critical_paths: list[ImpactEdge]


def analyze_impact(
    query: ImpactQueryInput,
    graph: GraphAccessPort,
    max_workers: int | None = None,
) -> list[ImpactEdge]:
    """Collect every chain of depth ``1..max_depth`` from the identifier.

    Rows are concatenated level by level and are not deduplicated across
    levels: a unit reachable at depth 2 and 3 appears once per depth.
    An unknown identifier simply matches nothing.
    """
    start = NodeKind.FIELD if query.is_field else NodeKind.UNIT
    descriptors = chain_queries(
        query.identifier, start, query.direction, query.max_depth, query.level_limit
    )
    log = logger.bind(
        identifier=query.identifier,
        start=start.value,
        direction=query.direction.value,
        max_depth=query.max_depth,
    )
    log.debug("impact.start")

    workers = min(max_workers or 1, len(descriptors))
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="impact") as pool:
            levels = list(pool.map(graph.match_chains, descriptors))
    else:
        levels = [graph.match_chains(descriptor) for descriptor in descriptors]

    results: list[ImpactEdge] = []
    for descriptor, rows in zip(descriptors, levels):
        log.debug("impact.level.complete", depth=descriptor.depth, rows=len(rows))
        results.extend(_to_edge(row, descriptor.depth) for row in rows)

    log.info("impact.complete", relationships=len(results))
    return results


def analyze_dependencies(
    query: ImpactQueryInput,
    graph: GraphAccessPort,
    max_workers: int | None = None,
) -> list[ImpactEdge]:
    """Upstream variant of ``analyze_impact``."""
    upstream = ImpactQueryInput(
        identifier=query.identifier,
        is_field=query.is_field,
        max_depth=query.max_depth,
        direction=Direction.UPSTREAM,
        level_limit=query.level_limit,
    )
    return analyze_impact(upstream, graph, max_workers=max_workers)


def summarize_impact(edges: list[ImpactEdge], top: int = 10) -> ImpactSummary:
    """Unique affected units, deepest level, busiest fields, deepest chains."""
    max_depth = max((e.depth for e in edges), default=0)
    field_counts: Counter[str] = Counter()
    for edge in edges:
        field_counts.update(edge.path_fields)

    return ImpactSummary(
        total_affected_units=len({e.affected_unit for e in edges}),
        max_depth=max_depth,
        field_impact_counts=field_counts.most_common(top),
        critical_paths=[e for e in edges if e.depth == max_depth][:10],
    )


def _to_edge(row: ChainRow, depth: int) -> ImpactEdge:
    return ImpactEdge(
        source_unit=row.source_unit,
        source_output_field=row.source_output_field,
        affected_unit=row.affected_unit,
        affected_output_field=row.affected_output_field,
        depth=depth,
        path_fields=list(row.path_fields),
    )
