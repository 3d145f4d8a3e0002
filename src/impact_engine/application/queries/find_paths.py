"""Dependency path tracing between two units.

The consumes/produces relation is treated as undirected: a dependency can be
traced forward or backward.  Paths alternate unit and field nodes; their
length counts unit hops.

Strategies:
- ``shortest``: every minimum-hop path, at most ``limit``.
- ``all``: simple paths up to ``max_depth`` hops, ascending by length.
- ``longest``: the same bounded enumeration, descending by length.  This is
  a heuristic over the explored set, not a true longest-simple-path search.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Iterator

import structlog

from impact_engine.domain.entities import NodeRef
from impact_engine.domain.enums import NodeKind, PathStrategy
from impact_engine.domain.exceptions import InvalidParameterError
from impact_engine.domain.ports import GraphAccessPort
from impact_engine.domain.rules import describe_path

logger = structlog.get_logger(__name__)

DEFAULT_ENUMERATION_CAP = 10_000


@dataclass
class PathQueryInput:
    source: str
    target: str
    max_depth: int = 5
    strategy: PathStrategy = PathStrategy.ALL
    limit: int = 100
    enumeration_cap: int = DEFAULT_ENUMERATION_CAP

    def __post_init__(self) -> None:
        if not self.source or not self.target:
            raise InvalidParameterError("source and target must not be empty")
        if self.source == self.target:
            raise InvalidParameterError(
                "source and target units must be different", {"unit": self.source}
            )
        if self.max_depth < 1:
            raise InvalidParameterError(
                "max-depth must be a positive integer", {"max_depth": self.max_depth}
            )
        if self.limit < 1:
            raise InvalidParameterError(
                "limit must be a positive integer", {"limit": self.limit}
            )
        if self.enumeration_cap < 1:
            raise InvalidParameterError(
                "enumeration cap must be a positive integer",
                {"enumeration_cap": self.enumeration_cap},
            )
        try:
            self.strategy = PathStrategy(self.strategy)
        except ValueError as exc:
            raise InvalidParameterError(
                "path-type must be shortest, all, or longest", {"strategy": self.strategy}
            ) from exc


@dataclass
class DependencyPath:
    source: str
    target: str
    length: int
    units: list[str]
    fields: list[str]

    @property
    def description(self) -> str:
        return describe_path(self.units, self.fields)


@dataclass
class PathSummary:
    total_paths: int
    shortest_path: DependencyPath | None
    longest_path: DependencyPath | None
    average_length: float
    common_intermediate_fields: list[tuple[str, int]] = field(default_factory=list)
    critical_intermediate_units: list[tuple[str, int]] = field(default_factory=list)


class _Neighbourhood:
    """Memoised one-hop expansion, scoped to a single ``find_paths`` call."""

    def __init__(self, graph: GraphAccessPort) -> None:
        self._graph = graph
        self._cache: dict[NodeRef, list[NodeRef]] = {}
        self.queries = 0

    def __call__(self, node: NodeRef) -> list[NodeRef]:
        cached = self._cache.get(node)
        if cached is None:
            self.queries += 1
            cached = list(dict.fromkeys(hop.node for hop in self._graph.expand(node)))
            self._cache[node] = cached
        return cached


def find_paths(query: PathQueryInput, graph: GraphAccessPort) -> list[DependencyPath]:
    """Enumerate dependency paths between two units under ``query.strategy``.

    Unknown units or no connection within ``max_depth`` hops yield an empty
    list.  Every strategy searches outward from the source one unit hop at a
    time and expands at most ``enumeration_cap`` partial paths, so the number
    of port round trips is bounded by the cap rather than by the size of the
    neighbourhood.
    """
    log = logger.bind(
        source=query.source,
        target=query.target,
        strategy=query.strategy.value,
        max_depth=query.max_depth,
    )
    if graph.get_unit(query.source) is None or graph.get_unit(query.target) is None:
        log.info("paths.unknown_unit")
        return []

    source = NodeRef(kind=NodeKind.UNIT, name=query.source)
    target = NodeRef(kind=NodeKind.UNIT, name=query.target)
    neighbours = _Neighbourhood(graph)

    if query.strategy is PathStrategy.SHORTEST:
        node_paths = _shortest(
            source, target, neighbours, query.max_depth, query.limit, query.enumeration_cap
        )
    elif query.strategy is PathStrategy.ALL:
        node_paths = _breadth_first(
            source, target, neighbours, query.max_depth, query.limit, query.enumeration_cap
        )
    else:
        node_paths = _depth_first(
            source, target, neighbours, query.max_depth, query.enumeration_cap
        )
        node_paths.sort(key=len, reverse=True)
        node_paths = node_paths[: query.limit]

    paths = [_to_path(nodes) for nodes in node_paths]
    log.info("paths.complete", paths=len(paths), expansions=neighbours.queries)
    return paths


def summarize_paths(paths: list[DependencyPath], top: int = 10) -> PathSummary:
    """Aggregate a path list the way the path report presents it."""
    if not paths:
        return PathSummary(
            total_paths=0, shortest_path=None, longest_path=None, average_length=0.0
        )

    field_counts: Counter[str] = Counter()
    unit_counts: Counter[str] = Counter()
    for path in paths:
        field_counts.update(path.fields)
        unit_counts.update(path.units[1:-1])

    return PathSummary(
        total_paths=len(paths),
        shortest_path=min(paths, key=lambda p: p.length),
        longest_path=max(paths, key=lambda p: p.length),
        average_length=sum(p.length for p in paths) / len(paths),
        common_intermediate_fields=field_counts.most_common(top),
        critical_intermediate_units=unit_counts.most_common(top),
    )


# ---------------------------------------------------------------------------
# Search internals
#
# Partial paths are node lists alternating unit and field, starting at the
# source unit.  One step extends a path by a field and the next unit.
# ---------------------------------------------------------------------------


def _steps(
    path: list[NodeRef],
    neighbours: _Neighbourhood,
) -> Iterator[tuple[NodeRef, NodeRef]]:
    """``(field, unit)`` pairs that extend *path* without revisiting a node."""
    unit = path[-1]
    for fld in neighbours(unit):
        if fld in path:
            continue
        for nxt in neighbours(fld):
            if nxt not in path:
                yield fld, nxt


def _shortest(
    source: NodeRef,
    target: NodeRef,
    neighbours: _Neighbourhood,
    max_depth: int,
    limit: int,
    cap: int,
) -> list[list[NodeRef]]:
    """Level-by-level search that stops at the level where *target* appears.

    Every unit remembers all of its ``(field, unit)`` links from the previous
    level; walking those links back from the target yields each minimum-hop
    path exactly once.
    """
    links: dict[NodeRef, list[tuple[NodeRef, NodeRef]]] = {source: []}
    frontier = [source]
    depth = 0
    explored = 0
    while frontier and target not in links and depth < max_depth and explored < cap:
        depth += 1
        reached: dict[NodeRef, list[tuple[NodeRef, NodeRef]]] = {}
        for unit in frontier:
            if explored >= cap:
                break
            explored += 1
            for fld, nxt in _steps([unit], neighbours):
                if nxt not in links:
                    reached.setdefault(nxt, []).append((fld, unit))
        links.update(reached)
        frontier = list(reached)

    if target not in links:
        return []

    found: list[list[NodeRef]] = []
    stack = [[target]]
    while stack and len(found) < limit:
        backwards = stack.pop()
        head = backwards[-1]
        if head == source:
            found.append(backwards[::-1])
            continue
        stack.extend(backwards + [fld, prev] for fld, prev in reversed(links[head]))
    return found


def _breadth_first(
    source: NodeRef,
    target: NodeRef,
    neighbours: _Neighbourhood,
    max_depth: int,
    limit: int,
    cap: int,
) -> list[list[NodeRef]]:
    """Simple paths in ascending length until *limit* paths or *cap* expansions."""
    found: list[list[NodeRef]] = []
    queue = deque([[source]])
    explored = 0
    while queue and len(found) < limit and explored < cap:
        path = queue.popleft()
        explored += 1
        can_grow = len(path) // 2 + 1 < max_depth
        for fld, nxt in _steps(path, neighbours):
            if nxt == target:
                found.append(path + [fld, nxt])
                if len(found) >= limit:
                    break
            elif can_grow:
                queue.append(path + [fld, nxt])
    return found


def _depth_first(
    source: NodeRef,
    target: NodeRef,
    neighbours: _Neighbourhood,
    max_depth: int,
    cap: int,
) -> list[list[NodeRef]]:
    """Simple paths in discovery order until *cap* expansions."""
    found: list[list[NodeRef]] = []
    stack = [[source]]
    explored = 0
    while stack and explored < cap:
        path = stack.pop()
        explored += 1
        can_grow = len(path) // 2 + 1 < max_depth
        extensions: list[list[NodeRef]] = []
        for fld, nxt in _steps(path, neighbours):
            if nxt == target:
                found.append(path + [fld, nxt])
            elif can_grow:
                extensions.append(path + [fld, nxt])
        stack.extend(reversed(extensions))
    return found


def _to_path(nodes: list[NodeRef]) -> DependencyPath:
    units = [n.name for n in nodes if n.kind is NodeKind.UNIT]
    fields = [n.name for n in nodes if n.kind is NodeKind.FIELD]
    return DependencyPath(
        source=units[0],
        target=units[-1],
        length=len(units) - 1,
        units=units,
        fields=fields,
    )
