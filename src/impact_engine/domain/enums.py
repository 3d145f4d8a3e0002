"""Domain enumerations for the impact engine.

- NodeKind: the three node families of the transformation graph
- EdgeType: structural relationships between units, fields and modules
- Direction: which way a traversal follows the data flow
- PathStrategy / SortKey: caller-selectable analysis modes
- RiskLevel: risk tier shared by field classification and system fragility
"""

from __future__ import annotations

from enum import Enum


class NodeKind(str, Enum):
    """Families of nodes in the transformation graph."""

    UNIT = "unit"
    FIELD = "field"
    MODULE = "module"


class FieldKind(str, Enum):
    """Elemental fields hold a value; group fields only contain other fields."""

    ELEMENTAL = "elemental"
    GROUP = "group"


class EdgeType(str, Enum):
    """Relationships stored in the graph.

    Only ``CONSUMES`` and ``PRODUCES`` take part in the dependency analyses;
    ``CONTAINS`` and ``RUNS_IN`` are carried for completeness.
    """

    CONSUMES = "CONSUMES"  # unit -> field
    PRODUCES = "PRODUCES"  # unit -> field, exactly one per unit
    CONTAINS = "CONTAINS"  # field -> field
    RUNS_IN = "RUNS_IN"  # unit -> module


DEPENDENCY_EDGES: frozenset[EdgeType] = frozenset({EdgeType.CONSUMES, EdgeType.PRODUCES})


class Direction(str, Enum):
    """Traversal direction relative to the data flow.

    ``DOWNSTREAM`` follows produced fields to their consumers (impact);
    ``UPSTREAM`` follows consumed fields back to their producers
    (dependencies).
    """

    DOWNSTREAM = "downstream"
    UPSTREAM = "upstream"

    @property
    def outbound_edge(self) -> EdgeType:
        """Edge leaving a unit towards the next field in this direction."""
        return EdgeType.PRODUCES if self is Direction.DOWNSTREAM else EdgeType.CONSUMES

    @property
    def inbound_edge(self) -> EdgeType:
        """Edge linking a field to the next unit in this direction."""
        return EdgeType.CONSUMES if self is Direction.DOWNSTREAM else EdgeType.PRODUCES


class PathStrategy(str, Enum):
    """Path enumeration strategies for the path finder."""

    SHORTEST = "shortest"
    ALL = "all"
    LONGEST = "longest"


class SortKey(str, Enum):
    """Ranking keys for the critical field scorer."""

    CONSUMERS = "consumers"
    PRODUCERS = "producers"
    RATIO = "ratio"


class RiskLevel(str, Enum):
    """Risk tiers, ordered from least to most severe."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}
