"""Domain entities for the impact engine.

Entities mirror what the ingestion pipeline writes into the graph; the engine
only ever reads them.  Value objects at the bottom of the module are the
plain rows exchanged with the Graph Access Port.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field as PydanticField, model_validator

from impact_engine.domain.enums import Direction, EdgeType, FieldKind, NodeKind


# ---------------------------------------------------------------------------
# Core entities
# ---------------------------------------------------------------------------


class Field(BaseModel):
    """A named data element: elemental (leaf) or group (container)."""

    id: str
    name: str
    kind: FieldKind = FieldKind.ELEMENTAL
    data_type: str | None = None

    @model_validator(mode="after")
    def _group_has_no_type(self) -> Field:
        if self.kind is FieldKind.GROUP and self.data_type is not None:
            raise ValueError(f"group field '{self.name}' cannot carry a data type")
        return self


class Unit(BaseModel):
    """An atomic transformation with one output field and any number of inputs."""

    id: str
    name: str
    output_group: str = ""
    output_name: str = ""
    is_passthrough: bool = False


class Module(BaseModel):
    """The program a unit runs in.  Not used by the analyses."""

    id: str
    name: str


# Endpoint kinds implied by each edge type
EDGE_ENDPOINTS: dict[EdgeType, tuple[NodeKind, NodeKind]] = {
    EdgeType.CONSUMES: (NodeKind.UNIT, NodeKind.FIELD),
    EdgeType.PRODUCES: (NodeKind.UNIT, NodeKind.FIELD),
    EdgeType.CONTAINS: (NodeKind.FIELD, NodeKind.FIELD),
    EdgeType.RUNS_IN: (NodeKind.UNIT, NodeKind.MODULE),
}


class GraphEdge(BaseModel):
    """A typed, directed relationship between two named nodes."""

    from_node: str
    to_node: str
    edge_type: EdgeType

    @property
    def from_ref(self) -> NodeRef:
        return NodeRef(kind=EDGE_ENDPOINTS[self.edge_type][0], name=self.from_node)

    @property
    def to_ref(self) -> NodeRef:
        return NodeRef(kind=EDGE_ENDPOINTS[self.edge_type][1], name=self.to_node)


class GraphSnapshot(BaseModel):
    """JSON interchange format for loading a graph into memory."""

    units: list[Unit] = PydanticField(default_factory=list)
    fields: list[Field] = PydanticField(default_factory=list)
    modules: list[Module] = PydanticField(default_factory=list)
    edges: list[GraphEdge] = PydanticField(default_factory=list)


# ---------------------------------------------------------------------------
# Port value objects
# ---------------------------------------------------------------------------


class NodeRef(BaseModel):
    """Address of a node: its family plus its display name."""

    model_config = ConfigDict(frozen=True)

    kind: NodeKind
    name: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.name}"


class Hop(BaseModel):
    """One edge crossed by a one-hop expansion, seen from the expanded node."""

    model_config = ConfigDict(frozen=True)

    node: NodeRef
    edge_type: EdgeType


class ChainQuery(BaseModel):
    """Backend-agnostic descriptor for "all chains of exactly N hops".

    A chain starts at *identifier* (a unit, or a field one hop earlier),
    alternates unit -> field -> unit in *direction* and ends at a unit after
    *depth* field-to-unit hops.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str
    start: NodeKind
    direction: Direction
    depth: int = PydanticField(ge=1)
    limit: int = PydanticField(ge=1)


class ChainRow(BaseModel):
    """One chain matched by a ``ChainQuery``."""

    source_unit: str | None
    source_output_field: str | None
    affected_unit: str
    affected_output_field: str | None
    path_fields: list[str]


class FieldFan(BaseModel):
    """Producer and consumer counts for one field."""

    field: str
    producer_count: int
    consumer_count: int


class UnitFan(BaseModel):
    """Input, output and distinct touch-point counts for one unit."""

    unit: str
    input_count: int
    output_count: int
    touch_points: int


class GraphCounts(BaseModel):
    """Global totals for the dependency graph."""

    units: int = 0
    fields: int = 0
    edges: int = 0
