"""NetworkX-based GraphAccessPort implementation.

Loads units, fields and edges into a NetworkX MultiDiGraph for in-memory
querying.  A unit may both consume and produce the same field, hence the
multigraph.  The store is read-only once loaded and safe to query from
several threads.

Only elemental fields carry dependencies.  Group fields are kept for
``get_field`` lookups but are invisible to traversal, fan counts and totals.

Used for:
- offline analysis of a JSON graph snapshot (``--backend memory``)
- the test suite, as a fake of the Neo4j store
"""

from __future__ import annotations

import networkx as nx

from impact_engine.domain.entities import (
    ChainQuery,
    ChainRow,
    Field,
    FieldFan,
    GraphCounts,
    GraphEdge,
    GraphSnapshot,
    Hop,
    Module,
    NodeRef,
    Unit,
    UnitFan,
)
from impact_engine.domain.enums import (
    DEPENDENCY_EDGES,
    Direction,
    EdgeType,
    FieldKind,
    NodeKind,
    SortKey,
)
from impact_engine.domain.rules import FAN_SORT_KEYS


class NetworkXGraphStore:
    """In-memory graph backed by a NetworkX MultiDiGraph."""

    def __init__(self) -> None:
        self._graph: nx.MultiDiGraph = nx.MultiDiGraph()
        self._units: dict[str, Unit] = {}
        self._fields: dict[str, Field] = {}
        self._groups: set[str] = set()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(
        self,
        units: list[Unit],
        fields: list[Field],
        edges: list[GraphEdge],
        modules: list[Module] | None = None,
    ) -> None:
        """Load entities and edges, replacing any prior state.

        Edge endpoints that were not declared are added as bare nodes so a
        partial export can still be traversed.
        """
        self._graph.clear()
        self._units.clear()
        self._fields.clear()
        self._groups.clear()

        for unit in units:
            self._units[unit.name] = unit
            self._graph.add_node(NodeRef(kind=NodeKind.UNIT, name=unit.name), data=unit)
        for field in fields:
            self._fields[field.name] = field
            if field.kind is FieldKind.GROUP:
                self._groups.add(field.name)
            self._graph.add_node(NodeRef(kind=NodeKind.FIELD, name=field.name), data=field)
        for module in modules or []:
            self._graph.add_node(NodeRef(kind=NodeKind.MODULE, name=module.name), data=module)

        for edge in edges:
            self._graph.add_edge(edge.from_ref, edge.to_ref, key=edge.edge_type)

    def load_snapshot(self, snapshot: GraphSnapshot) -> None:
        self.load(snapshot.units, snapshot.fields, snapshot.edges, snapshot.modules)

    # ------------------------------------------------------------------
    # GraphAccessPort interface
    # ------------------------------------------------------------------

    def get_unit(self, name: str) -> Unit | None:
        return self._units.get(name)

    def get_field(self, name: str) -> Field | None:
        return self._fields.get(name)

    def expand(self, node: NodeRef) -> list[Hop]:
        """Neighbours over consumes/produces edges, ignoring direction."""
        if node not in self._graph or self._is_group(node):
            return []
        hops: list[Hop] = []
        for _, neighbor, edge_type in self._graph.out_edges(node, keys=True):
            if edge_type in DEPENDENCY_EDGES and not self._is_group(neighbor):
                hops.append(Hop(node=neighbor, edge_type=edge_type))
        for neighbor, _, edge_type in self._graph.in_edges(node, keys=True):
            if edge_type in DEPENDENCY_EDGES:
                hops.append(Hop(node=neighbor, edge_type=edge_type))
        return hops

    def match_chains(self, query: ChainQuery) -> list[ChainRow]:
        """Enumerate chains of exactly ``query.depth`` hops, depth-first.

        Units and fields may repeat along a chain, so a cycle yields the same
        unit again at a greater depth.  Enumeration stops at ``query.limit``.
        """
        direction = query.direction
        # The unit a row is reported against, and the fields the chain starts from
        if query.start is NodeKind.UNIT:
            unit = self._units.get(query.identifier)
            if unit is None:
                return []
            sources: list[str | None] = [unit.name]
            first_fields = self._unit_fields(unit.name, direction.outbound_edge)
        else:
            if query.identifier not in self._fields or query.identifier in self._groups:
                return []
            # Field rows are attributed to the units on the other side of the
            # field; a field nobody produces (or consumes) still has impact.
            sources = self._field_units(query.identifier, direction.outbound_edge) or [None]
            first_fields = [query.identifier]

        rows: list[ChainRow] = []
        for source in sources:
            for start_field in first_fields:
                for units, path_fields in self._walk(
                    start_field, direction, query.depth, [start_field], []
                ):
                    affected = units[-1]
                    rows.append(ChainRow(
                        source_unit=source,
                        source_output_field=self._output_name(source),
                        affected_unit=affected,
                        affected_output_field=self._output_name(affected),
                        path_fields=path_fields,
                    ))
                    if len(rows) >= query.limit:
                        return rows
        return rows

    def field_fan(
        self,
        min_consumers: int = 0,
        min_producers: int = 1,
        order_by: SortKey | None = None,
        limit: int | None = None,
    ) -> list[FieldFan]:
        """Producer/consumer counts per elemental field.

        Load order, or a stable descending sort on *order_by*.
        """
        result: list[FieldFan] = []
        for name in self._fields:
            if name in self._groups:
                continue
            producers = len(self._field_units(name, EdgeType.PRODUCES))
            consumers = len(self._field_units(name, EdgeType.CONSUMES))
            if producers >= min_producers and consumers >= min_consumers:
                result.append(FieldFan(
                    field=name,
                    producer_count=producers,
                    consumer_count=consumers,
                ))
        if order_by is not None:
            result.sort(key=FAN_SORT_KEYS[order_by], reverse=True)
        return result if limit is None else result[:limit]

    def unit_fan(self) -> list[UnitFan]:
        result: list[UnitFan] = []
        for name in self._units:
            inputs = set(self._unit_fields(name, EdgeType.CONSUMES))
            outputs = set(self._unit_fields(name, EdgeType.PRODUCES))
            result.append(UnitFan(
                unit=name,
                input_count=len(inputs),
                output_count=len(outputs),
                touch_points=len(inputs | outputs),
            ))
        return result

    def graph_counts(self) -> GraphCounts:
        edges = sum(
            1 for _, target, edge_type in self._graph.edges(keys=True)
            if edge_type in DEPENDENCY_EDGES and not self._is_group(target)
        )
        return GraphCounts(
            units=len(self._units),
            fields=len(self._fields) - len(self._groups),
            edges=edges,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_group(self, node: NodeRef) -> bool:
        return node.kind is NodeKind.FIELD and node.name in self._groups

    def _walk(
        self,
        field: str,
        direction: Direction,
        remaining: int,
        path_fields: list[str],
        units: list[str],
    ):
        """Yield ``(units, path_fields)`` for every chain of *remaining* hops."""
        for unit in self._field_units(field, direction.inbound_edge):
            chain = units + [unit]
            if remaining == 1:
                yield chain, list(path_fields)
                continue
            for next_field in self._unit_fields(unit, direction.outbound_edge):
                yield from self._walk(
                    next_field, direction, remaining - 1, path_fields + [next_field], chain
                )

    def _unit_fields(self, unit: str, edge_type: EdgeType) -> list[str]:
        ref = NodeRef(kind=NodeKind.UNIT, name=unit)
        if ref not in self._graph:
            return []
        return [
            target.name
            for _, target, key in self._graph.out_edges(ref, keys=True)
            if key == edge_type and target.name not in self._groups
        ]

    def _field_units(self, field: str, edge_type: EdgeType) -> list[str]:
        ref = NodeRef(kind=NodeKind.FIELD, name=field)
        if ref not in self._graph or field in self._groups:
            return []
        return [
            source.name
            for source, _, key in self._graph.in_edges(ref, keys=True)
            if key == edge_type
        ]

    def _output_name(self, unit: str | None) -> str | None:
        if unit is None:
            return None
        found = self._units.get(unit)
        return found.output_name if found is not None else None
