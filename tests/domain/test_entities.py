"""Tests for domain entities and value objects."""

import pytest
from pydantic import ValidationError

from impact_engine.domain.entities import (
    ChainQuery,
    Field,
    GraphEdge,
    GraphSnapshot,
    NodeRef,
)
from impact_engine.domain.enums import Direction, EdgeType, FieldKind, NodeKind


class TestField:
    def test_elemental_with_type(self):
        field = Field(id="1", name="WS-TOTAL", data_type="PIC 9(7)")
        assert field.kind is FieldKind.ELEMENTAL

    def test_group_without_type(self):
        field = Field(id="2", name="WS-RECORD", kind=FieldKind.GROUP)
        assert field.data_type is None

    def test_group_with_type_rejected(self):
        with pytest.raises(ValidationError, match="cannot carry a data type"):
            Field(id="2", name="WS-RECORD", kind=FieldKind.GROUP, data_type="PIC X")


class TestNodeRef:
    def test_str(self):
        assert str(NodeRef(kind=NodeKind.UNIT, name="CALC")) == "unit:CALC"

    def test_hashable_and_equal_by_value(self):
        a = NodeRef(kind=NodeKind.FIELD, name="F1")
        b = NodeRef(kind=NodeKind.FIELD, name="F1")
        assert a == b
        assert len({a, b}) == 1

    def test_same_name_different_kind(self):
        assert NodeRef(kind=NodeKind.FIELD, name="X") != NodeRef(kind=NodeKind.UNIT, name="X")


class TestGraphEdge:
    def test_dependency_edge_refs(self):
        edge = GraphEdge(from_node="A", to_node="F1", edge_type=EdgeType.PRODUCES)
        assert edge.from_ref == NodeRef(kind=NodeKind.UNIT, name="A")
        assert edge.to_ref == NodeRef(kind=NodeKind.FIELD, name="F1")

    def test_contains_edge_links_fields(self):
        edge = GraphEdge(from_node="REC", to_node="F1", edge_type=EdgeType.CONTAINS)
        assert edge.from_ref.kind is NodeKind.FIELD
        assert edge.to_ref.kind is NodeKind.FIELD

    def test_runs_in_edge_targets_module(self):
        edge = GraphEdge(from_node="A", to_node="PGM1", edge_type=EdgeType.RUNS_IN)
        assert edge.to_ref.kind is NodeKind.MODULE


class TestChainQuery:
    def test_depth_must_be_positive(self):
        with pytest.raises(ValidationError):
            ChainQuery(
                identifier="A",
                start=NodeKind.UNIT,
                direction=Direction.DOWNSTREAM,
                depth=0,
                limit=10,
            )

    def test_frozen(self):
        query = ChainQuery(
            identifier="A",
            start=NodeKind.UNIT,
            direction=Direction.DOWNSTREAM,
            depth=1,
            limit=10,
        )
        with pytest.raises(ValidationError):
            query.depth = 2


class TestGraphSnapshot:
    def test_parses_json(self):
        snapshot = GraphSnapshot.model_validate_json(
            '{"units": [{"id": "1", "name": "A"}],'
            ' "fields": [{"id": "2", "name": "F1"}],'
            ' "edges": [{"from_node": "A", "to_node": "F1", "edge_type": "PRODUCES"}]}'
        )
        assert snapshot.units[0].name == "A"
        assert snapshot.edges[0].edge_type is EdgeType.PRODUCES
        assert snapshot.modules == []
