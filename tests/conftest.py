"""Shared fixtures: small in-memory graphs with known shapes.

chain:    F0 -> A -> F1 -> B -> F2 -> C -> F3
          (A consumes F0, which nobody produces; nobody consumes F3)

network:  P -> X -> {Q, R};  Q -> Y -> S;  R -> Z -> S;  S -> W -> P
          (a diamond closed into a cycle)

fan:      HUB produced by SRC, consumed by C1..C12
          MULTI produced by M1..M3, consumed by C1
          SOLO produced by SRC2, consumed by C2
          ORPHAN consumed by C3, produced by nobody

split:    L -> LF -> M;  R -> RF -> N
          (two components with no field in common)
"""

from __future__ import annotations

import logging

import pytest
import structlog

from impact_engine.domain.entities import Field, GraphEdge, GraphSnapshot, Unit
from impact_engine.domain.enums import EdgeType
from impact_engine.infrastructure.graph.networkx_store import NetworkXGraphStore

CONSUMES = EdgeType.CONSUMES
PRODUCES = EdgeType.PRODUCES


def _unit(name: str, output: str = "") -> Unit:
    return Unit(id=f"u-{name}", name=name, output_name=output)


def _field(name: str) -> Field:
    return Field(id=f"f-{name}", name=name, data_type="PIC X(10)")


def _edge(unit: str, field: str, edge_type: EdgeType) -> GraphEdge:
    return GraphEdge(from_node=unit, to_node=field, edge_type=edge_type)


def _snapshot(outputs: dict[str, str], fields: list[str], edges: list[GraphEdge]) -> GraphSnapshot:
    return GraphSnapshot(
        units=[_unit(name, output) for name, output in outputs.items()],
        fields=[_field(name) for name in fields],
        edges=edges,
    )


def _store(snapshot: GraphSnapshot) -> NetworkXGraphStore:
    store = NetworkXGraphStore()
    store.load_snapshot(snapshot)
    return store


CHAIN = _snapshot(
    {"A": "F1", "B": "F2", "C": "F3"},
    ["F0", "F1", "F2", "F3"],
    [
        _edge("A", "F0", CONSUMES),
        _edge("A", "F1", PRODUCES),
        _edge("B", "F1", CONSUMES),
        _edge("B", "F2", PRODUCES),
        _edge("C", "F2", CONSUMES),
        _edge("C", "F3", PRODUCES),
    ],
)

NETWORK = _snapshot(
    {"P": "X", "Q": "Y", "R": "Z", "S": "W"},
    ["X", "Y", "Z", "W"],
    [
        _edge("P", "X", PRODUCES),
        _edge("P", "W", CONSUMES),
        _edge("Q", "X", CONSUMES),
        _edge("Q", "Y", PRODUCES),
        _edge("R", "X", CONSUMES),
        _edge("R", "Z", PRODUCES),
        _edge("S", "Y", CONSUMES),
        _edge("S", "Z", CONSUMES),
        _edge("S", "W", PRODUCES),
    ],
)

_FAN_CONSUMERS = [f"C{i}" for i in range(1, 13)]

FAN = _snapshot(
    {
        "SRC": "HUB",
        "SRC2": "SOLO",
        "M1": "MULTI",
        "M2": "MULTI",
        "M3": "MULTI",
        **{name: "" for name in _FAN_CONSUMERS},
    },
    ["HUB", "MULTI", "SOLO", "ORPHAN"],
    [
        _edge("SRC", "HUB", PRODUCES),
        *[_edge(name, "HUB", CONSUMES) for name in _FAN_CONSUMERS],
        _edge("M1", "MULTI", PRODUCES),
        _edge("M2", "MULTI", PRODUCES),
        _edge("M3", "MULTI", PRODUCES),
        _edge("C1", "MULTI", CONSUMES),
        _edge("SRC2", "SOLO", PRODUCES),
        _edge("C2", "SOLO", CONSUMES),
        _edge("C3", "ORPHAN", CONSUMES),
    ],
)


SPLIT = _snapshot(
    {"L": "LF", "M": "", "R": "RF", "N": ""},
    ["LF", "RF"],
    [
        _edge("L", "LF", PRODUCES),
        _edge("M", "LF", CONSUMES),
        _edge("R", "RF", PRODUCES),
        _edge("N", "RF", CONSUMES),
    ],
)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop logging configuration bound to a test's captured streams."""
    yield
    structlog.reset_defaults()
    logging.getLogger().setLevel(logging.WARNING)


@pytest.fixture
def chain_snapshot() -> GraphSnapshot:
    return CHAIN.model_copy(deep=True)


@pytest.fixture
def chain_store() -> NetworkXGraphStore:
    return _store(CHAIN)


@pytest.fixture
def network_store() -> NetworkXGraphStore:
    return _store(NETWORK)


@pytest.fixture
def fan_store() -> NetworkXGraphStore:
    return _store(FAN)


@pytest.fixture
def split_store() -> NetworkXGraphStore:
    return _store(SPLIT)


@pytest.fixture
def chain_file(tmp_path, chain_snapshot):
    path = tmp_path / "graph.json"
    path.write_text(chain_snapshot.model_dump_json(), encoding="utf-8")
    return path
