"""JSON graph snapshots for the in-memory store.

A snapshot is the ``GraphSnapshot`` model serialised as JSON::

    {
      "units":  [{"id": "1", "name": "CALC-TOTAL", "output_name": "WS-TOTAL"}],
      "fields": [{"id": "2", "name": "WS-TOTAL", "data_type": "PIC 9(7)"}],
      "edges":  [{"from_node": "CALC-TOTAL", "to_node": "WS-TOTAL",
                  "edge_type": "PRODUCES"}]
    }
"""

from __future__ import annotations

from pathlib import Path

import structlog
from pydantic import ValidationError

from impact_engine.domain.entities import GraphSnapshot
from impact_engine.domain.exceptions import SnapshotError
from impact_engine.infrastructure.graph.networkx_store import NetworkXGraphStore

logger = structlog.get_logger(__name__)


def read_snapshot(path: Path) -> GraphSnapshot:
    """Parse a snapshot file, raising ``SnapshotError`` when unusable."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f"Cannot read graph snapshot {path}: {exc}", {"path": str(path)}) from exc
    try:
        return GraphSnapshot.model_validate_json(raw)
    except ValidationError as exc:
        raise SnapshotError(
            f"Invalid graph snapshot {path}: {exc.error_count()} error(s)",
            {"path": str(path), "errors": exc.errors(include_url=False)},
        ) from exc


def load_snapshot_store(path: Path) -> NetworkXGraphStore:
    """Read *path* into a fresh ``NetworkXGraphStore``."""
    snapshot = read_snapshot(path)
    store = NetworkXGraphStore()
    store.load_snapshot(snapshot)
    logger.info(
        "snapshot.loaded",
        path=str(path),
        units=len(snapshot.units),
        fields=len(snapshot.fields),
        edges=len(snapshot.edges),
    )
    return store
