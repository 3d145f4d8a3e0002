"""Dependency wiring: settings in, graph port out.

The container owns the graph store for the lifetime of one CLI invocation
and closes it on exit.  Analyses receive the port explicitly; nothing here
is global.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from impact_engine.config.settings import Settings
from impact_engine.domain.exceptions import ConfigurationError
from impact_engine.domain.ports import GraphAccessPort

logger = structlog.get_logger(__name__)

BACKENDS = ("neo4j", "memory")


@dataclass
class Container:
    """Holds the configured graph store and analysis settings."""

    settings: Settings
    graph: GraphAccessPort

    @property
    def max_workers(self) -> int:
        return self.settings.max_workers

    @property
    def level_limit(self) -> int:
        return self.settings.impact_level_limit

    def close(self) -> None:
        close = getattr(self.graph, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> Container:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_container(settings: Settings) -> Container:
    """Build a container for ``settings.graph_backend``.

    Raises ConfigurationError for an unknown backend or, with the memory
    backend, a missing snapshot file.  The Neo4j store connects lazily, so
    creating the container never touches the network.
    """
    backend = settings.graph_backend.lower()

    if settings.uses_memory_backend:
        from impact_engine.infrastructure.graph.snapshot import load_snapshot_store

        if settings.graph_file is None:
            raise ConfigurationError(
                "The memory backend requires a graph snapshot (--graph-file or GRAPH_FILE)"
            )
        if not settings.graph_file.is_file():
            raise ConfigurationError(
                f"Graph snapshot not found: {settings.graph_file}",
                {"graph_file": str(settings.graph_file)},
            )
        graph: GraphAccessPort = load_snapshot_store(settings.graph_file)
    elif backend == "neo4j":
        from impact_engine.infrastructure.graph.neo4j_store import Neo4jGraphStore

        graph = Neo4jGraphStore(
            uri=settings.neo4j_uri,
            user=settings.neo4j_username,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
            max_connection_lifetime=settings.neo4j_max_connection_lifetime,
            max_connection_pool_size=settings.neo4j_max_connection_pool_size,
            connection_acquisition_timeout=settings.neo4j_connection_acquisition_timeout,
        )
    else:
        raise ConfigurationError(
            f"Unknown graph backend: {settings.graph_backend}",
            {"graph_backend": settings.graph_backend, "supported": list(BACKENDS)},
        )

    logger.debug("container.created", backend=backend)
    return Container(settings=settings, graph=graph)
