"""Neo4j implementation of the GraphAccessPort.

Uses the official neo4j Python driver.  Every query runs in its own read
transaction, so the store can be shared by the worker threads of a single
analysis.
"""

from __future__ import annotations

import threading
from typing import Any

import structlog
from neo4j import READ_ACCESS, Driver, GraphDatabase, ManagedTransaction
from neo4j.exceptions import DriverError, Neo4jError

from impact_engine.domain.entities import (
    ChainQuery,
    ChainRow,
    Field,
    FieldFan,
    GraphCounts,
    Hop,
    NodeRef,
    Unit,
    UnitFan,
)
from impact_engine.domain.enums import FieldKind, NodeKind, SortKey
from impact_engine.domain.exceptions import BackendUnavailableError
from impact_engine.infrastructure.graph import cypher

logger = structlog.get_logger(__name__)


def _collect(tx: ManagedTransaction, query: str, parameters: dict[str, Any]) -> list[dict]:
    return [record.data() for record in tx.run(query, parameters)]


class Neo4jGraphStore:
    """Graph access backed by a Neo4j database.

    Usage:
        store = Neo4jGraphStore("bolt://localhost:7687", "neo4j", "secret")
        try:
            rows = store.match_chains(query)
        finally:
            store.close()
    """

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        user: str = "neo4j",
        password: str = "",
        database: str = "neo4j",
        *,
        max_connection_lifetime: float = 60.0,
        max_connection_pool_size: int = 10,
        connection_acquisition_timeout: float = 60.0,
        driver: Driver | None = None,
    ) -> None:
        self._uri = uri
        self._user = user
        self._password = password
        self._database = database
        self._driver_config = {
            "max_connection_lifetime": max_connection_lifetime,
            "max_connection_pool_size": max_connection_pool_size,
            "connection_acquisition_timeout": connection_acquisition_timeout,
        }
        self._driver = driver
        self._lock = threading.Lock()

    def _ensure_connected(self) -> Driver:
        """Create the driver and verify connectivity on first use."""
        with self._lock:
            if self._driver is None:
                log = logger.bind(uri=self._uri, database=self._database)
                try:
                    driver = GraphDatabase.driver(
                        self._uri,
                        auth=(self._user, self._password),
                        **self._driver_config,
                    )
                    driver.verify_connectivity()
                except (Neo4jError, DriverError) as exc:
                    log.error("neo4j.connect.failed", error=str(exc))
                    raise BackendUnavailableError(
                        f"Failed to connect to Neo4j at {self._uri}: {exc}",
                        details={"uri": self._uri},
                    ) from exc
                log.debug("neo4j.connect.complete")
                self._driver = driver
            return self._driver

    def _run(self, query: str, parameters: dict[str, Any] | None = None) -> list[dict]:
        driver = self._ensure_connected()
        params = parameters or {}
        try:
            with driver.session(
                database=self._database,
                default_access_mode=READ_ACCESS,
            ) as session:
                return session.execute_read(_collect, query, params)
        except (Neo4jError, DriverError) as exc:
            logger.error("neo4j.query.failed", error=str(exc), parameters=params)
            raise BackendUnavailableError(
                f"Neo4j query failed: {exc}",
                details={"query": query, "parameters": params},
            ) from exc

    def close(self) -> None:
        """Close the driver, if one was opened."""
        with self._lock:
            if self._driver is not None:
                self._driver.close()
                self._driver = None

    def __enter__(self) -> Neo4jGraphStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # === GraphAccessPort ===

    def get_unit(self, name: str) -> Unit | None:
        rows = self._run(cypher.GET_UNIT, {"name": name})
        if not rows:
            return None
        row = rows[0]
        return Unit(
            id=str(row["id"] if row["id"] is not None else row["name"]),
            name=row["name"],
            output_group=row["output_group"] or "",
            output_name=row["output_name"] or "",
            is_passthrough=bool(row["is_passthrough"]),
        )

    def get_field(self, name: str) -> Field | None:
        rows = self._run(cypher.GET_FIELD, {"name": name})
        if not rows:
            return None
        row = rows[0]
        is_group = bool(row["is_group"])
        return Field(
            id=str(row["id"] if row["id"] is not None else row["name"]),
            name=row["name"],
            kind=FieldKind.GROUP if is_group else FieldKind.ELEMENTAL,
            data_type=None if is_group else row["data_type"],
        )

    def match_chains(self, query: ChainQuery) -> list[ChainRow]:
        statement, params = cypher.compile_chain_query(query)
        log = logger.bind(identifier=query.identifier, depth=query.depth)
        rows = self._run(statement, params)
        log.debug("neo4j.chains.matched", rows=len(rows))
        return [ChainRow(**row) for row in rows]

    def expand(self, node: NodeRef) -> list[Hop]:
        if node.kind is NodeKind.UNIT:
            statement, neighbor_kind = cypher.EXPAND_UNIT, NodeKind.FIELD
        elif node.kind is NodeKind.FIELD:
            statement, neighbor_kind = cypher.EXPAND_FIELD, NodeKind.UNIT
        else:
            return []
        return [
            Hop(
                node=NodeRef(kind=neighbor_kind, name=row["name"]),
                edge_type=cypher.EDGE_TYPES_BY_RELATIONSHIP[row["relationship"]],
            )
            for row in self._run(statement, {"name": node.name})
        ]

    def field_fan(
        self,
        min_consumers: int = 0,
        min_producers: int = 1,
        order_by: SortKey | None = None,
        limit: int | None = None,
    ) -> list[FieldFan]:
        params: dict[str, Any] = {"minConsumers": min_consumers, "minProducers": min_producers}
        if limit is not None:
            params["limit"] = limit
        rows = self._run(cypher.field_fan_query(order_by, limit), params)
        return [FieldFan(**row) for row in rows]

    def unit_fan(self) -> list[UnitFan]:
        return [UnitFan(**row) for row in self._run(cypher.UNIT_FAN)]

    def graph_counts(self) -> GraphCounts:
        def _count(statement: str) -> int:
            rows = self._run(statement)
            return int(rows[0]["count"]) if rows else 0

        return GraphCounts(
            units=_count(cypher.COUNT_UNITS),
            fields=_count(cypher.COUNT_FIELDS),
            edges=_count(cypher.COUNT_EDGES),
        )
