"""Port definitions (hexagonal architecture).

The analyses depend only on ``GraphAccessPort``; the Neo4j and NetworkX
adapters under ``impact_engine.infrastructure.graph`` satisfy it.  The port
is read-only and is passed explicitly to every analysis.

``field_fan`` returns fields in source order unless ``order_by`` is given,
in which case it sorts descending by that key with ties in source order.
``limit`` caps the number of rows returned.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

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
from impact_engine.domain.enums import SortKey


@runtime_checkable
class GraphAccessPort(Protocol):
    """Read-only access to the unit/field dependency graph.

    Implementations raise ``BackendUnavailableError`` when the underlying
    store cannot answer.  Unknown names yield ``None`` or empty lists.
    """

    def get_unit(self, name: str) -> Unit | None: ...
    def get_field(self, name: str) -> Field | None: ...
    def match_chains(self, query: ChainQuery) -> list[ChainRow]: ...
    def expand(self, node: NodeRef) -> list[Hop]: ...
    def field_fan(
        self,
        min_consumers: int = 0,
        min_producers: int = 1,
        order_by: SortKey | None = None,
        limit: int | None = None,
    ) -> list[FieldFan]: ...
    def unit_fan(self) -> list[UnitFan]: ...
    def graph_counts(self) -> GraphCounts: ...
