"""Cypher compilation for the Neo4j GraphAccessPort.

Turns backend-agnostic ``ChainQuery`` descriptors into parameterised Cypher.
Labels and relationship types follow the schema written by the ingestion
pipeline.  Dependency queries only match elemental fields; group fields are
reachable by name through ``GET_FIELD`` alone.
"""

from __future__ import annotations

from typing import Any

from impact_engine.domain.entities import ChainQuery
from impact_engine.domain.enums import EdgeType, NodeKind, SortKey

UNIT_LABEL = "BusinessFunction"
FIELD_LABEL = "ElementalField"
GROUP_FIELD_LABEL = "GroupField"
MODULE_LABEL = "Module"

RELATIONSHIP_TYPES: dict[EdgeType, str] = {
    EdgeType.CONSUMES: "HAS_INPUT_FIELD",
    EdgeType.PRODUCES: "HAS_OUTPUT_FIELD",
    EdgeType.CONTAINS: "CONTAINS",
    EdgeType.RUNS_IN: "RUNS_IN",
}
EDGE_TYPES_BY_RELATIONSHIP: dict[str, EdgeType] = {v: k for k, v in RELATIONSHIP_TYPES.items()}

DEPENDENCY_RELATIONSHIPS = (
    f"{RELATIONSHIP_TYPES[EdgeType.CONSUMES]}|{RELATIONSHIP_TYPES[EdgeType.PRODUCES]}"
)


def compile_chain_query(query: ChainQuery) -> tuple[str, dict[str, Any]]:
    """Compile a chain descriptor into ``(cypher, parameters)``.

    Nodes are named ``f0..f{n-1}`` (fields) and ``u1..u{n}`` (units).  Each
    hop is its own MATCH clause, so nodes may repeat across hops and a cycle
    shows up as the same unit at a greater depth.
    """
    out_rel = RELATIONSHIP_TYPES[query.direction.outbound_edge]
    in_rel = RELATIONSHIP_TYPES[query.direction.inbound_edge]
    depth = query.depth

    clauses: list[str] = []
    if query.start is NodeKind.UNIT:
        clauses.append(
            f"MATCH (source:{UNIT_LABEL} {{name: $identifier}})"
            f"-[:{out_rel}]->(f0:{FIELD_LABEL})"
        )
    else:
        clauses.append(f"MATCH (f0:{FIELD_LABEL} {{name: $identifier}})")

    for i in range(1, depth + 1):
        clauses.append(f"MATCH (f{i - 1})<-[:{in_rel}]-(u{i}:{UNIT_LABEL})")
        if i < depth:
            clauses.append(f"MATCH (u{i})-[:{out_rel}]->(f{i}:{FIELD_LABEL})")

    if query.start is NodeKind.FIELD:
        clauses.append(
            f"OPTIONAL MATCH (source:{UNIT_LABEL})-[:{out_rel}]->(f0)"
        )

    path_fields = ", ".join(f"f{i}.name" for i in range(depth))
    clauses.append(
        "RETURN source.name AS source_unit,\n"
        "       source.outputName AS source_output_field,\n"
        f"       u{depth}.name AS affected_unit,\n"
        f"       u{depth}.outputName AS affected_output_field,\n"
        f"       [{path_fields}] AS path_fields\n"
        "LIMIT $limit"
    )
    return "\n".join(clauses), {"identifier": query.identifier, "limit": query.limit}


GET_UNIT = f"""
MATCH (u:{UNIT_LABEL} {{name: $name}})
RETURN u.id AS id, u.name AS name, u.outputGroup AS output_group,
       u.outputName AS output_name, u.isPassthrough AS is_passthrough
LIMIT 1
"""

GET_FIELD = f"""
MATCH (f)
WHERE (f:{FIELD_LABEL} OR f:{GROUP_FIELD_LABEL}) AND f.name = $name
RETURN f.id AS id, f.name AS name, f.dataType AS data_type,
       f:{GROUP_FIELD_LABEL} AS is_group
LIMIT 1
"""

EXPAND_UNIT = f"""
MATCH (u:{UNIT_LABEL} {{name: $name}})-[r:{DEPENDENCY_RELATIONSHIPS}]->(f:{FIELD_LABEL})
RETURN f.name AS name, type(r) AS relationship
"""

EXPAND_FIELD = f"""
MATCH (f:{FIELD_LABEL} {{name: $name}})<-[r:{DEPENDENCY_RELATIONSHIPS}]-(u:{UNIT_LABEL})
RETURN u.name AS name, type(r) AS relationship
"""

FIELD_FAN = f"""
MATCH (field:{FIELD_LABEL})
WITH field,
     [(bf:{UNIT_LABEL})-[:{RELATIONSHIP_TYPES[EdgeType.PRODUCES]}]->(field) | bf] AS producers,
     [(bf:{UNIT_LABEL})-[:{RELATIONSHIP_TYPES[EdgeType.CONSUMES]}]->(field) | bf] AS consumers
WHERE size(producers) >= $minProducers AND size(consumers) >= $minConsumers
RETURN field.name AS field,
       size(producers) AS producer_count,
       size(consumers) AS consumer_count
"""

FIELD_FAN_ORDER: dict[SortKey, str] = {
    SortKey.CONSUMERS: "consumer_count DESC",
    SortKey.PRODUCERS: "producer_count DESC",
    SortKey.RATIO: "toFloat(consumer_count) / producer_count DESC",
}


def field_fan_query(order_by: SortKey | None = None, limit: int | None = None) -> str:
    """``FIELD_FAN`` with the ranking pushed into the database."""
    statement = FIELD_FAN
    if order_by is not None:
        statement += f"ORDER BY {FIELD_FAN_ORDER[order_by]}\n"
    if limit is not None:
        statement += "LIMIT $limit\n"
    return statement


UNIT_FAN = f"""
MATCH (bf:{UNIT_LABEL})
OPTIONAL MATCH (bf)-[:{RELATIONSHIP_TYPES[EdgeType.CONSUMES]}]->(input:{FIELD_LABEL})
OPTIONAL MATCH (bf)-[:{RELATIONSHIP_TYPES[EdgeType.PRODUCES]}]->(output:{FIELD_LABEL})
WITH bf, collect(DISTINCT input) AS inputs, collect(DISTINCT output) AS outputs
RETURN bf.name AS unit,
       size(inputs) AS input_count,
       size(outputs) AS output_count,
       size(inputs) + size([o IN outputs WHERE NOT o IN inputs]) AS touch_points
"""

COUNT_UNITS = f"MATCH (bf:{UNIT_LABEL}) RETURN count(bf) AS count"
COUNT_FIELDS = f"MATCH (f:{FIELD_LABEL}) RETURN count(f) AS count"
COUNT_EDGES = (
    f"MATCH (:{UNIT_LABEL})-[r:{DEPENDENCY_RELATIONSHIPS}]->(:{FIELD_LABEL}) "
    "RETURN count(r) AS count"
)
