"""Neo4j graph store using the official driver."""

from __future__ import annotations

import logging
import math
import os
from typing import Any, Mapping

from variantgraph.errors import GraphStoreError
from variantgraph.storage.base import GraphStore, NodeId, safe_name

try:
    from neo4j import GraphDatabase
    from neo4j.exceptions import Neo4jError
except ImportError:  # pragma: no cover - exercised only when dependency missing
    GraphDatabase = None
    Neo4jError = None

logger = logging.getLogger(__name__)


class Neo4jGraphStore(GraphStore):
    """Store nodes and relationships in a Neo4j database.

    Every call runs in its own managed transaction. Node identifiers are the
    server's ``elementId`` strings.
    """

    def __init__(
        self,
        *,
        uri: str,
        user: str = "neo4j",
        password: str | None = None,
        database: str = "neo4j",
    ) -> None:
        if GraphDatabase is None:
            raise GraphStoreError(
                "neo4j is not installed. Add it to requirements before using the Neo4j graph store."
            )
        password = password if password is not None else os.environ.get("NEO4J_PASSWORD", "")
        self.database = database
        self.driver = GraphDatabase.driver(uri, auth=(user, password))

    def _read(self, query: str, **parameters: Any) -> list[Any]:
        try:
            with self.driver.session(database=self.database) as session:
                return session.execute_read(lambda tx: list(tx.run(query, **parameters)))
        except Neo4jError as exc:
            raise GraphStoreError(f"Neo4j read failed: {exc}") from exc

    def _write(self, query: str, **parameters: Any) -> list[Any]:
        try:
            with self.driver.session(database=self.database) as session:
                return session.execute_write(lambda tx: list(tx.run(query, **parameters)))
        except Neo4jError as exc:
            raise GraphStoreError(f"Neo4j write failed: {exc}") from exc

    def find_node(self, label: str, key_property: str, key_value: Any) -> NodeId | None:
        safe_name(label, "label")
        safe_name(key_property, "property")
        records = self._read(
            f"MATCH (n:{label}) WHERE n.{key_property} = $value RETURN elementId(n) AS node_id",
            value=key_value,
        )
        if len(records) > 1:
            raise GraphStoreError(f"Multiple nodes already exist for: {label} {key_property} {key_value}")
        return records[0]["node_id"] if records else None

    def create_node(
        self,
        label: str,
        key_property: str,
        properties: Mapping[str, Any],
    ) -> NodeId:
        safe_name(label, "label")
        if key_property not in properties:
            raise GraphStoreError(f"{label} node is missing key property {key_property}")
        records = self._write(
            f"CREATE (n:{label}) SET n = $properties RETURN elementId(n) AS node_id",
            properties=dict(properties),
        )
        return records[0]["node_id"]

    def node_properties(self, node_id: NodeId) -> dict[str, Any]:
        records = self._read(
            "MATCH (n) WHERE elementId(n) = $node_id RETURN properties(n) AS properties",
            node_id=node_id,
        )
        if not records:
            raise GraphStoreError(f"No node with id {node_id}")
        return dict(records[0]["properties"])

    def has_relationship(self, start: NodeId, rel_type: str, end: NodeId) -> bool:
        safe_name(rel_type, "relationship type")
        records = self._read(
            f"MATCH (a)-[r:{rel_type}]->(b) WHERE elementId(a) = $start AND elementId(b) = $end "
            "RETURN count(r) AS total",
            start=start,
            end=end,
        )
        return bool(records and records[0]["total"])

    def create_relationship(
        self,
        start: NodeId,
        rel_type: str,
        end: NodeId,
        properties: Mapping[str, Any] | None = None,
    ) -> None:
        safe_name(rel_type, "relationship type")
        records = self._write(
            "MATCH (a), (b) WHERE elementId(a) = $start AND elementId(b) = $end "
            f"CREATE (a)-[r:{rel_type}]->(b) SET r = $properties RETURN count(r) AS total",
            start=start,
            end=end,
            properties=dict(properties or {}),
        )
        if not records or not records[0]["total"]:
            raise GraphStoreError(f"Cannot link missing nodes {start} -[{rel_type}]-> {end}")

    def node_count(self, label: str | None = None) -> int:
        pattern = f"(n:{safe_name(label, 'label')})" if label else "(n)"
        records = self._read(f"MATCH {pattern} RETURN count(n) AS total")
        return int(records[0]["total"])

    def relationship_count(self, rel_type: str | None = None) -> int:
        pattern = f"()-[r:{safe_name(rel_type, 'relationship type')}]->()" if rel_type else "()-[r]->()"
        records = self._read(f"MATCH {pattern} RETURN count(r) AS total")
        return int(records[0]["total"])

    def clear(self) -> None:
        self._write("MATCH (n) DETACH DELETE n")

    def ensure_unique_constraint(self, label: str, key_property: str) -> None:
        safe_name(label, "label")
        safe_name(key_property, "property")
        name = f"{label.lower()}_{key_property.lower()}_unique"
        self._write(
            f"CREATE CONSTRAINT {name} IF NOT EXISTS FOR (n:{label}) REQUIRE n.{key_property} IS UNIQUE"
        )

    def await_indexes(self, timeout_seconds: float) -> bool:
        try:
            with self.driver.session(database=self.database) as session:
                session.run("CALL db.awaitIndexes($timeout)", timeout=math.ceil(timeout_seconds)).consume()
        except Neo4jError as exc:
            logger.warning("Indexes not online after %ss: %s", timeout_seconds, exc)
            return False
        return True

    def close(self) -> None:
        self.driver.close()
