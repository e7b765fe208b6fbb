"""DuckDB-backed property graph store with Parquet export."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Mapping

import pandas as pd

from variantgraph.errors import GraphStoreError
from variantgraph.storage.base import GraphStore, NodeId, safe_name

try:
    import duckdb
except ImportError:  # pragma: no cover - exercised only when dependency missing
    duckdb = None

logger = logging.getLogger(__name__)

_SCHEMA_STATEMENTS: tuple[str, ...] = (
    "CREATE SEQUENCE IF NOT EXISTS graph_node_ids START 1",
    """
    CREATE TABLE IF NOT EXISTS graph_nodes (
        node_id BIGINT PRIMARY KEY DEFAULT nextval('graph_node_ids'),
        label VARCHAR NOT NULL,
        key_property VARCHAR NOT NULL,
        key_value VARCHAR NOT NULL,
        properties VARCHAR NOT NULL,
        UNIQUE (label, key_property, key_value)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS graph_relationships (
        start_id BIGINT NOT NULL,
        rel_type VARCHAR NOT NULL,
        end_id BIGINT NOT NULL,
        properties VARCHAR NOT NULL,
        PRIMARY KEY (start_id, rel_type, end_id)
    )
    """,
)


class DuckDBGraphStore(GraphStore):
    """Persist the graph as node/relationship tables in a DuckDB file.

    Uniqueness of natural keys and of ``(start, type, end)`` relationships is
    enforced by table constraints, so concurrent or repeated importers cannot
    create duplicates even without the in-process entity cache.
    """

    def __init__(self, *, db_path: str | Path = ":memory:") -> None:
        if duckdb is None:
            raise GraphStoreError(
                "duckdb is not installed. Add it to requirements before using the DuckDB graph store."
            )

        if str(db_path) != ":memory:":
            db_path = Path(db_path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self.connection = duckdb.connect(str(db_path))
        for statement in _SCHEMA_STATEMENTS:
            self.connection.execute(statement)

    @contextmanager
    def _transaction(self) -> Iterator[Any]:
        self.connection.begin()
        try:
            yield self.connection
        except Exception:
            self.connection.rollback()
            raise
        self.connection.commit()

    def find_node(self, label: str, key_property: str, key_value: Any) -> NodeId | None:
        rows = self.connection.execute(
            "SELECT node_id FROM graph_nodes WHERE label = ? AND key_property = ? AND key_value = ?",
            [label, key_property, str(key_value)],
        ).fetchall()
        if len(rows) > 1:
            raise GraphStoreError(f"Multiple nodes already exist for: {label} {key_property} {key_value}")
        return int(rows[0][0]) if rows else None

    def create_node(
        self,
        label: str,
        key_property: str,
        properties: Mapping[str, Any],
    ) -> NodeId:
        safe_name(label, "label")
        safe_name(key_property, "property")
        if key_property not in properties:
            raise GraphStoreError(f"{label} node is missing key property {key_property}")

        try:
            with self._transaction() as connection:
                row = connection.execute(
                    "INSERT INTO graph_nodes (label, key_property, key_value, properties) "
                    "VALUES (?, ?, ?, ?) RETURNING node_id",
                    [
                        label,
                        key_property,
                        str(properties[key_property]),
                        json.dumps(dict(properties), sort_keys=True),
                    ],
                ).fetchone()
        except duckdb.Error as exc:
            raise GraphStoreError(
                f"Could not create {label} node {properties[key_property]!r}: {exc}"
            ) from exc
        return int(row[0])

    def has_relationship(self, start: NodeId, rel_type: str, end: NodeId) -> bool:
        row = self.connection.execute(
            "SELECT count(*) FROM graph_relationships WHERE start_id = ? AND rel_type = ? AND end_id = ?",
            [start, rel_type, end],
        ).fetchone()
        return bool(row[0])

    def create_relationship(
        self,
        start: NodeId,
        rel_type: str,
        end: NodeId,
        properties: Mapping[str, Any] | None = None,
    ) -> None:
        safe_name(rel_type, "relationship type")
        try:
            with self._transaction() as connection:
                connection.execute(
                    "INSERT INTO graph_relationships (start_id, rel_type, end_id, properties) VALUES (?, ?, ?, ?)",
                    [start, rel_type, end, json.dumps(dict(properties or {}), sort_keys=True)],
                )
        except duckdb.Error as exc:
            raise GraphStoreError(f"Could not create relationship {start} -[{rel_type}]-> {end}: {exc}") from exc

    def node_count(self, label: str | None = None) -> int:
        if label is None:
            row = self.connection.execute("SELECT count(*) FROM graph_nodes").fetchone()
        else:
            row = self.connection.execute("SELECT count(*) FROM graph_nodes WHERE label = ?", [label]).fetchone()
        return int(row[0])

    def relationship_count(self, rel_type: str | None = None) -> int:
        if rel_type is None:
            row = self.connection.execute("SELECT count(*) FROM graph_relationships").fetchone()
        else:
            row = self.connection.execute(
                "SELECT count(*) FROM graph_relationships WHERE rel_type = ?", [rel_type]
            ).fetchone()
        return int(row[0])

    def clear(self) -> None:
        with self._transaction() as connection:
            connection.execute("DELETE FROM graph_relationships")
            connection.execute("DELETE FROM graph_nodes")

    def ensure_unique_constraint(self, label: str, key_property: str) -> None:
        # graph_nodes already carries UNIQUE (label, key_property, key_value).
        safe_name(label, "label")
        safe_name(key_property, "property")

    def node_properties(self, node_id: NodeId) -> dict[str, Any]:
        row = self.connection.execute(
            "SELECT properties FROM graph_nodes WHERE node_id = ?", [node_id]
        ).fetchone()
        if row is None:
            raise GraphStoreError(f"No node with id {node_id}")
        return json.loads(row[0])

    def nodes_frame(self) -> pd.DataFrame:
        frame = self.connection.execute(
            "SELECT node_id, label, key_property, key_value, properties FROM graph_nodes ORDER BY node_id"
        ).df()
        frame["properties"] = frame["properties"].map(json.loads)
        return frame

    def relationships_frame(self) -> pd.DataFrame:
        frame = self.connection.execute(
            "SELECT start_id, rel_type, end_id, properties FROM graph_relationships "
            "ORDER BY start_id, rel_type, end_id"
        ).df()
        frame["properties"] = frame["properties"].map(json.loads)
        return frame

    def export_parquet(self, output_dir: str | Path) -> dict[str, Path]:
        """Copy node and relationship tables to Parquet files."""

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        targets = {
            "graph_nodes": output_dir / "nodes.parquet",
            "graph_relationships": output_dir / "relationships.parquet",
        }
        for table, target in targets.items():
            if target.exists():
                target.unlink()
            parquet_target = target.as_posix().replace("'", "''")
            self.connection.execute(f"COPY {table} TO '{parquet_target}' (FORMAT PARQUET)")
            logger.info("Exported %s to %s", table, target)
        return targets

    def close(self) -> None:
        self.connection.close()
