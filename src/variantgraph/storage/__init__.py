"""Graph storage backends."""

from .base import GraphStore, NodeId, safe_name
from .duckdb_graph import DuckDBGraphStore
from .memory import InMemoryGraphStore, StoredNode, StoredRelationship
from .neo4j_graph import Neo4jGraphStore

__all__ = [
    "GraphStore",
    "NodeId",
    "safe_name",
    "DuckDBGraphStore",
    "InMemoryGraphStore",
    "StoredNode",
    "StoredRelationship",
    "Neo4jGraphStore",
]
