"""In-memory graph store used for tests and dry runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from variantgraph.errors import GraphStoreError
from variantgraph.storage.base import GraphStore, NodeId, safe_name


@dataclass
class StoredNode:
    node_id: int
    label: str
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class StoredRelationship:
    start: int
    rel_type: str
    end: int
    properties: dict[str, Any] = field(default_factory=dict)


class InMemoryGraphStore(GraphStore):
    """Dictionary-backed store enforcing one node per (label, key)."""

    def __init__(self) -> None:
        self.nodes: dict[int, StoredNode] = {}
        self.relationships: dict[tuple[int, str, int], StoredRelationship] = {}
        self._keys: dict[tuple[str, str, Any], int] = {}
        self._next_id = 1

    def find_node(self, label: str, key_property: str, key_value: Any) -> NodeId | None:
        return self._keys.get((label, key_property, key_value))

    def create_node(
        self,
        label: str,
        key_property: str,
        properties: Mapping[str, Any],
    ) -> NodeId:
        safe_name(label, "label")
        if key_property not in properties:
            raise GraphStoreError(f"{label} node is missing key property {key_property}")

        key = (label, key_property, properties[key_property])
        if key in self._keys:
            raise GraphStoreError(
                f"Uniqueness violation: {label} {key_property}={properties[key_property]!r} already exists"
            )

        node = StoredNode(node_id=self._next_id, label=label, properties=dict(properties))
        self._next_id += 1
        self.nodes[node.node_id] = node
        self._keys[key] = node.node_id
        return node.node_id

    def node_properties(self, node_id: NodeId) -> dict[str, Any]:
        node = self.nodes.get(node_id)
        if node is None:
            raise GraphStoreError(f"No node with id {node_id}")
        return dict(node.properties)

    def has_relationship(self, start: NodeId, rel_type: str, end: NodeId) -> bool:
        return (start, rel_type, end) in self.relationships

    def create_relationship(
        self,
        start: NodeId,
        rel_type: str,
        end: NodeId,
        properties: Mapping[str, Any] | None = None,
    ) -> None:
        safe_name(rel_type, "relationship type")
        if start not in self.nodes or end not in self.nodes:
            raise GraphStoreError(f"Cannot link missing nodes {start} -[{rel_type}]-> {end}")

        key = (start, rel_type, end)
        if key in self.relationships:
            raise GraphStoreError(f"Relationship already exists: {start} -[{rel_type}]-> {end}")
        self.relationships[key] = StoredRelationship(
            start=start,
            rel_type=rel_type,
            end=end,
            properties=dict(properties or {}),
        )

    def node_count(self, label: str | None = None) -> int:
        return sum(1 for node in self.nodes.values() if label is None or node.label == label)

    def relationship_count(self, rel_type: str | None = None) -> int:
        return sum(
            1 for rel in self.relationships.values() if rel_type is None or rel.rel_type == rel_type
        )

    def clear(self) -> None:
        self.nodes.clear()
        self.relationships.clear()
        self._keys.clear()

    def nodes_with_label(self, label: str) -> list[StoredNode]:
        return [node for node in self.nodes.values() if node.label == label]

    def relationships_of_type(self, rel_type: str) -> list[StoredRelationship]:
        return [rel for rel in self.relationships.values() if rel.rel_type == rel_type]
