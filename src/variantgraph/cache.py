"""Natural-key caches and the per-run import session."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Hashable
from enum import Enum
from typing import Any, Mapping

from variantgraph.storage.base import GraphStore, NodeId

logger = logging.getLogger(__name__)


class EntityKind(Enum):
    """Node kinds with their label and natural-key property."""

    SAMPLE = ("Sample", "SampleID")
    VARIANT = ("Variant", "Variant")
    GENE = ("Gene", "Symbol")
    FEATURE = ("Feature", "Feature")
    ANNOTATION = ("Annotation", "AnnotationID")
    PHENOTYPE = ("Phenotype", "Phenotype")

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def key_property(self) -> str:
        return self.value[1]


class EntityCache:
    """One ``natural key -> node id`` map per entity kind."""

    def __init__(self) -> None:
        self._ids: dict[EntityKind, dict[Any, NodeId]] = {kind: {} for kind in EntityKind}

    def get(self, kind: EntityKind, key: Any) -> NodeId | None:
        return self._ids[kind].get(key)

    def put(self, kind: EntityKind, key: Any, node_id: NodeId) -> None:
        self._ids[kind][key] = node_id

    def size(self, kind: EntityKind | None = None) -> int:
        if kind is not None:
            return len(self._ids[kind])
        return sum(len(ids) for ids in self._ids.values())


class ImportSession:
    """State shared by the builder stages of one import run.

    Owns the entity cache, the set of relationships already confirmed, the
    creation counters and the content signatures of annotation nodes.
    """

    def __init__(self, store: GraphStore, cache: EntityCache | None = None) -> None:
        self.store = store
        self.cache = cache or EntityCache()
        self.created_nodes: Counter[str] = Counter()
        self.created_relationships: Counter[str] = Counter()
        self.annotation_signatures: dict[str, Hashable] = {}
        self._relationships_seen: set[tuple[NodeId, str, NodeId]] = set()
        self._stored_before: set[tuple[EntityKind, Any]] = set()

    def lookup(self, kind: EntityKind, key: Any) -> NodeId | None:
        node_id = self.cache.get(kind, key)
        if node_id is not None:
            return node_id
        node_id = self.store.find_node(kind.label, kind.key_property, key)
        if node_id is not None:
            self.cache.put(kind, key, node_id)
            self._stored_before.add((kind, key))
        return node_id

    def merge_node(self, kind: EntityKind, key: Any, properties: Mapping[str, Any] | None = None) -> NodeId:
        """Return the node for ``key``, creating it on first sight."""

        node_id = self.lookup(kind, key)
        if node_id is not None:
            return node_id

        payload = dict(properties or {})
        payload[kind.key_property] = key
        node_id = self.store.create_node(kind.label, kind.key_property, payload)
        self.cache.put(kind, key, node_id)
        self.created_nodes[kind.label] += 1
        logger.debug("Created %s node %s", kind.label, key)
        return node_id

    def stored_properties(self, kind: EntityKind, key: Any) -> dict[str, Any] | None:
        """Properties of the node for ``key`` if it was in the store before this run."""

        node_id = self.lookup(kind, key)
        if node_id is None or (kind, key) not in self._stored_before:
            return None
        return self.store.node_properties(node_id)

    def relationship_exists(self, start: NodeId, rel_type: str, end: NodeId) -> bool:
        triple = (start, rel_type, end)
        if triple in self._relationships_seen:
            return True
        if self.store.has_relationship(start, rel_type, end):
            self._relationships_seen.add(triple)
            return True
        return False

    def merge_relationship(
        self,
        start: NodeId,
        rel_type: str,
        end: NodeId,
        properties: Mapping[str, Any] | None = None,
    ) -> bool:
        """Create ``start -[rel_type]-> end`` unless it exists; True if created."""

        if self.relationship_exists(start, rel_type, end):
            return False
        self.store.create_relationship(start, rel_type, end, properties)
        self._relationships_seen.add((start, rel_type, end))
        self.created_relationships[rel_type] += 1
        return True
