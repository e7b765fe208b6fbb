"""Base class for graph storage backends."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Mapping, Union

from variantgraph.errors import GraphStoreError

NodeId = Union[int, str]

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def safe_name(name: str, kind: str = "name") -> str:
    """Reject labels/types/properties that cannot be embedded in a query."""

    if not _NAME_RE.match(name):
        raise GraphStoreError(f"Unsafe {kind}: {name}")
    return name


class GraphStore(ABC):
    """Narrow merge-or-create surface the graph builder depends on.

    Every write is its own unit of work: a failure while creating one node or
    relationship never leaves it half-written.
    """

    @abstractmethod
    def find_node(self, label: str, key_property: str, key_value: Any) -> NodeId | None:
        """Return the id of the node whose key property equals ``key_value``."""

    @abstractmethod
    def create_node(
        self,
        label: str,
        key_property: str,
        properties: Mapping[str, Any],
    ) -> NodeId:
        """Create a node; ``properties`` must contain ``key_property``."""

    @abstractmethod
    def node_properties(self, node_id: NodeId) -> dict[str, Any]:
        """Return the stored properties of one node, key property included."""

    @abstractmethod
    def has_relationship(self, start: NodeId, rel_type: str, end: NodeId) -> bool:
        """Whether a ``start -[rel_type]-> end`` relationship exists."""

    @abstractmethod
    def create_relationship(
        self,
        start: NodeId,
        rel_type: str,
        end: NodeId,
        properties: Mapping[str, Any] | None = None,
    ) -> None:
        """Create a directed, typed relationship."""

    @abstractmethod
    def node_count(self, label: str | None = None) -> int:
        """Count nodes, optionally restricted to one label."""

    @abstractmethod
    def relationship_count(self, rel_type: str | None = None) -> int:
        """Count relationships, optionally restricted to one type."""

    @abstractmethod
    def clear(self) -> None:
        """Delete every node and relationship."""

    def ensure_unique_constraint(self, label: str, key_property: str) -> None:
        """Declare ``key_property`` unique for ``label`` nodes."""

    def await_indexes(self, timeout_seconds: float) -> bool:
        """Wait up to ``timeout_seconds`` for indexes; False if not ready."""

        return True

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self) -> "GraphStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
