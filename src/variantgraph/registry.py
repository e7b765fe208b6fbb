"""Graph store registry for pluggable storage backends."""

from __future__ import annotations

import importlib
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from variantgraph.config import StoreConfig
from variantgraph.errors import ConfigError
from variantgraph.storage import DuckDBGraphStore, GraphStore, InMemoryGraphStore, Neo4jGraphStore

StoreFactory = Callable[..., GraphStore]


@dataclass(frozen=True)
class StorePluginSpec:
    """Spec describing a dynamically imported graph store implementation."""

    name: str
    module: str
    class_name: str


class GraphStoreRegistry:
    """Registry that maps stable store names to constructors."""

    def __init__(self) -> None:
        self._factories: dict[str, StoreFactory] = {}

    def register(self, name: str, factory: StoreFactory) -> None:
        key = name.strip().lower()
        if not key:
            raise ValueError("Store name cannot be empty")
        if key in self._factories:
            raise ValueError(f"Store already registered: {name}")
        self._factories[key] = factory

    def register_plugin(self, plugin: StorePluginSpec) -> None:
        """Register a store by importing a module/class at runtime."""

        module = importlib.import_module(plugin.module)
        store_cls = getattr(module, plugin.class_name)
        self.register(plugin.name, store_cls)

    def create(self, name: str, **kwargs: Any) -> GraphStore:
        key = name.strip().lower()
        if key not in self._factories:
            raise ConfigError(f"Unknown graph store '{name}'. Available: {', '.join(self.available())}")
        return self._factories[key](**kwargs)

    def create_from_config(self, config: StoreConfig) -> GraphStore:
        return self.create(config.type, **dict(config.params))

    def available(self) -> list[str]:
        return sorted(self._factories.keys())


def build_default_store_registry() -> GraphStoreRegistry:
    """Create a registry preloaded with the built-in graph stores."""

    registry = GraphStoreRegistry()
    registry.register("memory", InMemoryGraphStore)
    registry.register("duckdb", DuckDBGraphStore)
    registry.register("neo4j", Neo4jGraphStore)
    return registry
