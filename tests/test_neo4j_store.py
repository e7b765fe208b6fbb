import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from variantgraph.errors import GraphStoreError  # noqa: E402
from variantgraph.storage import neo4j_graph  # noqa: E402


class _Result:
    def consume(self) -> None:
        return None


class _Transaction:
    def __init__(self, rows: list[dict]) -> None:
        self.rows = rows
        self.queries: list[tuple[str, dict]] = []

    def run(self, query: str, **parameters):
        self.queries.append((query, parameters))
        return iter(self.rows)


class _Session:
    def __init__(self, driver: "_Driver") -> None:
        self.driver = driver

    def __enter__(self) -> "_Session":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def run(self, query: str, **parameters) -> _Result:
        self.driver.calls.append((query, parameters))
        return _Result()

    def execute_read(self, work):
        return work(self.driver.transaction)

    def execute_write(self, work):
        return work(self.driver.transaction)


class _Driver:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.transaction = _Transaction([])
        self.closed = False

    def session(self, database: str) -> _Session:
        return _Session(self)

    def close(self) -> None:
        self.closed = True


class _GraphDatabase:
    @staticmethod
    def driver(uri: str, auth: tuple[str, str]) -> _Driver:
        return _Driver()


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> neo4j_graph.Neo4jGraphStore:
    monkeypatch.setattr(neo4j_graph, "GraphDatabase", _GraphDatabase)
    return neo4j_graph.Neo4jGraphStore(uri="bolt://localhost:7687", password="secret")


def test_await_indexes_rounds_fractional_timeouts_up(store: neo4j_graph.Neo4jGraphStore) -> None:
    assert store.await_indexes(0.2)
    assert store.await_indexes(3)

    timeouts = [parameters["timeout"] for query, parameters in store.driver.calls]
    assert timeouts == [1, 3]


def test_node_properties_reads_by_element_id(store: neo4j_graph.Neo4jGraphStore) -> None:
    store.driver.transaction.rows = [{"properties": {"Feature": "ENST1", "Symbol": "OLD1"}}]

    assert store.node_properties("4:abc:1") == {"Feature": "ENST1", "Symbol": "OLD1"}
    query, parameters = store.driver.transaction.queries[-1]
    assert "elementId(n) = $node_id" in query
    assert parameters == {"node_id": "4:abc:1"}

    store.driver.transaction.rows = []
    with pytest.raises(GraphStoreError):
        store.node_properties("4:abc:2")
