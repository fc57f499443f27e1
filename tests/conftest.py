"""测试公共 fixtures.

提供记录请求的假连接，执行层测试不依赖真实集群.
"""

from typing import Any

import pytest

from elasticcriteria.connection import Connection
from elasticcriteria.index import Index, ModelAdapter


def search_response(documents: list[dict[str, Any]], total: int | None = None, **extra: Any) -> dict[str, Any]:
    """按文档列表构造 _search 响应."""
    response = {
        "took": 3,
        "timed_out": False,
        "hits": {
            "total": {"value": len(documents) if total is None else total, "relation": "eq"},
            "max_score": 1.0,
            "hits": [
                {"_index": "products", "_id": str(doc["id"]), "_score": 1.0, "_source": doc}
                for doc in documents
            ],
        },
    }
    response.update(extra)
    return response


class FakeConnection(Connection):
    """记录全部请求，按队列返回预设响应的连接.

    Args:
        responses: 依次返回的响应
        error: 设置后每次请求都抛出该异常
    """

    def __init__(self, responses: list[Any] | None = None, error: Exception | None = None):
        self.requests: list[dict[str, Any]] = []
        self.responses = list(responses or [])
        self.error = error

    def request(self, method, path, body=None, params=None, ndjson=False):
        self.requests.append(
            {"method": method, "path": path, "body": body, "params": params, "ndjson": ndjson}
        )
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return search_response([])


class ScrollingConnection(FakeConnection):
    """模拟服务端滚动游标：每次获取签发新令牌，并校验令牌是否为最新."""

    def __init__(self, documents: list[dict[str, Any]]):
        super().__init__()
        self.documents = documents
        self.position = 0
        self.size = 0
        self.generation = 0
        self.token: str | None = None
        self.issued_tokens: list[str] = []
        self.cleared: list[str] = []

    def request(self, method, path, body=None, params=None, ndjson=False):
        self.requests.append(
            {"method": method, "path": path, "body": body, "params": params, "ndjson": ndjson}
        )
        if path.endswith("/_search"):
            self.size = body["size"]
            self.position = 0
            return self._next_page()
        if path == "/_search/scroll" and method == "POST":
            assert body["scroll_id"] == self.token
            return self._next_page()
        if path == "/_search/scroll" and method == "DELETE":
            self.cleared.extend(body["scroll_id"])
            return {"succeeded": True, "num_freed": 1}
        raise AssertionError(f"未预期的请求: {method} {path}")

    def _next_page(self) -> dict[str, Any]:
        batch = self.documents[self.position : self.position + self.size]
        self.position += len(batch)
        self.generation += 1
        self.token = f"scroll-token-{self.generation}"
        self.issued_tokens.append(self.token)
        return search_response(batch, total=len(self.documents), _scroll_id=self.token)


class DictAdapter(ModelAdapter):
    """基于内存字典的记录源，fetch_by_ids 故意按 ID 倒序返回."""

    def __init__(self, records: list[dict[str, Any]]):
        self.records = {str(record["id"]): record for record in records}
        self.fetched: list[list[str]] = []

    def fetch_by_ids(self, ids):
        self.fetched.append(list(ids))
        return [self.records[i] for i in sorted(ids, reverse=True) if i in self.records]

    def iterate_all(self, batch_size):
        yield from self.records.values()


@pytest.fixture
def products() -> list[dict[str, Any]]:
    return [{"id": i, "name": f"product-{i}", "price": i * 10} for i in range(1, 6)]


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def index(connection, products) -> Index:
    return Index("products", connection, adapter=DictAdapter(products))


@pytest.fixture
def scrolling_connection(products) -> ScrollingConnection:
    return ScrollingConnection(products)


@pytest.fixture
def make_response():
    """返回构造 _search 响应的函数."""
    return search_response


@pytest.fixture
def make_connection():
    """返回 FakeConnection 类，便于按用例预设响应."""
    return FakeConnection


@pytest.fixture
def make_adapter():
    return DictAdapter
