"""Index 宿主与 ModelAdapter 单元测试."""

import pytest

from elasticcriteria import BulkConfig, Criteria, Index
from elasticcriteria.exceptions import UsageError
from elasticcriteria.index import ModelAdapter


def bulk_response(lines, failed_ids=()):
    items = []
    for line in lines:
        action, meta = next(iter(line.items()))
        if action in ("index", "delete") and isinstance(meta, dict):
            info = {"_index": meta["_index"], "_id": meta["_id"], "status": 200}
            if meta["_id"] in failed_ids:
                info.update(status=404, error={"type": "not_found", "reason": "missing"})
            items.append({action: info})
    return {"took": 1, "errors": bool(failed_ids), "items": items}


class Record:
    def __init__(self, record_id, name):
        self.id = record_id
        self.name = name


class RecordAdapter(ModelAdapter):
    def __init__(self, records):
        self.records = records

    def fetch_by_ids(self, ids):
        return [record for record in self.records if str(record.id) in ids]

    def iterate_all(self, batch_size):
        return iter(self.records)


class TestIndexCriteria:
    def test_criteria_is_bound(self, index, connection):
        criteria = index.criteria()

        assert isinstance(criteria, Criteria)
        assert criteria.target.index == "products"
        assert criteria.target.connection is connection
        assert criteria == Criteria()

    def test_shortcuts(self, index):
        assert index.where({"a": 1}).filters == ({"term": {"a": 1}},)
        assert index.search("phone").search_string.query == "phone"
        assert index.match_all().to_dict() == {"query": {"match_all": {}}}
        assert list(index.aggregate("brand", size=3).to_dict()["aggs"]) == ["brand"]

    def test_records_for(self, index, connection, make_response, products):
        connection.responses.append(make_response([products[4], products[0]]))
        view = index.match_all().execute()

        assert [record["id"] for record in index.records_for(view)] == [5, 1]

    def test_empty_name_rejected(self, connection):
        with pytest.raises(UsageError):
            Index("", connection)


class TestModelAdapter:
    def test_fetch_in_order_with_objects(self):
        adapter = RecordAdapter([Record(1, "a"), Record(2, "b"), Record(3, "c")])

        records = adapter.fetch_in_order(["3", "1", "9"])

        assert [record.name for record in records] == ["c", "a"]

    def test_fetch_in_order_empty(self):
        adapter = RecordAdapter([])
        assert adapter.fetch_in_order([]) == []

    def test_adapter_must_implement_methods(self):
        class Incomplete(ModelAdapter):
            def fetch_by_ids(self, ids):
                return []

        with pytest.raises(TypeError):
            Incomplete()


class TestIndexImport:
    def test_import_records(self, make_connection):
        connection = make_connection()
        connection.request = _bulk_recorder(connection)
        index = Index(
            "products",
            connection,
            adapter=RecordAdapter([]),
            serializer=lambda record: {"name": record.name},
            bulk_config=BulkConfig(max_count=2),
        )

        result = index.import_records([Record(1, "a"), Record(2, "b"), Record(3, "c")])

        assert result.batch_sizes == [2, 1]
        assert result.success == 3
        first_batch = connection.requests[0]["body"]
        assert first_batch[:2] == [{"index": {"_index": "products", "_id": "1"}}, {"name": "a"}]

    def test_import_all_uses_adapter(self, make_connection):
        connection = make_connection()
        connection.request = _bulk_recorder(connection)
        records = [Record(i, f"r{i}") for i in range(5)]
        index = Index(
            "products",
            connection,
            adapter=RecordAdapter(records),
            serializer=lambda record: {"name": record.name},
        )

        result = index.import_all(batch_size=100)

        assert result.total == 5
        assert result.batch_count == 1

    def test_import_dict_records_without_serializer(self, make_connection):
        connection = make_connection()
        connection.request = _bulk_recorder(connection)
        index = Index("products", connection)

        index.import_records([{"id": 7, "name": "x"}])

        assert connection.requests[0]["body"][0] == {"index": {"_index": "products", "_id": "7"}}

    def test_serialize_requires_serializer_for_objects(self, connection):
        with pytest.raises(UsageError, match="serializer"):
            Index("products", connection).serialize(Record(1, "a"))

    def test_import_all_requires_adapter(self, connection):
        with pytest.raises(UsageError, match="ModelAdapter"):
            Index("products", connection).import_all()

    def test_delete_records_ignores_missing(self, make_connection):
        connection = make_connection()
        connection.request = _bulk_recorder(connection, failed_ids={"2"})
        index = Index("products", connection, adapter=RecordAdapter([]))

        result = index.delete_records([Record(1, "a"), Record(2, "b")])

        assert (result.success, result.failed) == (2, 0)
        assert connection.requests[0]["body"] == [
            {"delete": {"_index": "products", "_id": "1"}},
            {"delete": {"_index": "products", "_id": "2"}},
        ]

    def test_refresh(self, index, connection):
        index.refresh()
        assert (connection.requests[0]["method"], connection.requests[0]["path"]) == ("POST", "/products/_refresh")


def _bulk_recorder(connection, failed_ids=()):
    def request(method, path, body=None, params=None, ndjson=False):
        connection.requests.append({"method": method, "path": path, "body": body, "params": params, "ndjson": ndjson})
        return bulk_response(body, failed_ids)

    return request
