"""批量操作批处理器单元测试."""

import unittest

from elasticcriteria.bulk import (
    BulkAction,
    BulkBatcher,
    BulkConfig,
    BulkOperation,
    BulkOperationError,
    BulkValidationError,
)
from elasticcriteria.connection import Connection
from elasticcriteria.connection.exceptions import TransportError


class RecordingBulkConnection(Connection):
    """记录每个 bulk 批次，并按预设为指定文档返回条目级错误."""

    def __init__(self, failures=None, error=None):
        self.batches = []
        self.failures = failures or {}
        self.error = error

    def request(self, method, path, body=None, params=None, ndjson=False):
        if self.error is not None:
            raise self.error
        self.batches.append({"method": method, "path": path, "lines": body, "params": params, "ndjson": ndjson})

        items = []
        position = 0
        while position < len(body):
            action, meta = next(iter(body[position].items()))
            position += 1 if action == "delete" else 2
            doc_id = meta.get("_id")
            info = {"_index": meta["_index"], "_id": doc_id, "status": 201}
            if doc_id in self.failures:
                status, error = self.failures[doc_id]
                info.update(status=status, error=error)
            items.append({action: info})
        return {"took": 1, "errors": any("error" in next(iter(i.values())) for i in items), "items": items}

    def batch_sizes(self):
        return [
            sum(1 for line in batch["lines"] if next(iter(line)) in ("index", "create", "update", "delete") and "_index" in next(iter(line.values())))
            for batch in self.batches
        ]


class TestBulkOperation(unittest.TestCase):
    """BulkOperation 渲染与校验测试."""

    def test_index_lines(self):
        operation = BulkOperation(BulkAction.INDEX, doc_id=1, source={"name": "a"}, routing="u1")
        self.assertEqual(
            operation.to_lines("products"),
            [{"index": {"_index": "products", "_id": "1", "routing": "u1"}}, {"name": "a"}],
        )

    def test_update_lines(self):
        operation = BulkOperation(
            BulkAction.UPDATE, doc_id="1", source={"name": "b"}, retry_on_conflict=3, doc_as_upsert=True
        )
        self.assertEqual(
            operation.to_lines("products"),
            [
                {"update": {"_index": "products", "_id": "1", "retry_on_conflict": 3}},
                {"doc": {"name": "b"}, "doc_as_upsert": True},
            ],
        )

    def test_delete_has_single_line(self):
        lines = BulkOperation(BulkAction.DELETE, doc_id="1", index_name="archive").to_lines("products")
        self.assertEqual(lines, [{"delete": {"_index": "archive", "_id": "1"}}])

    def test_version_defaults_to_external(self):
        meta = BulkOperation(BulkAction.INDEX, doc_id="1", source={}, version=7).to_lines("p")[0]["index"]
        self.assertEqual((meta["version"], meta["version_type"]), (7, "external"))

    def test_validation(self):
        with self.assertRaises(BulkValidationError):
            BulkOperation(BulkAction.INDEX, doc_id="1")
        with self.assertRaises(BulkValidationError):
            BulkOperation(BulkAction.DELETE)
        with self.assertRaises(BulkValidationError):
            BulkOperation(BulkAction.UPDATE, source={"a": 1})

    def test_config_validation(self):
        with self.assertRaises(BulkValidationError):
            BulkConfig(max_count=0)
        with self.assertRaises(BulkValidationError):
            BulkConfig(max_bytes=0)
        self.assertEqual(BulkConfig(ignore_statuses=[404]).ignore_statuses, (404,))


class TestBulkBatcher(unittest.TestCase):
    """BulkBatcher 分批与错误收集测试."""

    def setUp(self):
        self.connection = RecordingBulkConnection()

    def test_count_threshold(self):
        batcher = BulkBatcher(self.connection, "products", BulkConfig(max_count=3))
        for i in range(7):
            batcher.index(str(i), {"n": i})

        self.assertEqual(len(self.connection.batches), 2)
        result = batcher.close()

        self.assertEqual(result.batch_sizes, [3, 3, 1])
        self.assertEqual(self.connection.batch_sizes(), [3, 3, 1])
        self.assertEqual((result.total, result.success, result.failed), (7, 7, 0))

    def test_requests_use_ndjson_bulk_endpoint(self):
        with BulkBatcher(self.connection, "products", BulkConfig(refresh=True)) as batcher:
            batcher.delete("1")

        batch = self.connection.batches[0]
        self.assertEqual((batch["method"], batch["path"]), ("POST", "/_bulk"))
        self.assertTrue(batch["ndjson"])
        self.assertEqual(batch["params"], {"refresh": "true"})

    def test_source_is_fixed_when_queued(self):
        source = {"name": "a", "tags": ["x"]}
        batcher = BulkBatcher(self.connection, "products")
        batcher.index("1", source)
        source["name"] = "b"
        source["tags"].append("y")
        batcher.close()

        self.assertEqual(self.connection.batches[0]["lines"][1], {"name": "a", "tags": ["x"]})

    def test_oversized_action_flushes_alone(self):
        batcher = BulkBatcher(self.connection, "products", BulkConfig(max_bytes=300))
        batcher.index("1", {"name": "a"})
        batcher.index("2", {"name": "b"})
        batcher.index("3", {"name": "x" * 1000})
        batcher.index("4", {"name": "c"})

        result = batcher.close()

        self.assertEqual(result.batch_sizes, [2, 1, 1])
        self.assertEqual(self.connection.batches[1]["lines"][0]["index"]["_id"], "3")
        self.assertEqual(result.success, 4)

    def test_single_oversized_action_is_not_dropped(self):
        batcher = BulkBatcher(self.connection, "products", BulkConfig(max_bytes=10))
        batcher.index("1", {"name": "too large"})

        self.assertEqual(batcher.pending_count, 0)
        self.assertEqual(batcher.close().batch_sizes, [1])

    def test_item_errors_are_collected(self):
        connection = RecordingBulkConnection(
            failures={
                "2": (400, {"type": "mapper_parsing_exception", "reason": "failed to parse", "caused_by": {"type": "illegal_argument_exception", "reason": "bad"}}),
                "5": (409, {"type": "version_conflict_engine_exception", "reason": "conflict"}),
            }
        )
        batcher = BulkBatcher(connection, "products", BulkConfig(max_count=3))
        for i in range(1, 7):
            batcher.create(str(i), {"n": i})

        result = batcher.close()

        self.assertEqual(result.batch_sizes, [3, 3])
        self.assertEqual((result.success, result.failed), (4, 2))
        self.assertTrue(result.has_errors)
        first = result.errors[0]
        self.assertEqual((first.doc_id, first.status, first.error_type), ("2", 400, "mapper_parsing_exception"))
        self.assertEqual(first.caused_by, "illegal_argument_exception: bad")
        self.assertEqual(first.operation, BulkAction.CREATE)
        self.assertIn("Total errors: 2", result.get_error_summary())

    def test_ignored_statuses_count_as_success(self):
        connection = RecordingBulkConnection(failures={"1": (404, {"type": "not_found", "reason": "missing"})})
        batcher = BulkBatcher(connection, "products", BulkConfig(ignore_statuses=(404,)))
        batcher.delete("1")

        result = batcher.close()

        self.assertEqual((result.success, result.failed), (1, 0))

    def test_transport_error_propagates(self):
        connection = RecordingBulkConnection(error=TransportError("unreachable"))
        batcher = BulkBatcher(connection, "products")
        batcher.index("1", {"n": 1})

        with self.assertRaises(TransportError):
            batcher.flush()
        self.assertEqual(batcher.pending_count, 0)

    def test_progress_callback(self):
        calls = []
        batcher = BulkBatcher(
            self.connection,
            "products",
            BulkConfig(max_count=2),
            progress_callback=lambda number, size, result: calls.append((number, size, result.total)),
        )
        for i in range(3):
            batcher.index(str(i), {"n": i})
        batcher.close()

        self.assertEqual(calls, [(1, 2, 2), (2, 1, 3)])

    def test_error_exit_discards_pending(self):
        with self.assertLogs("elasticcriteria.bulk.tool", level="WARNING") as logs:
            with self.assertRaises(ValueError):
                with BulkBatcher(self.connection, "products") as batcher:
                    batcher.index("1", {"n": 1})
                    raise ValueError("source failed")

        self.assertEqual(self.connection.batches, [])
        self.assertIn("丢弃 1 个未发送的操作", logs.output[0])

    def test_closed_batcher_rejects_actions(self):
        batcher = BulkBatcher(self.connection, "products")
        batcher.close()
        with self.assertRaises(BulkOperationError):
            batcher.index("1", {"n": 1})

    def test_close_without_actions(self):
        result = BulkBatcher(self.connection, "products").close()
        self.assertEqual((result.total, result.batch_count), (0, 0))
        self.assertEqual(self.connection.batches, [])
