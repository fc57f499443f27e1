"""批量操作核心工具类."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from elasticsearch.serializer import JsonSerializer

from elasticcriteria.bulk.exceptions import BulkOperationError
from elasticcriteria.bulk.models import (
    BulkAction,
    BulkConfig,
    BulkErrorItem,
    BulkOperation,
    BulkResult,
)
from elasticcriteria.connection import Connection
from elasticcriteria.connection.exceptions import ExecutionError
from elasticcriteria.typing import BulkLines

logger = logging.getLogger(__name__)

_serializer = JsonSerializer()


class BulkBatcher:
    """批量操作批处理器.

    按到达顺序累积操作，达到数量或字节阈值时自动发送一个批次：
    - 加入新操作会超过阈值时，先发送已累积的操作
    - 单个操作自身超过字节阈值时，单独作为一个批次发送，不会被丢弃
    - 批次之间顺序执行，同一时间只有一个请求在途
    - 条目级失败收集到 BulkResult.errors，不会中断后续条目和批次
    - 传输失败或请求被拒绝时中止当前批次并抛出，之前的批次已提交

    Args:
        connection: 连接
        index_name: 默认索引
        config: 批量配置
        progress_callback: 每个批次完成后的回调，参数为 (批次序号, 批次大小, 累计结果)

    使用示例:
        with BulkBatcher(connection, "products", BulkConfig(max_count=500)) as batcher:
            for product in products:
                batcher.index(product["id"], product)

        print(batcher.result.get_error_summary())
    """

    def __init__(
        self,
        connection: Connection,
        index_name: str,
        config: BulkConfig | None = None,
        progress_callback: Callable[[int, int, BulkResult], None] | None = None,
    ):
        self.connection = connection
        self.index_name = index_name
        self.config = config or BulkConfig()
        self.progress_callback = progress_callback
        self.result = BulkResult()
        self._pending: list[BulkLines] = []
        self._pending_bytes = 0
        self._started_at = time.time()
        self._closed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def pending_bytes(self) -> int:
        return self._pending_bytes

    @staticmethod
    def _byte_size(lines: BulkLines) -> int:
        return sum(len(_serializer.dumps(line)) + 1 for line in lines)

    def add(self, operation: BulkOperation) -> None:
        """
        加入一个操作，必要时触发发送.

        Args:
            operation: 批量操作项
        """
        if self._closed:
            raise BulkOperationError("批处理器已关闭，不能继续加入操作")

        lines = operation.to_lines(self.index_name)
        size = self._byte_size(lines)

        if self._pending and (
            len(self._pending) + 1 > self.config.max_count
            or self._pending_bytes + size > self.config.max_bytes
        ):
            self.flush()

        self._pending.append(lines)
        self._pending_bytes += size

        if (
            len(self._pending) >= self.config.max_count
            or self._pending_bytes >= self.config.max_bytes
        ):
            self.flush()

    def index(self, doc_id: Any, source: dict[str, Any], **options: Any) -> None:
        self.add(BulkOperation(BulkAction.INDEX, doc_id=doc_id, source=source, **options))

    def create(self, doc_id: Any, source: dict[str, Any], **options: Any) -> None:
        self.add(BulkOperation(BulkAction.CREATE, doc_id=doc_id, source=source, **options))

    def update(self, doc_id: Any, source: dict[str, Any], **options: Any) -> None:
        self.add(BulkOperation(BulkAction.UPDATE, doc_id=doc_id, source=source, **options))

    def delete(self, doc_id: Any, **options: Any) -> None:
        self.add(BulkOperation(BulkAction.DELETE, doc_id=doc_id, **options))

    def flush(self) -> None:
        """
        发送已累积的操作.

        Raises:
            TransportError: 连接失败，当前批次被丢弃
            ResponseError: 整个请求被服务端拒绝，当前批次被丢弃
        """
        if not self._pending:
            return

        batch = self._pending
        self._pending = []
        self._pending_bytes = 0

        lines = [line for operation_lines in batch for line in operation_lines]
        params = None
        if self.config.refresh is not None:
            refresh = self.config.refresh
            params = {"refresh": str(refresh).lower() if isinstance(refresh, bool) else refresh}

        batch_number = self.result.batch_count + 1
        try:
            response = self.connection.bulk(lines, params=params)
        except ExecutionError as e:
            logger.error(f"批次 {batch_number} 发送失败，{len(batch)} 个操作未提交: {e}")
            raise

        success_count, failed_count = self._process_response(response)
        self.result.total += len(batch)
        self.result.batch_sizes.append(len(batch))

        if failed_count > 0:
            logger.warning(
                f"批次 {batch_number}: 成功 {success_count}, 失败 {failed_count}"
            )
        else:
            logger.info(f"批次 {batch_number}: 全部成功 ({success_count})")

        if self.progress_callback:
            self.progress_callback(batch_number, len(batch), self.result)

    def _process_response(self, response: dict[str, Any]) -> tuple[int, int]:
        """逐条扫描 bulk 响应，返回 (成功数, 失败数)."""
        success_count = 0
        failed_count = 0
        for item in response.get("items", []):
            op_type, info = next(iter(item.items()))
            status = info.get("status", 0)
            if "error" in info and status not in self.config.ignore_statuses:
                failed_count += 1
                self.result.errors.append(BulkErrorItem.from_response_item(op_type, info))
            else:
                success_count += 1
        self.result.success += success_count
        self.result.failed += failed_count
        return success_count, failed_count

    def close(self) -> BulkResult:
        """发送剩余的操作并返回最终结果."""
        if not self._closed:
            self.flush()
            self._closed = True
            self.result.took = time.time() - self._started_at
        return self.result

    def discard(self) -> int:
        """丢弃未发送的操作，返回丢弃的数量."""
        count = len(self._pending)
        self._pending = []
        self._pending_bytes = 0
        self._closed = True
        return count

    def __enter__(self) -> BulkBatcher:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.close()
            return
        discarded = self.discard()
        if discarded:
            logger.warning(f"批量操作异常退出，丢弃 {discarded} 个未发送的操作: {exc_val}")
