"""批量操作模块.

按数量与字节阈值分批发送 index/create/update/delete 操作，并收集条目级失败.

示例用法:
    >>> from elasticcriteria.bulk import BulkBatcher, BulkConfig
    >>> with BulkBatcher(connection, "users", BulkConfig(max_count=500)) as batcher:
    ...     batcher.index("1", {"name": "Alice"})
    >>> print(f"成功: {batcher.result.success}, 失败: {batcher.result.failed}")
"""

from elasticcriteria.bulk.exceptions import BulkOperationError, BulkValidationError
from elasticcriteria.bulk.models import (
    BulkAction,
    BulkConfig,
    BulkErrorItem,
    BulkOperation,
    BulkResult,
)
from elasticcriteria.bulk.tool import BulkBatcher

__all__ = [
    "BulkAction",
    "BulkConfig",
    "BulkErrorItem",
    "BulkOperation",
    "BulkResult",
    "BulkBatcher",
    "BulkOperationError",
    "BulkValidationError",
]
