"""批量操作数据模型定义模块."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from elasticcriteria.bulk.exceptions import BulkValidationError
from elasticcriteria.typing import BulkLines


class BulkAction(Enum):
    """批量操作类型枚举."""

    INDEX = "index"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class BulkConfig:
    """批量配置.

    Attributes:
        max_count: 单批次最多的操作数
        max_bytes: 单批次最多的序列化字节数
        ignore_statuses: 视为成功的条目状态码，如删除时的 404
        refresh: bulk 请求的 refresh 参数
    """

    max_count: int = 1000
    max_bytes: int = 100 * 1024 * 1024
    ignore_statuses: tuple[int, ...] = ()
    refresh: bool | str | None = None

    def __post_init__(self) -> None:
        if self.max_count < 1:
            raise BulkValidationError(f"max_count 必须 >= 1，当前值: {self.max_count}")
        if self.max_bytes < 1:
            raise BulkValidationError(f"max_bytes 必须 >= 1，当前值: {self.max_bytes}")
        object.__setattr__(self, "ignore_statuses", tuple(self.ignore_statuses))


@dataclass
class BulkOperation:
    """批量操作项数据类.

    Attributes:
        action: 操作类型
        doc_id: 文档ID（INDEX 可省略，由服务端生成）
        source: 文档数据；UPDATE 时为局部文档
        index_name: 目标索引，省略时使用批处理器的索引
        routing: 路由
        version: 外部版本号
        version_type: 版本类型，设置 version 时默认为 external
        retry_on_conflict: 冲突重试次数（仅 UPDATE）
        doc_as_upsert: 文档不存在时是否以局部文档创建（仅 UPDATE）
    """

    action: BulkAction
    doc_id: str | None = None
    source: dict[str, Any] | None = None
    index_name: str | None = None
    routing: str | None = None
    version: int | None = None
    version_type: str | None = None
    retry_on_conflict: int | None = None
    doc_as_upsert: bool = False

    def __post_init__(self) -> None:
        if self.action in (BulkAction.INDEX, BulkAction.CREATE, BulkAction.UPDATE):
            if self.source is None:
                raise BulkValidationError(
                    f"操作类型 {self.action.value} 需要提供 source 数据"
                )
        if self.action in (BulkAction.UPDATE, BulkAction.DELETE):
            if self.doc_id is None:
                raise BulkValidationError(
                    f"操作类型 {self.action.value} 需要提供 doc_id"
                )
        # 入队时固定文档内容，调用方之后修改原字典不影响待发送的数据
        if self.source is not None:
            self.source = copy.deepcopy(self.source)

    def to_lines(self, default_index: str) -> BulkLines:
        """渲染为元数据行与文档行.

        Args:
            default_index: 未指定 index_name 时使用的索引

        Returns:
            DELETE 只有元数据行，其余为元数据行加文档行
        """
        meta: dict[str, Any] = {"_index": self.index_name or default_index}
        if self.doc_id is not None:
            meta["_id"] = str(self.doc_id)
        if self.routing is not None:
            meta["routing"] = self.routing
        if self.version is not None:
            meta["version"] = self.version
            meta["version_type"] = self.version_type or "external"
        if self.action == BulkAction.UPDATE and self.retry_on_conflict is not None:
            meta["retry_on_conflict"] = self.retry_on_conflict

        lines: BulkLines = [{self.action.value: meta}]
        if self.action in (BulkAction.INDEX, BulkAction.CREATE):
            lines.append(self.source)
        elif self.action == BulkAction.UPDATE:
            payload: dict[str, Any] = {"doc": self.source}
            if self.doc_as_upsert:
                payload["doc_as_upsert"] = True
            lines.append(payload)
        return lines


@dataclass
class BulkErrorItem:
    """批量操作错误项数据类.

    Attributes:
        index_name: 索引名称
        doc_id: 文档ID
        error_type: 错误类型
        error_reason: 错误原因
        status: HTTP状态码
        caused_by: 根本原因
        operation: 失败的操作类型
    """

    index_name: str
    doc_id: str | None
    error_type: str
    error_reason: str
    status: int
    caused_by: str | None = None
    operation: BulkAction | None = None

    @classmethod
    def from_response_item(cls, op_type: str, info: dict[str, Any]) -> BulkErrorItem:
        """从 bulk 响应的单个条目创建错误项."""
        error = info.get("error") or {}
        if isinstance(error, str):
            error = {"reason": error}

        caused_by = None
        if "caused_by" in error:
            caused_by_info = error["caused_by"]
            caused_by = f"{caused_by_info.get('type', '')}: {caused_by_info.get('reason', '')}"

        try:
            operation = BulkAction(op_type)
        except ValueError:
            operation = None

        return cls(
            index_name=info.get("_index", ""),
            doc_id=info.get("_id"),
            error_type=error.get("type", "unknown"),
            error_reason=error.get("reason", "unknown error"),
            status=info.get("status", 0),
            caused_by=caused_by,
            operation=operation,
        )


@dataclass
class BulkResult:
    """批量操作结果数据类.

    Attributes:
        total: 总操作数
        success: 成功数
        failed: 失败数
        errors: 错误详情列表
        batch_sizes: 每个批次的操作数，按发送顺序
        took: 总耗时（秒）
    """

    total: int = 0
    success: int = 0
    failed: int = 0
    errors: list[BulkErrorItem] = field(default_factory=list)
    batch_sizes: list[int] = field(default_factory=list)
    took: float = 0.0

    @property
    def batch_count(self) -> int:
        return len(self.batch_sizes)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def get_error_summary(self) -> str:
        """获取错误摘要."""
        if not self.errors:
            return "No errors"
        summary = f"Total errors: {len(self.errors)}\n"
        for i, error in enumerate(self.errors[:10], 1):
            summary += (
                f"{i}. [{error.operation.value if error.operation else 'unknown'}] "
                f"Index: {error.index_name}, DocID: {error.doc_id}, "
                f"Status: {error.status}, Reason: {error.error_reason}\n"
            )
        if len(self.errors) > 10:
            summary += f"... and {len(self.errors) - 10} more errors\n"
        return summary
