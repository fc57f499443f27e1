"""查询条件的值对象定义模块."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

from elasticcriteria.exceptions import UsageError

if TYPE_CHECKING:
    from elasticcriteria.connection import Connection
    from elasticcriteria.index.adapter import ModelAdapter
    from elasticcriteria.translators.dsl import TranslatorCapabilities

# ES 服务端默认的 size
DEFAULT_PER_PAGE = 10


@dataclasses.dataclass(frozen=True)
class SearchString:
    """
    Query String 子句.

    Attributes:
        query: 查询字符串
        options: query_string 的其他参数，如 default_field；
            default_operator 未指定时为 AND
    """

    query: str
    options: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_clause(self) -> dict[str, Any]:
        """渲染为 query_string 子句."""
        return {
            "query_string": {
                "query": self.query,
                "default_operator": "AND",
                **self.options,
            }
        }


@dataclasses.dataclass(frozen=True)
class Pagination:
    """分页参数，对应 from/size；None 表示未设置."""

    offset: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.offset is not None and self.offset < 0:
            raise UsageError(f"offset 必须 >= 0，当前值: {self.offset}")
        if self.limit is not None and self.limit < 0:
            raise UsageError(f"limit 必须 >= 0，当前值: {self.limit}")

    @property
    def offset_with_default(self) -> int:
        return self.offset or 0

    @property
    def limit_with_default(self) -> int:
        return DEFAULT_PER_PAGE if self.limit is None else self.limit


@dataclasses.dataclass(frozen=True)
class ScrollSettings:
    """
    滚动状态.

    Attributes:
        timeout: 服务端保持游标的时长，如 "1m"
        token: 服务端签发的游标令牌；为 None 表示尚未打开
    """

    timeout: str = "1m"
    token: str | None = None


@dataclasses.dataclass(frozen=True)
class SearchTarget:
    """
    查询的执行目标.

    Attributes:
        index: 索引名（或多个索引）
        connection: 执行请求的连接
        adapter: 将命中结果还原为业务记录的适配器
        capabilities: 渲染能力开关
    """

    index: str | tuple[str, ...]
    connection: Connection
    adapter: ModelAdapter | None = None
    capabilities: TranslatorCapabilities | None = None
