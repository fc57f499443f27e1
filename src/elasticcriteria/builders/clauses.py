"""查询子句构建模块.

按值的形态把 where 风格的字段条件翻译为 ES 查询子句:

    - None            -> 字段不存在 (bool.must_not.exists)
    - range 对象       -> range 子句 (gte/lte)
    - dict            -> range 子句，键必须是 gt/gte/lt/lte
    - list / tuple    -> terms 子句
    - 标量             -> term 子句

其他形态在构建期抛出 UsageError，不会拖到执行期由服务端报错.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from elasticsearch.dsl import Q
from elasticsearch.dsl.query import Query

from elasticcriteria.exceptions import UsageError
from elasticcriteria.typing import Clause, ClauseLike

# range 子句支持的边界操作符
RANGE_OPERATORS = ("gt", "gte", "lt", "lte")

# range 子句中允许与边界一起出现的附加参数
RANGE_OPTIONS = ("format", "time_zone", "boost", "relation")

# 可直接用作 term 值的标量类型
SCALAR_TYPES = (str, int, float, bool, Decimal, date, datetime, UUID)


def to_clause(clause: ClauseLike) -> Clause:
    """
    将原始子句规范化为独立的字典.

    Args:
        clause: 字典或 Q 对象

    Returns:
        深拷贝后的子句字典，调用方后续修改原对象不会影响已构建的条件

    Raises:
        UsageError: 子句不是字典或 Q 对象
    """
    if isinstance(clause, Query):
        return clause.to_dict()
    if isinstance(clause, Mapping):
        if not clause:
            raise UsageError("子句不能为空字典")
        return copy.deepcopy(dict(clause))
    raise UsageError(f"不支持的子句类型: {type(clause).__name__}")


def _normalize_scalar(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def range_clause(field: str, bounds: Mapping[str, Any]) -> Clause:
    """
    构建 range 子句.

    Args:
        field: 字段名
        bounds: 边界字典，至少包含 gt/gte/lt/lte 之一

    Returns:
        range 子句字典

    Raises:
        UsageError: 未提供边界或包含未知键时抛出

    示例:
        >>> range_clause("price", {"gte": 10, "lt": 20})
        {'range': {'price': {'gte': 10, 'lt': 20}}}
    """
    unknown = [key for key in bounds if key not in RANGE_OPERATORS + RANGE_OPTIONS]
    if unknown:
        raise UsageError(f"range 字段 '{field}' 包含不支持的键: {unknown}")
    if not any(key in bounds for key in RANGE_OPERATORS):
        raise UsageError(f"range 字段 '{field}' 至少需要一个边界: {RANGE_OPERATORS}")

    normalized = {key: _normalize_scalar(value) for key, value in bounds.items()}
    return Q("range", **{field: normalized}).to_dict()


def exists_clause(field: str) -> Clause:
    """构建字段存在子句."""
    return Q("exists", field=field).to_dict()


def missing_clause(field: str) -> Clause:
    """构建字段不存在子句."""
    return Q("bool", must_not=[Q("exists", field=field)]).to_dict()


def field_clause(field: str, value: Any) -> Clause:
    """
    按值的形态构建单个字段的子句.

    Args:
        field: 字段名
        value: 字段值

    Returns:
        子句字典

    Raises:
        UsageError: 值的形态不受支持时抛出

    示例:
        >>> field_clause("state", "approved")
        {'term': {'state': 'approved'}}
        >>> field_clause("state", ["a", "b"])
        {'terms': {'state': ['a', 'b']}}
        >>> field_clause("state", None)
        {'bool': {'must_not': [{'exists': {'field': 'state'}}]}}
    """
    if not isinstance(field, str) or not field:
        raise UsageError(f"字段名必须是非空字符串: {field!r}")

    if value is None:
        return missing_clause(field)

    if isinstance(value, range):
        if value.step != 1 or len(value) == 0:
            raise UsageError(f"字段 '{field}' 的 range 必须是步长为 1 的非空区间")
        return range_clause(field, {"gte": value.start, "lte": value[-1]})

    if isinstance(value, Mapping):
        return range_clause(field, value)

    if isinstance(value, (list, tuple)):
        return Q("terms", **{field: [_normalize_scalar(v) for v in value]}).to_dict()

    if isinstance(value, Enum):
        return Q("term", **{field: value.value}).to_dict()

    if isinstance(value, SCALAR_TYPES):
        return Q("term", **{field: value}).to_dict()

    # set 等无序集合无法保证渲染结果稳定，同样视为非法
    raise UsageError(f"字段 '{field}' 的值类型不受支持: {type(value).__name__}")


def field_clauses(fields: Mapping[str, Any]) -> tuple[Clause, ...]:
    """按插入顺序为每个字段构建子句."""
    if not isinstance(fields, Mapping):
        raise UsageError(f"where 条件必须是字典: {type(fields).__name__}")
    return tuple(field_clause(field, value) for field, value in fields.items())
