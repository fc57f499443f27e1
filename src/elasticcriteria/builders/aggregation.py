"""聚合树模块.

聚合树是按插入顺序排列的 AggregationNode 元组。同一层级重复出现的名称
不会新增节点，而是与已有节点深度合并（后来的定义与子聚合覆盖先前的值）.
"""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from elasticcriteria.exceptions import UsageError

if TYPE_CHECKING:
    from elasticcriteria.builders.criteria import Criteria


@dataclasses.dataclass(frozen=True)
class AggregationNode:
    """
    聚合树节点.

    Attributes:
        name: 聚合名称
        definition: 聚合定义，如 {"terms": {"field": "tags"}}
        children: 作用域条件，其过滤子句限定本节点，其聚合成为子聚合

    示例:
        AggregationNode(
            name="by_status",
            definition={"terms": {"field": "status"}},
            children=Criteria().aggregate("avg_price", {"avg": {"field": "price"}}),
        )
    """

    name: str
    definition: dict[str, Any] = dataclasses.field(default_factory=dict)
    children: Criteria | None = None


def validate_aggregation_name(name: str) -> None:
    """
    验证聚合名称是否有效.

    Raises:
        UsageError: 聚合名称无效时抛出

    说明:
        ES 聚合名称不能包含以下字符：
        - 双引号 ("): JSON 解析问题
        - 方括号 ([ ]): ES 用于多桶路径
        - 大于号 (>): ES 用于 buckets_path 分隔符
    """
    if not isinstance(name, str):
        raise UsageError("聚合名称必须是字符串")
    if not name:
        raise UsageError("聚合名称不能为空")
    invalid_chars = {'"': "双引号", "[": "左方括号", "]": "右方括号", ">": "大于号"}
    for char, char_name in invalid_chars.items():
        if char in name:
            raise UsageError(f"聚合名称不能包含{char_name}: '{char}'")


def has_scope_clauses(scope: Criteria | None) -> bool:
    """作用域条件中是否有会渲染为 filter 的查询子句."""
    if scope is None:
        return False
    return bool(
        scope.filters
        or scope.musts
        or scope.shoulds
        or scope.must_nots
        or scope.search_string is not None
    )


def validate_scope(
    name: str, definition: Mapping[str, Any], children: Criteria | None
) -> None:
    """
    验证节点定义与作用域子句能否组成合法的聚合.

    作用域子句渲染为节点的 filter，因此只能用于空定义或 filter 聚合；
    空定义必须带有作用域子句，否则渲染结果没有聚合类型.

    Raises:
        UsageError: 组合无效时抛出
    """
    agg_types = [key for key in definition if key not in ("aggs", "aggregations", "meta")]
    if not has_scope_clauses(children):
        if not agg_types:
            raise UsageError(f"聚合 '{name}' 的定义为空，需要在 builder 中提供过滤条件")
        return
    if agg_types and agg_types != ["filter"]:
        raise UsageError(
            f"聚合 '{name}' 的作用域过滤只能用于空定义或 filter 聚合，当前类型: {agg_types}"
        )


def deep_merge(left: Mapping[str, Any], right: Mapping[str, Any]) -> dict[str, Any]:
    """
    深度合并两个字典，冲突时以 right 为准.

    返回全新的字典，不修改任何输入.
    """
    result = copy.deepcopy(dict(left))
    for key, value in right.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def merge_nodes(existing: AggregationNode, incoming: AggregationNode) -> AggregationNode:
    """合并同名节点：定义深度合并，子作用域按 Criteria.merge 规则合并."""
    if existing.children is None:
        children = incoming.children
    elif incoming.children is None:
        children = existing.children
    else:
        children = existing.children.merge(incoming.children)

    definition = deep_merge(existing.definition, incoming.definition)
    validate_scope(existing.name, definition, children)
    return AggregationNode(name=existing.name, definition=definition, children=children)


def insert_node(
    tree: tuple[AggregationNode, ...], node: AggregationNode
) -> tuple[AggregationNode, ...]:
    """
    向聚合树插入节点.

    同名节点原位合并，保留其首次出现的位置；新名称追加到末尾.
    """
    for position, existing in enumerate(tree):
        if existing.name == node.name:
            merged = merge_nodes(existing, node)
            return tree[:position] + (merged,) + tree[position + 1 :]
    return tree + (node,)


def merge_trees(
    left: tuple[AggregationNode, ...], right: tuple[AggregationNode, ...]
) -> tuple[AggregationNode, ...]:
    """按 right 的顺序把 right 的节点逐个插入 left."""
    result = left
    for node in right:
        result = insert_node(result, node)
    return result


def find_node(
    tree: tuple[AggregationNode, ...], name: str
) -> AggregationNode | None:
    """按名称查找当前层级的节点."""
    for node in tree:
        if node.name == name:
            return node
    return None
