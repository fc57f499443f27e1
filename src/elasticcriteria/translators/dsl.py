"""查询渲染模块.

把 Criteria 的状态渲染为 ES 查询 DSL。渲染是纯函数：相同的状态总是得到
相同的输出。请求体由 elasticsearch.dsl 的 Search 组装.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from elasticsearch.dsl import Q, Search

from elasticcriteria.typing import QueryDocument

if TYPE_CHECKING:
    from elasticcriteria.builders.aggregation import AggregationNode
    from elasticcriteria.builders.criteria import Criteria

# 模块级别日志记录器
logger = logging.getLogger(__name__)

# 聚合定义中不属于聚合类型本身的键
AGGREGATION_META_KEYS = {"aggs", "aggregations", "meta", "filter"}


@dataclasses.dataclass(frozen=True)
class TranslatorCapabilities:
    """
    渲染能力开关.

    不同版本的服务端对部分语法的支持不同，通过开关切换渲染策略，
    而不是在渲染逻辑里写死某个版本.

    Attributes:
        bucket_sort_ordering: 为 True 时，引用子聚合的 order 改为
            bucket_sort 管道子聚合渲染；否则原样内联在聚合定义里
        legacy_key_order: 为 True 时，order 中的 _key 渲染为 _term（6.0 之前的写法）
    """

    bucket_sort_ordering: bool = False
    legacy_key_order: bool = False

    @classmethod
    def for_version(cls, version: str) -> TranslatorCapabilities:
        """
        根据服务端版本号推断能力开关.

        Args:
            version: 版本号，如 "7.17.3"
        """
        major = int(version.split(".")[0])
        return cls(legacy_key_order=major < 6)


class QueryTranslator:
    """
    Criteria 到 ES DSL 的渲染器.

    渲染规则:
    1. must（含 search 子句）/ filter / should / must_not 合并为一个 bool 查询，
       空桶直接省略
    2. 主查询没有任何子句时渲染为 match_all
    3. post_* 子句渲染为独立的 post_filter
    4. 聚合树递归渲染，节点的作用域子句渲染为 filter（与 filter 聚合自带的条件同时生效），
       子聚合渲染为 aggs
    5. 排序、分页、_source 等已设置的字段交给 Search 附加

    使用示例:
        translator = QueryTranslator(TranslatorCapabilities(bucket_sort_ordering=True))
        body = translator.render(criteria)
    """

    def __init__(self, capabilities: TranslatorCapabilities | None = None):
        self.capabilities = capabilities or TranslatorCapabilities()

    def render(self, criteria: Criteria) -> QueryDocument:
        """
        渲染完整的查询请求体.

        Args:
            criteria: 查询条件

        Returns:
            查询 DSL 字典
        """
        search = Search().query(Q(self.render_query(criteria)))

        post_filter = self.render_post_filter(criteria)
        if post_filter is not None:
            search = search.post_filter(Q(post_filter))

        if criteria.sort_fields is not None:
            search = search.sort(*copy.deepcopy(list(criteria.sort_fields)))

        source = self._render_source(criteria.source_fields)
        if isinstance(source, dict):
            search = search.source(**source)
        elif source is not None:
            search = search.source(source)

        highlight = copy.deepcopy(criteria.highlight_options)
        for field, options in highlight.pop("fields", {}).items():
            search = search.highlight(field, **options)
        if highlight:
            search = search.highlight_options(**highlight)

        extra = {
            "from": criteria.pagination.offset,
            "size": criteria.pagination.limit,
            "profile": criteria.profile_enabled,
            "timeout": criteria.timeout_value,
            "terminate_after": criteria.terminate_after_value,
            "track_total_hits": criteria.track_total_hits_value,
            "explain": criteria.explain_enabled,
        }
        extra = {key: value for key, value in extra.items() if value is not None}
        extra.update(copy.deepcopy(criteria.custom_clauses))
        if extra:
            search = search.extra(**extra)

        # aggs 与 suggest 已是渲染好的字典，交给 update_from_dict 解析
        sections: dict[str, Any] = {}
        aggs = self.render_aggregations(criteria.aggregations)
        if aggs:
            sections["aggs"] = aggs
        if criteria.suggestions:
            sections["suggest"] = copy.deepcopy(criteria.suggestions)
        if sections:
            search.update_from_dict(sections)

        return search.to_dict()

    def render_query(self, criteria: Criteria) -> QueryDocument:
        """渲染主查询，没有任何子句时返回 match_all."""
        query = self._render_bool(
            musts=self._with_search(criteria.musts, criteria.search_string),
            filters=criteria.filters,
            shoulds=criteria.shoulds,
            must_nots=criteria.must_nots,
        )
        return query if query is not None else {"match_all": {}}

    def render_post_filter(self, criteria: Criteria) -> QueryDocument | None:
        """渲染 post_filter，没有 post 子句时返回 None."""
        return self._render_bool(
            musts=self._with_search(criteria.post_musts, criteria.post_search_string),
            filters=criteria.post_filters,
            shoulds=criteria.post_shoulds,
            must_nots=criteria.post_must_nots,
        )

    def render_aggregations(
        self, nodes: tuple[AggregationNode, ...]
    ) -> dict[str, Any]:
        """按插入顺序递归渲染聚合树."""
        return {node.name: self._render_node(node) for node in nodes}

    # ========== 内部辅助方法 ==========

    @staticmethod
    def _with_search(clauses: tuple, search_string: Any) -> tuple:
        if search_string is None:
            return clauses
        return clauses + (search_string.to_clause(),)

    @staticmethod
    def _render_bool(
        musts: tuple, filters: tuple, shoulds: tuple, must_nots: tuple
    ) -> dict[str, Any] | None:
        buckets = (
            ("must", musts),
            ("filter", filters),
            ("should", shoulds),
            ("must_not", must_nots),
        )
        compound = {
            key: copy.deepcopy(list(clauses)) for key, clauses in buckets if clauses
        }
        if not compound:
            return None
        return {"bool": compound}

    @staticmethod
    def _render_source(source_fields: dict[str, Any]) -> Any:
        if not source_fields:
            return None
        if source_fields.get("enabled") is False:
            return False
        rendered = {
            key: copy.deepcopy(value)
            for key, value in source_fields.items()
            if key != "enabled"
        }
        return rendered or True

    def _render_node(self, node: AggregationNode) -> dict[str, Any]:
        body = copy.deepcopy(node.definition)
        children = node.children
        child_aggs: dict[str, Any] = {}

        if children is not None:
            scope = self._render_bool(
                musts=self._with_search(children.musts, children.search_string),
                filters=children.filters,
                shoulds=children.shoulds,
                must_nots=children.must_nots,
            )
            if scope is not None:
                # filter 聚合自带的过滤条件与作用域子句同时生效
                existing = body.pop("filter", None)
                if existing is not None:
                    scope["bool"]["filter"] = [existing] + scope["bool"].get("filter", [])
                body["filter"] = scope
            child_aggs = self.render_aggregations(children.aggregations)

        if self.capabilities.legacy_key_order:
            self._rename_key_order(body)
        if self.capabilities.bucket_sort_ordering and child_aggs:
            pipeline = self._extract_child_ordering(body, child_aggs)
            if pipeline is not None:
                child_aggs[f"{node.name}_bucket_sort"] = pipeline

        if child_aggs:
            body["aggs"] = child_aggs
        return body

    @staticmethod
    def _order_entries(order: Any) -> list[tuple[str, Any]]:
        if isinstance(order, dict):
            return list(order.items())
        if isinstance(order, list):
            return [item for entry in order for item in entry.items()]
        return []

    def _rename_key_order(self, body: dict[str, Any]) -> None:
        for agg_type, params in body.items():
            if agg_type in AGGREGATION_META_KEYS or not isinstance(params, dict):
                continue
            order = params.get("order")
            if isinstance(order, dict):
                params["order"] = self._rename_key(order)
            elif isinstance(order, list):
                params["order"] = [self._rename_key(entry) for entry in order]

    @staticmethod
    def _rename_key(entry: dict[str, Any]) -> dict[str, Any]:
        return {("_term" if key == "_key" else key): value for key, value in entry.items()}

    def _extract_child_ordering(
        self, body: dict[str, Any], child_aggs: dict[str, Any]
    ) -> dict[str, Any] | None:
        """
        把引用子聚合的 order 条目移出聚合定义，改写为 bucket_sort 管道.

        _count、_key 等内置排序键保留在原位.
        """
        for agg_type, params in body.items():
            if agg_type in AGGREGATION_META_KEYS or not isinstance(params, dict):
                continue
            entries = self._order_entries(params.get("order"))
            if not entries:
                continue

            moved = []
            kept = []
            for key, direction in entries:
                target = key.split(">")[0].split(".")[0]
                (moved if target in child_aggs else kept).append((key, direction))
            if not moved:
                continue

            if kept:
                params["order"] = [{key: direction} for key, direction in kept]
            else:
                del params["order"]

            logger.debug(f"聚合 {agg_type} 的子聚合排序改写为 bucket_sort: {moved}")
            return {
                "bucket_sort": {
                    "sort": [
                        {key: {"order": direction}} for key, direction in moved
                    ]
                }
            }
        return None
