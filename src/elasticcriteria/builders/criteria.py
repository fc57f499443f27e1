"""不可变查询条件模块.

Criteria 累积过滤、搜索、聚合、分页等状态。所有链式方法都返回新的实例，
原实例保持不变，因此同一个 Criteria 可以在多个调用方之间安全共享.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from elasticsearch.dsl import A
from elasticsearch.dsl.exceptions import UnknownDslObject
from elasticsearch.serializer import JsonSerializer

from elasticcriteria.builders.aggregation import (
    AggregationNode,
    deep_merge,
    insert_node,
    merge_trees,
    validate_aggregation_name,
    validate_scope,
)
from elasticcriteria.builders.clauses import (
    exists_clause,
    field_clauses,
    range_clause,
    to_clause,
)
from elasticcriteria.builders.models import (
    Pagination,
    ScrollSettings,
    SearchString,
    SearchTarget,
)
from elasticcriteria.connection.exceptions import ExecutionError, ResponseError
from elasticcriteria.exceptions import UsageError
from elasticcriteria.parsers import AggregationResult, Hit, ResultView, SuggestionItem
from elasticcriteria.translators.dsl import QueryTranslator
from elasticcriteria.typing import BulkLines, Clause, ClauseLike, SortSpec

if TYPE_CHECKING:
    from elasticcriteria.scroll.tool import ScrollCursor

# 模块级别日志记录器
logger = logging.getLogger(__name__)

# 列表型子句桶：merge 时按 self ++ other 拼接
LIST_FIELDS = (
    "filters",
    "musts",
    "must_nots",
    "shoulds",
    "post_filters",
    "post_musts",
    "post_must_nots",
    "post_shoulds",
)

# 映射型累加字段：merge 时同名键以 other 为准
MAPPING_FIELDS = ("suggestions", "custom_clauses")

# 标量字段：merge 时 other 有值则取 other
SCALAR_FIELDS = (
    "search_string",
    "post_search_string",
    "sort_fields",
    "profile_enabled",
    "failsafe_enabled",
    "timeout_value",
    "terminate_after_value",
    "track_total_hits_value",
    "explain_enabled",
    "preference_value",
    "search_type_value",
    "routing_value",
    "scroll_state",
)

# unscope 可接受的名称到字段的映射
UNSCOPE_FIELDS = {
    "filter": "filters",
    "must": "musts",
    "must_not": "must_nots",
    "should": "shoulds",
    "post_filter": "post_filters",
    "post_must": "post_musts",
    "post_must_not": "post_must_nots",
    "post_should": "post_shoulds",
    "search": "search_string",
    "post_search": "post_search_string",
    "aggregate": "aggregations",
    "sort": "sort_fields",
    "paginate": "pagination",
    "source": "source_fields",
    "highlight": "highlight_options",
    "suggest": "suggestions",
    "custom": "custom_clauses",
    "profile": "profile_enabled",
    "failsafe": "failsafe_enabled",
    "timeout": "timeout_value",
    "terminate_after": "terminate_after_value",
    "track_total_hits": "track_total_hits_value",
    "explain": "explain_enabled",
    "preference": "preference_value",
    "search_type": "search_type_value",
    "routing": "routing_value",
    "scroll": "scroll_state",
}

_serializer = JsonSerializer()


def merge_source_fields(
    current: Mapping[str, Any], update: Mapping[str, Any]
) -> dict[str, Any]:
    """
    合并 _source 设置，后设置的值覆盖先前的值.

    开关（enabled）与字段列表（includes/excludes）互斥：设置其一会清除另一方.
    """
    if not update:
        return dict(current)
    if "enabled" in update:
        result = {}
    else:
        result = {key: value for key, value in current.items() if key != "enabled"}
    result.update(copy.deepcopy(dict(update)))
    return result


@dataclasses.dataclass(frozen=True)
class Criteria:
    """
    不可变查询条件.

    支持:
    - 结构化过滤 (where / where_not / range / exists)
    - 原始子句 (filter / must / must_not / should)
    - Query String 查询 (search)
    - post_filter (post_* 系列，只收窄命中，不影响聚合输入)
    - 嵌套聚合 (aggregate)
    - 排序、分页、_source、高亮、建议等请求参数
    - 执行、滚动遍历、按查询删除

    使用示例:
        criteria = (
            index.criteria()
            .where({"state": "approved", "price": {"gte": 10, "lt": 100}})
            .search("title:phone")
            .aggregate("by_brand", builder=lambda agg: agg.aggregate("avg_price", {"avg": {"field": "price"}}))
            .sort({"created_at": "desc"})
            .page(2)
        )

        view = criteria.execute()
    """

    target: SearchTarget | None = dataclasses.field(
        default=None, compare=False, repr=False
    )

    filters: tuple[Clause, ...] = ()
    musts: tuple[Clause, ...] = ()
    must_nots: tuple[Clause, ...] = ()
    shoulds: tuple[Clause, ...] = ()
    post_filters: tuple[Clause, ...] = ()
    post_musts: tuple[Clause, ...] = ()
    post_must_nots: tuple[Clause, ...] = ()
    post_shoulds: tuple[Clause, ...] = ()

    search_string: SearchString | None = None
    post_search_string: SearchString | None = None

    aggregations: tuple[AggregationNode, ...] = ()

    sort_fields: tuple[SortSpec, ...] | None = None
    pagination: Pagination = dataclasses.field(default_factory=Pagination)

    source_fields: dict[str, Any] = dataclasses.field(default_factory=dict)
    highlight_options: dict[str, Any] = dataclasses.field(default_factory=dict)
    suggestions: dict[str, Any] = dataclasses.field(default_factory=dict)
    custom_clauses: dict[str, Any] = dataclasses.field(default_factory=dict)

    profile_enabled: bool | None = None
    failsafe_enabled: bool | None = None
    timeout_value: str | None = None
    terminate_after_value: int | None = None
    track_total_hits_value: bool | int | None = None
    explain_enabled: bool | None = None

    preference_value: str | None = None
    search_type_value: str | None = None
    routing_value: str | None = None

    scroll_state: ScrollSettings | None = None

    def _copy(self, **changes: Any) -> Criteria:
        return dataclasses.replace(self, **changes)

    # ============================================================
    # 过滤条件
    # ============================================================

    def where(self, fields: Mapping[str, Any]) -> Criteria:
        """
        按字段值添加过滤条件（filter 上下文，不参与打分）.

        值的形态决定子句类型:
            - 标量 -> term
            - list / tuple -> terms
            - dict（gt/gte/lt/lte）或 range 对象 -> range
            - None -> 字段不存在

        Args:
            fields: 字段到值的映射，空字典不添加任何条件

        Returns:
            新的 Criteria

        Raises:
            UsageError: 值的形态不受支持时抛出

        示例:
            criteria.where({"state": "approved", "tags": ["a", "b"], "price": {"gte": 10}})
        """
        return self._copy(filters=self.filters + field_clauses(fields))

    def where_not(self, fields: Mapping[str, Any]) -> Criteria:
        """与 where 规则相同，但子句追加到 must_not."""
        return self._copy(must_nots=self.must_nots + field_clauses(fields))

    def range(self, field: str, **bounds: Any) -> Criteria:
        """
        添加 range 过滤.

        Args:
            field: 字段名
            **bounds: gt/gte/lt/lte 至少一个，以及可选的 format/time_zone 等

        示例:
            criteria.range("created_at", gte="now-7d", format="strict_date_optional_time")
        """
        return self._copy(filters=self.filters + (range_clause(field, bounds),))

    def exists(self, field: str) -> Criteria:
        return self._copy(filters=self.filters + (exists_clause(field),))

    def exists_not(self, field: str) -> Criteria:
        return self._copy(must_nots=self.must_nots + (exists_clause(field),))

    def filter(self, clause: ClauseLike) -> Criteria:
        """原样追加一个 filter 子句（字典或 Q 对象）."""
        return self._copy(filters=self.filters + (to_clause(clause),))

    def must(self, clause: ClauseLike) -> Criteria:
        return self._copy(musts=self.musts + (to_clause(clause),))

    def must_not(self, clause: ClauseLike) -> Criteria:
        return self._copy(must_nots=self.must_nots + (to_clause(clause),))

    def should(self, clause: ClauseLike) -> Criteria:
        return self._copy(shoulds=self.shoulds + (to_clause(clause),))

    def search(self, query: str | None, **options: Any) -> Criteria:
        """
        设置 Query String 查询.

        Args:
            query: 查询字符串，为空时不修改当前设置
            **options: query_string 的其他参数，default_operator 默认为 AND

        示例:
            criteria.search("title:phone OR title:tablet", default_operator="OR")
        """
        if not query or not query.strip():
            return self._copy()
        return self._copy(search_string=SearchString(query, dict(options)))

    def match_all(self) -> Criteria:
        """返回等价的新实例，不添加任何子句."""
        return self._copy()

    def match_none(self) -> Criteria:
        return self._copy(filters=self.filters + ({"match_none": {}},))

    # ============================================================
    # post_filter 条件
    # ============================================================

    def post_where(self, fields: Mapping[str, Any]) -> Criteria:
        """与 where 规则相同，但只作用于 post_filter，不影响聚合输入."""
        return self._copy(post_filters=self.post_filters + field_clauses(fields))

    def post_where_not(self, fields: Mapping[str, Any]) -> Criteria:
        return self._copy(post_must_nots=self.post_must_nots + field_clauses(fields))

    def post_range(self, field: str, **bounds: Any) -> Criteria:
        return self._copy(
            post_filters=self.post_filters + (range_clause(field, bounds),)
        )

    def post_exists(self, field: str) -> Criteria:
        return self._copy(post_filters=self.post_filters + (exists_clause(field),))

    def post_exists_not(self, field: str) -> Criteria:
        return self._copy(
            post_must_nots=self.post_must_nots + (exists_clause(field),)
        )

    def post_filter(self, clause: ClauseLike) -> Criteria:
        return self._copy(post_filters=self.post_filters + (to_clause(clause),))

    def post_must(self, clause: ClauseLike) -> Criteria:
        return self._copy(post_musts=self.post_musts + (to_clause(clause),))

    def post_must_not(self, clause: ClauseLike) -> Criteria:
        return self._copy(post_must_nots=self.post_must_nots + (to_clause(clause),))

    def post_should(self, clause: ClauseLike) -> Criteria:
        return self._copy(post_shoulds=self.post_shoulds + (to_clause(clause),))

    def post_search(self, query: str | None, **options: Any) -> Criteria:
        if not query or not query.strip():
            return self._copy()
        return self._copy(post_search_string=SearchString(query, dict(options)))

    # ============================================================
    # 聚合
    # ============================================================

    def aggregate(
        self,
        name: str,
        definition: Mapping[str, Any] | None = None,
        builder: Callable[[Criteria], Criteria] | None = None,
        **options: Any,
    ) -> Criteria:
        """
        添加或合并聚合.

        Args:
            name: 聚合名称，同一层级已存在时与之深度合并
            definition: 聚合定义；省略时按 {"terms": {"field": name, **options}} 生成
            builder: 接收一个空 Criteria，返回的 Criteria 中的过滤子句限定本聚合，
                其中的聚合成为子聚合
            **options: 省略 definition 时附加到 terms 聚合的参数

        Returns:
            新的 Criteria

        Raises:
            UsageError: 名称无效、同时传入 definition 与 options，或 builder 返回值不是 Criteria，
                或作用域过滤用在了 filter 以外的聚合类型上

        示例:
            # 两个顶层聚合
            criteria.aggregate("brand").aggregate("color", size=5)

            # 嵌套聚合
            criteria.aggregate(
                "by_brand",
                builder=lambda agg: agg.aggregate("avg_price", {"avg": {"field": "price"}}),
            )

            # 作用域过滤的子聚合
            criteria.aggregate(
                "in_stock",
                {},
                builder=lambda agg: agg.where({"in_stock": True}).aggregate("brand"),
            )
        """
        validate_aggregation_name(name)

        if definition is None:
            definition = {"terms": {"field": name, **options}}
        elif options:
            raise UsageError(f"聚合 '{name}' 不能同时指定 definition 和 options")
        elif not isinstance(definition, Mapping):
            raise UsageError(f"聚合 '{name}' 的定义必须是字典")

        children = None
        if builder is not None:
            children = builder(Criteria())
            if not isinstance(children, Criteria):
                raise UsageError(f"聚合 '{name}' 的 builder 必须返回 Criteria")

        definition = copy.deepcopy(dict(definition))
        validate_scope(name, definition, children)
        if set(definition) - {"aggs", "aggregations", "meta"}:
            try:
                A(definition)
            except (UnknownDslObject, ValueError, TypeError) as e:
                raise UsageError(f"聚合 '{name}' 的定义无效: {e}") from e

        node = AggregationNode(name=name, definition=definition, children=children)
        return self._copy(aggregations=insert_node(self.aggregations, node))

    # ============================================================
    # 请求参数
    # ============================================================

    def sort(self, *fields: SortSpec) -> Criteria:
        """
        设置排序，覆盖之前的排序.

        Args:
            *fields: 字段名、"-字段名"（降序）或排序字典

        示例:
            criteria.sort("-created_at", {"price": {"order": "asc", "missing": "_last"}})
        """
        if not fields:
            raise UsageError("sort 至少需要一个字段")
        specs: list[SortSpec] = []
        for spec in fields:
            if isinstance(spec, str):
                if spec.startswith("-"):
                    specs.append({spec[1:]: {"order": "desc"}})
                else:
                    specs.append(spec)
            elif isinstance(spec, Mapping):
                specs.append(copy.deepcopy(dict(spec)))
            else:
                raise UsageError(f"不支持的排序规格: {spec!r}")
        return self._copy(sort_fields=tuple(specs))

    def source(
        self,
        includes: bool | str | Sequence[str] | None = None,
        excludes: str | Sequence[str] | None = None,
    ) -> Criteria:
        """
        设置返回字段.

        Args:
            includes: 返回的字段，False 表示不返回 _source
            excludes: 排除的字段
        """
        if includes is None and excludes is None:
            raise UsageError("source 至少需要 includes 或 excludes")

        update: dict[str, Any] = {}
        if isinstance(includes, bool):
            update["enabled"] = includes
        elif includes is not None:
            update["includes"] = [includes] if isinstance(includes, str) else list(includes)
        if excludes is not None:
            update["excludes"] = [excludes] if isinstance(excludes, str) else list(excludes)
        return self._copy(source_fields=merge_source_fields(self.source_fields, update))

    def highlight(
        self, fields: str | Sequence[str] | Mapping[str, Any], **options: Any
    ) -> Criteria:
        """
        设置高亮.

        Args:
            fields: 字段名、字段列表或 {字段: 字段级参数}
            **options: 全局高亮参数，如 pre_tags、require_field_match

        示例:
            criteria.highlight(["title", "description"], pre_tags=["<em>"], post_tags=["</em>"])
        """
        if isinstance(fields, str):
            field_map: dict[str, Any] = {fields: {}}
        elif isinstance(fields, Mapping):
            field_map = copy.deepcopy(dict(fields))
        else:
            field_map = {name: {} for name in fields}

        current = self.highlight_options
        highlight_options = {
            **current,
            **copy.deepcopy(options),
            "fields": {**current.get("fields", {}), **field_map},
        }
        return self._copy(highlight_options=highlight_options)

    def suggest(self, name: str, **definition: Any) -> Criteria:
        """
        添加建议器.

        示例:
            criteria.suggest("title_suggest", text="iphnoe", term={"field": "title"})
        """
        if not definition:
            raise UsageError(f"建议器 '{name}' 缺少定义")
        return self._copy(
            suggestions={**self.suggestions, name: copy.deepcopy(definition)}
        )

    def custom(self, clauses: Mapping[str, Any] | None = None, **kwargs: Any) -> Criteria:
        """添加任意顶层请求体键，同名键后者覆盖前者."""
        extra = {**(clauses or {}), **kwargs}
        return self._copy(
            custom_clauses={**self.custom_clauses, **copy.deepcopy(extra)}
        )

    def paginate(self, page: int = 1, per_page: int | None = None) -> Criteria:
        """
        设置分页.

        Args:
            page: 页码，最小为 1
            per_page: 每页大小，省略时沿用当前值（默认 10）
        """
        if page < 1:
            raise UsageError(f"page 必须 >= 1，当前值: {page}")
        limit = self.pagination.limit_with_default if per_page is None else per_page
        return self._copy(pagination=Pagination(offset=(page - 1) * limit, limit=limit))

    def page(self, page: int) -> Criteria:
        return self.paginate(page=page)

    def per(self, per_page: int) -> Criteria:
        """修改每页大小并保持当前页码."""
        return self.paginate(page=self.current_page, per_page=per_page)

    def limit(self, size: int | None) -> Criteria:
        return self._copy(
            pagination=Pagination(offset=self.pagination.offset, limit=size)
        )

    def offset(self, start: int | None) -> Criteria:
        return self._copy(
            pagination=Pagination(offset=start, limit=self.pagination.limit)
        )

    @property
    def current_page(self) -> int:
        limit = self.pagination.limit_with_default
        if limit <= 0:
            return 1
        return self.pagination.offset_with_default // limit + 1

    @property
    def per_page(self) -> int:
        return self.pagination.limit_with_default

    def profile(self, value: bool = True) -> Criteria:
        return self._copy(profile_enabled=value)

    def failsafe(self, value: bool = True) -> Criteria:
        """
        设置 failsafe 模式.

        开启后，执行期的 TransportError / ResponseError 被转换为零命中的空结果；
        构建期的 UsageError 不受影响.
        """
        return self._copy(failsafe_enabled=value)

    def timeout(self, value: str) -> Criteria:
        return self._copy(timeout_value=value)

    def terminate_after(self, value: int) -> Criteria:
        return self._copy(terminate_after_value=value)

    def track_total_hits(self, value: bool | int = True) -> Criteria:
        return self._copy(track_total_hits_value=value)

    def explain(self, value: bool = True) -> Criteria:
        return self._copy(explain_enabled=value)

    def preference(self, value: str) -> Criteria:
        return self._copy(preference_value=value)

    def search_type(self, value: str) -> Criteria:
        return self._copy(search_type_value=value)

    def routing(self, value: str | Sequence[str]) -> Criteria:
        if not isinstance(value, str):
            value = ",".join(value)
        return self._copy(routing_value=value)

    def scroll(self, timeout: str = "1m", token: str | None = None) -> Criteria:
        """
        开启滚动模式.

        Args:
            timeout: 服务端保持游标的时长
            token: 已有的游标令牌；设置后 execute 只发送令牌，不再发送查询
        """
        return self._copy(scroll_state=ScrollSettings(timeout=timeout, token=token))

    # ============================================================
    # 组合
    # ============================================================

    def merge(self, other: Criteria) -> Criteria:
        """
        合并两个 Criteria.

        - 子句桶按 self ++ other 拼接，不去重
        - 聚合树按名称深度合并
        - 映射型字段同名键以 other 为准
        - 标量字段 other 有值时取 other，否则保留 self

        Args:
            other: 另一个 Criteria

        Returns:
            新的 Criteria
        """
        if not isinstance(other, Criteria):
            raise UsageError(f"只能与 Criteria 合并: {type(other).__name__}")

        changes: dict[str, Any] = {}
        for name in LIST_FIELDS:
            changes[name] = getattr(self, name) + getattr(other, name)
        for name in MAPPING_FIELDS:
            changes[name] = {**getattr(self, name), **getattr(other, name)}
        for name in SCALAR_FIELDS:
            value = getattr(other, name)
            changes[name] = value if value is not None else getattr(self, name)

        changes["source_fields"] = merge_source_fields(self.source_fields, other.source_fields)
        changes["highlight_options"] = deep_merge(
            self.highlight_options, other.highlight_options
        )
        changes["aggregations"] = merge_trees(self.aggregations, other.aggregations)
        changes["pagination"] = Pagination(
            offset=(
                other.pagination.offset
                if other.pagination.offset is not None
                else self.pagination.offset
            ),
            limit=(
                other.pagination.limit
                if other.pagination.limit is not None
                else self.pagination.limit
            ),
        )
        changes["target"] = other.target or self.target
        return self._copy(**changes)

    def unscope(self, *keys: str) -> Criteria:
        """
        将指定的字段重置为默认值.

        Args:
            *keys: 字段名称，如 "search"、"filter"、"aggregate"、"sort"

        Raises:
            UsageError: 名称未知时抛出

        示例:
            criteria.unscope("search", "sort")
        """
        defaults = {
            item.name: (
                item.default
                if item.default is not dataclasses.MISSING
                else item.default_factory()
            )
            for item in dataclasses.fields(self)
        }
        changes = {}
        for key in keys:
            if key not in UNSCOPE_FIELDS:
                raise UsageError(
                    f"未知的 unscope 字段: '{key}'，可选值: {sorted(UNSCOPE_FIELDS)}"
                )
            name = UNSCOPE_FIELDS[key]
            changes[name] = defaults[name]
        return self._copy(**changes)

    # ============================================================
    # 渲染
    # ============================================================

    def to_dict(self) -> dict[str, Any]:
        """渲染为查询 DSL 字典."""
        capabilities = self.target.capabilities if self.target else None
        return QueryTranslator(capabilities).render(self)

    def to_json(self) -> str:
        """渲染为紧凑的 JSON 字符串，相同状态的输出逐字节一致."""
        return _serializer.dumps(self.to_dict()).decode("utf-8")

    def request_params(self) -> dict[str, Any]:
        """渲染 URL 参数（preference、search_type、routing、scroll）."""
        params: dict[str, Any] = {}
        if self.preference_value is not None:
            params["preference"] = self.preference_value
        if self.search_type_value is not None:
            params["search_type"] = self.search_type_value
        if self.routing_value is not None:
            params["routing"] = self.routing_value
        if self.scroll_state is not None:
            params["scroll"] = self.scroll_state.timeout
        return params

    # ============================================================
    # 执行
    # ============================================================

    def _require_target(self) -> SearchTarget:
        if self.target is None:
            raise UsageError("Criteria 未绑定索引与连接，请通过 Index.criteria() 创建")
        return self.target

    def _empty_view(self) -> ResultView:
        return ResultView.empty(
            offset=self.pagination.offset_with_default,
            limit=self.pagination.limit_with_default,
        )

    def execute(self) -> ResultView:
        """
        执行查询.

        滚动模式且已有令牌时，只发送令牌与超时，不重复发送查询.

        Returns:
            结果视图

        Raises:
            TransportError: 连接失败（failsafe 模式下返回空结果）
            ResponseError: 服务端拒绝请求（failsafe 模式下返回空结果）
        """
        target = self._require_target()
        try:
            if self.scroll_state is not None and self.scroll_state.token:
                response = target.connection.scroll(
                    self.scroll_state.token, self.scroll_state.timeout
                )
            else:
                response = target.connection.search(
                    target.index, self.to_dict(), self.request_params() or None
                )
        except ExecutionError as e:
            if not self.failsafe_enabled:
                raise
            logger.warning(f"failsafe 模式下忽略执行异常，返回空结果: {e}")
            return self._empty_view()

        return ResultView(
            response,
            offset=self.pagination.offset_with_default,
            limit=self.pagination.limit_with_default,
        )

    def results(self) -> list[dict[str, Any]]:
        return self.execute().results

    def hits(self) -> list[Hit]:
        return self.execute().hits

    def ids(self) -> list[str]:
        return self.execute().ids

    def total_entries(self) -> int:
        return self.execute().total_entries

    def aggregation(self, name: str) -> AggregationResult | None:
        return self.execute().aggregation(name)

    def suggestions_for(self, name: str) -> list[SuggestionItem]:
        return self.execute().suggestions(name)

    def records(self) -> list[Any]:
        """
        执行查询并把命中还原为业务记录.

        Returns:
            与命中顺序一致的记录列表

        Raises:
            UsageError: 未配置 ModelAdapter
        """
        return self._records_for(self.execute())

    def _records_for(self, view: ResultView) -> list[Any]:
        target = self._require_target()
        if target.adapter is None:
            raise UsageError(f"索引 {target.index} 未配置 ModelAdapter，无法还原记录")
        return target.adapter.fetch_in_order(view.ids)

    def delete(self) -> dict[str, Any]:
        """
        删除所有匹配主查询的文档（delete_by_query）.

        Returns:
            服务端响应，包含 deleted 等统计
        """
        target = self._require_target()
        capabilities = target.capabilities
        body = {"query": QueryTranslator(capabilities).render_query(self)}
        params = {
            key: value
            for key, value in self.request_params().items()
            if key in ("routing", "preference")
        }
        return target.connection.delete_by_query(target.index, body, params or None)

    # ============================================================
    # 滚动遍历
    # ============================================================

    def scroll_cursor(self, batch_size: int = 1000, timeout: str = "1m") -> ScrollCursor:
        """创建一个新的滚动游标，每次遍历都应使用独立的游标."""
        from elasticcriteria.scroll.tool import ScrollCursor

        return ScrollCursor(self, batch_size=batch_size, timeout=timeout)

    def find_results_in_batches(
        self, batch_size: int = 1000, timeout: str = "1m"
    ) -> Iterator[list[dict[str, Any]]]:
        """
        按批惰性遍历全部匹配文档的 _source.

        只能向前遍历一次；重新遍历需要再次调用本方法.
        """
        with self.scroll_cursor(batch_size, timeout) as cursor:
            for view in cursor:
                yield view.results

    def find_each_result(
        self, batch_size: int = 1000, timeout: str = "1m"
    ) -> Iterator[dict[str, Any]]:
        for batch in self.find_results_in_batches(batch_size, timeout):
            yield from batch

    def find_in_batches(
        self, batch_size: int = 1000, timeout: str = "1m"
    ) -> Iterator[list[Any]]:
        """按批惰性遍历全部匹配的业务记录."""
        with self.scroll_cursor(batch_size, timeout) as cursor:
            for view in cursor:
                yield self._records_for(view)

    def find_each(self, batch_size: int = 1000, timeout: str = "1m") -> Iterator[Any]:
        for batch in self.find_in_batches(batch_size, timeout):
            yield from batch


def multi_search(criterias: Sequence[Criteria]) -> list[ResultView]:
    """
    通过一次 _msearch 请求执行多个查询.

    使用第一个 Criteria 的连接发送请求；单个查询失败时，
    开启 failsafe 的查询得到空结果，否则抛出 ResponseError.

    Args:
        criterias: 查询条件列表

    Returns:
        与输入顺序一致的结果视图列表
    """
    if not criterias:
        return []

    connection = criterias[0]._require_target().connection
    lines: BulkLines = []
    for criteria in criterias:
        target = criteria._require_target()
        index = target.index if isinstance(target.index, str) else ",".join(target.index)
        header = {"index": index}
        header.update(
            {
                key: value
                for key, value in criteria.request_params().items()
                if key != "scroll"
            }
        )
        lines.append(header)
        lines.append(criteria.to_dict())

    try:
        response = connection.msearch(lines)
    except ExecutionError as e:
        if not all(criteria.failsafe_enabled for criteria in criterias):
            raise
        logger.warning(f"failsafe 模式下忽略 msearch 异常，返回空结果: {e}")
        return [criteria._empty_view() for criteria in criterias]

    views: list[ResultView] = []
    for criteria, item in zip(criterias, response.get("responses", [])):
        if "error" in item:
            if criteria.failsafe_enabled:
                logger.warning(f"failsafe 模式下忽略 msearch 子查询错误: {item['error']}")
                views.append(criteria._empty_view())
                continue
            error = item["error"]
            reason = error.get("reason", str(error)) if isinstance(error, dict) else str(error)
            raise ResponseError(reason, status=item.get("status", 500), body=item)
        views.append(
            ResultView(
                item,
                offset=criteria.pagination.offset_with_default,
                limit=criteria.pagination.limit_with_default,
            )
        )
    return views
