"""
结果视图数据类型定义.

包含命中文档、聚合桶、聚合结果、建议项等数据类.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# 聚合桶中不属于子聚合的标准字段
BUCKET_STANDARD_FIELDS = {
    "key",
    "key_as_string",
    "doc_count",
    "doc_count_error_upper_bound",
    "from",
    "from_as_string",
    "to",
    "to_as_string",
}


@dataclass
class Hit:
    """
    命中文档.

    Attributes:
        doc_id: 文档 ID
        index: 索引名
        source: 文档源数据
        score: 相关性得分
        highlights: 高亮字段映射，key 为字段名，value 为高亮片段列表
        sort: 排序值（search_after 场景使用）

    示例:
        for hit in view.hits:
            print(f"文档: {hit.doc_id}, 得分: {hit.score}")
            print(f"高亮: {hit.get_highlight('message', '无高亮')}")
    """

    doc_id: str | None
    index: str | None = None
    source: dict[str, Any] = field(default_factory=dict)
    score: float | None = None
    highlights: dict[str, list[str]] = field(default_factory=dict)
    sort: list[Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Hit:
        """从 ES 响应中的单个 hit 创建."""
        return cls(
            doc_id=data.get("_id"),
            index=data.get("_index"),
            source=data.get("_source", {}),
            score=data.get("_score"),
            highlights=data.get("highlight", {}),
            sort=data.get("sort"),
        )

    def get_highlight(self, field_name: str, default: str = "") -> str:
        """
        获取指定字段的第一个高亮片段.

        Args:
            field_name: 字段名
            default: 无高亮时的默认值
        """
        fragments = self.highlights.get(field_name, [])
        return fragments[0] if fragments else default


@dataclass
class StatsResult:
    """
    统计聚合结果（stats/extended_stats）.

    Attributes:
        count: 文档数量
        min: 最小值
        max: 最大值
        avg: 平均值
        sum: 总和
        std_deviation: 标准差（仅 extended_stats）
    """

    count: int
    min: float | None
    max: float | None
    avg: float | None
    sum: float | None
    std_deviation: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatsResult:
        """从 ES 响应字典创建."""
        return cls(
            count=data.get("count", 0),
            min=data.get("min"),
            max=data.get("max"),
            avg=data.get("avg"),
            sum=data.get("sum"),
            std_deviation=data.get("std_deviation"),
        )


@dataclass
class AggregationResult:
    """
    单个聚合的结果.

    对常见结构提供类型化访问，未建模的结构通过 raw 访问.

    Attributes:
        name: 聚合名称
        raw: 原始聚合数据

    示例:
        by_status = view.aggregation("by_status")
        for bucket in by_status.buckets:
            avg = bucket.aggregation("avg_price")
            print(bucket.key, bucket.doc_count, avg.value if avg else None)
    """

    name: str
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def value(self) -> Any:
        """单值指标聚合的值（avg/sum/min/max/cardinality/value_count）."""
        return self.raw.get("value")

    @property
    def doc_count(self) -> int | None:
        """单桶聚合（filter/global/missing/nested）的文档数."""
        return self.raw.get("doc_count")

    @property
    def buckets(self) -> list[Bucket]:
        """
        多桶聚合的桶列表.

        兼容数组形式（terms/histogram）与键控形式（filters/keyed range）.
        """
        raw_buckets = self.raw.get("buckets", [])
        if isinstance(raw_buckets, dict):
            return [
                Bucket.from_dict(data, default_key=key)
                for key, data in raw_buckets.items()
            ]
        return [Bucket.from_dict(data) for data in raw_buckets]

    @property
    def hits(self) -> list[Hit]:
        """top_hits 聚合的命中文档."""
        return [Hit.from_dict(hit) for hit in self.raw.get("hits", {}).get("hits", [])]

    def bucket(self, key: Any) -> Bucket | None:
        """按 key 查找桶."""
        for bucket in self.buckets:
            if bucket.key == key:
                return bucket
        return None

    def aggregation(self, name: str) -> AggregationResult | None:
        """获取单桶聚合下的子聚合."""
        data = self.raw.get(name)
        if not isinstance(data, dict):
            return None
        return AggregationResult(name=name, raw=data)

    def stats(self) -> StatsResult:
        """解析为统计结果."""
        return StatsResult.from_dict(self.raw)


@dataclass
class Bucket:
    """
    聚合桶.

    Attributes:
        key: 桶键值
        doc_count: 文档数量
        key_as_string: 格式化后的键（日期直方图等）
        sub_aggregations: 子聚合原始数据
    """

    key: Any
    doc_count: int
    key_as_string: str | None = None
    sub_aggregations: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_key: Any = None) -> Bucket:
        """从 ES 响应中的单个桶创建."""
        return cls(
            key=data.get("key", default_key),
            doc_count=data.get("doc_count", 0),
            key_as_string=data.get("key_as_string"),
            sub_aggregations={
                k: v
                for k, v in data.items()
                if k not in BUCKET_STANDARD_FIELDS and isinstance(v, dict)
            },
        )

    def aggregation(self, name: str) -> AggregationResult | None:
        """获取子聚合结果."""
        data = self.sub_aggregations.get(name)
        if data is None:
            return None
        return AggregationResult(name=name, raw=data)


@dataclass
class SuggestionItem:
    """
    搜索建议项.

    Attributes:
        text: 建议文本
        score: 建议得分
        freq: 出现频率（部分建议器支持）
        highlighted: 高亮后的文本（部分建议器支持）
    """

    text: str
    score: float | None = None
    freq: int | None = None
    highlighted: str | None = None
