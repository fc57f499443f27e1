"""
ES 查询结果视图.

ResultView 是对原始响应的只读封装，提供命中、聚合、建议等类型化访问，
未建模的结构可以通过 raw 直接访问.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from typing import Any

from elasticcriteria.parsers.types import AggregationResult, Hit, SuggestionItem


class ResultView:
    """
    查询结果视图.

    使用示例:
        view = criteria.execute()

        print(f"第 {view.current_page}/{view.total_pages} 页，共 {view.total_entries} 条")
        for hit in view.hits:
            print(hit.doc_id, hit.source)

        for bucket in view.aggregation("by_status").buckets:
            print(bucket.key, bucket.doc_count)
    """

    def __init__(
        self,
        response: dict[str, Any],
        offset: int = 0,
        limit: int = 10,
    ) -> None:
        """
        初始化结果视图.

        Args:
            response: ES 原始响应（dict 或带 to_dict 的对象）
            offset: 请求时的 from，用于计算页码
            limit: 请求时的 size，用于计算页码
        """
        self._response = self._ensure_dict(response)
        self._offset = offset
        self._limit = limit

    @classmethod
    def empty(cls, offset: int = 0, limit: int = 10) -> ResultView:
        """
        创建零命中的空结果.

        failsafe 模式下执行失败时返回该结果.
        """
        return cls(
            {
                "took": 0,
                "timed_out": False,
                "hits": {"total": {"value": 0, "relation": "eq"}, "hits": []},
            },
            offset=offset,
            limit=limit,
        )

    @property
    def raw(self) -> dict[str, Any]:
        """原始响应."""
        return self._response

    # ========== 命中 ==========

    @property
    def hits(self) -> list[Hit]:
        """命中文档列表."""
        return [Hit.from_dict(hit) for hit in self._raw_hits]

    @property
    def results(self) -> list[dict[str, Any]]:
        """命中文档的 _source 列表."""
        return [hit.get("_source", {}) for hit in self._raw_hits]

    @property
    def ids(self) -> list[str]:
        """命中文档的 ID 列表."""
        return [hit.get("_id") for hit in self._raw_hits]

    @property
    def total_entries(self) -> int:
        """
        命中总数.

        兼容 ES 7.x 之前的整数格式和之后的 {"value": n} 格式.
        """
        total_info = self._response.get("hits", {}).get("total", 0)
        if isinstance(total_info, dict):
            return total_info.get("value", 0)
        return total_info

    @property
    def took(self) -> int:
        """查询耗时（毫秒）."""
        return self._response.get("took", 0)

    @property
    def timed_out(self) -> bool:
        """查询是否超时."""
        return self._response.get("timed_out", False)

    @property
    def max_score(self) -> float | None:
        """最高相关性得分."""
        return self._response.get("hits", {}).get("max_score")

    @property
    def scroll_id(self) -> str | None:
        """滚动游标令牌."""
        return self._response.get("_scroll_id")

    # ========== 分页 ==========

    @property
    def per_page(self) -> int:
        return self._limit

    @property
    def current_page(self) -> int:
        if self._limit <= 0:
            return 1
        return self._offset // self._limit + 1

    @property
    def total_pages(self) -> int:
        if self._limit <= 0:
            return 0
        return math.ceil(self.total_entries / self._limit)

    @property
    def previous_page(self) -> int | None:
        if self.current_page <= 1:
            return None
        return self.current_page - 1

    @property
    def next_page(self) -> int | None:
        if self.current_page >= self.total_pages:
            return None
        return self.current_page + 1

    # ========== 聚合与建议 ==========

    @property
    def aggregations(self) -> dict[str, AggregationResult]:
        """全部顶层聚合结果."""
        return {
            name: AggregationResult(name=name, raw=data)
            for name, data in self._response.get("aggregations", {}).items()
        }

    def aggregation(self, name: str) -> AggregationResult | None:
        """
        获取指定的顶层聚合结果.

        Args:
            name: 聚合名称

        Returns:
            聚合结果，不存在时返回 None
        """
        data = self._response.get("aggregations", {}).get(name)
        if data is None:
            return None
        return AggregationResult(name=name, raw=data)

    def suggestions(self, name: str) -> list[SuggestionItem]:
        """
        获取指定建议器的建议项.

        Args:
            name: 建议器名称
        """
        results: list[SuggestionItem] = []
        for entry in self._response.get("suggest", {}).get(name, []):
            for option in entry.get("options", []):
                results.append(
                    SuggestionItem(
                        text=option.get("text", ""),
                        score=option.get("score", option.get("_score")),
                        freq=option.get("freq"),
                        highlighted=option.get("highlighted"),
                    )
                )
        return results

    # ========== 内部辅助方法 ==========

    @property
    def _raw_hits(self) -> list[dict[str, Any]]:
        return self._response.get("hits", {}).get("hits", [])

    @staticmethod
    def _ensure_dict(response: Any) -> dict[str, Any]:
        if hasattr(response, "to_dict"):
            return response.to_dict()
        if isinstance(response, dict):
            return response
        raise TypeError(f"不支持的响应类型: {type(response)}")

    def __len__(self) -> int:
        return len(self._raw_hits)

    def __iter__(self) -> Iterator[Hit]:
        return iter(self.hits)

    def __repr__(self) -> str:
        return f"<ResultView hits={len(self)} total={self.total_entries}>"
