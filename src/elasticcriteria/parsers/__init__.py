"""结果视图模块.

提供 ES 查询响应的只读类型化访问.
"""

from elasticcriteria.parsers.response import ResultView
from elasticcriteria.parsers.types import (
    AggregationResult,
    Bucket,
    Hit,
    StatsResult,
    SuggestionItem,
)

__all__ = [
    "ResultView",
    "Hit",
    "Bucket",
    "AggregationResult",
    "StatsResult",
    "SuggestionItem",
]
