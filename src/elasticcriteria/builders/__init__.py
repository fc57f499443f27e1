"""查询条件构建模块.

提供不可变的 Criteria 以及子句、聚合树的构建规则.
"""

from elasticcriteria.builders.aggregation import AggregationNode
from elasticcriteria.builders.criteria import Criteria, multi_search
from elasticcriteria.builders.models import (
    DEFAULT_PER_PAGE,
    Pagination,
    ScrollSettings,
    SearchString,
    SearchTarget,
)

__all__ = [
    "Criteria",
    "multi_search",
    "AggregationNode",
    "Pagination",
    "ScrollSettings",
    "SearchString",
    "SearchTarget",
    "DEFAULT_PER_PAGE",
]
