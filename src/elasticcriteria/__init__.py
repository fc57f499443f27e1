"""Elastic Criteria - 不可变的 Elasticsearch 查询条件与执行工具包.

主要功能:
    - Criteria: 不可变的链式查询条件，渲染为 ES 查询 DSL
    - ScrollCursor: 服务端滚动游标遍历
    - BulkBatcher: 按数量与字节阈值分批的批量写入
    - ResultView: 类型化的查询结果视图
    - Index: 索引宿主，组合连接与记录源适配器

使用示例:
    from elasticcriteria import ClusterConfig, ElasticsearchConnection, Index

    connection = ElasticsearchConnection(ClusterConfig(hosts=("http://localhost:9200",)))
    products = Index("products", connection)

    view = (
        products.where({"state": "approved", "price": {"gte": 10}})
        .search("title:phone")
        .aggregate("brand")
        .failsafe()
        .execute()
    )
"""

__version__ = "0.1.0"

# 导出查询条件
from elasticcriteria.builders import AggregationNode, Criteria, multi_search

# 导出批量写入
from elasticcriteria.bulk import (
    BulkAction,
    BulkBatcher,
    BulkConfig,
    BulkErrorItem,
    BulkOperation,
    BulkOperationError,
    BulkResult,
    BulkValidationError,
)

# 导出连接
from elasticcriteria.connection import (
    ClusterConfig,
    Connection,
    ConnectionConfig,
    ConnectionConfigError,
    ElasticsearchConnection,
    ExecutionError,
    ResponseError,
    TransportError,
)

# 导出异常
from elasticcriteria.exceptions import ElasticCriteriaError, UsageError

# 导出索引宿主
from elasticcriteria.index import Index, ModelAdapter

# 导出结果视图
from elasticcriteria.parsers import (
    AggregationResult,
    Bucket,
    Hit,
    ResultView,
    StatsResult,
    SuggestionItem,
)

# 导出滚动游标
from elasticcriteria.scroll import ScrollCursor, ScrollExhaustedError, ScrollState

# 导出渲染器
from elasticcriteria.translators import QueryTranslator, TranslatorCapabilities

__all__ = [
    # 版本
    "__version__",
    # 查询条件
    "Criteria",
    "AggregationNode",
    "multi_search",
    "QueryTranslator",
    "TranslatorCapabilities",
    # 执行
    "ScrollCursor",
    "ScrollState",
    "BulkBatcher",
    "BulkAction",
    "BulkConfig",
    "BulkOperation",
    "BulkResult",
    "BulkErrorItem",
    # 结果
    "ResultView",
    "Hit",
    "Bucket",
    "AggregationResult",
    "StatsResult",
    "SuggestionItem",
    # 连接与索引
    "Connection",
    "ElasticsearchConnection",
    "ClusterConfig",
    "ConnectionConfig",
    "Index",
    "ModelAdapter",
    # 异常
    "ElasticCriteriaError",
    "UsageError",
    "ScrollExhaustedError",
    "ConnectionConfigError",
    "ExecutionError",
    "TransportError",
    "ResponseError",
    "BulkOperationError",
    "BulkValidationError",
]
