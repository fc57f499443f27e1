"""连接模块 - 执行层依赖的最小连接能力及其 Elasticsearch 实现.

主要组件:
    - Connection: 连接能力抽象，只需实现 request()
    - ElasticsearchConnection: 基于官方客户端的实现
    - ClusterConfig / ConnectionConfig: 不可变连接配置

使用示例:
    from elasticcriteria.connection import ClusterConfig, ElasticsearchConnection

    connection = ElasticsearchConnection(ClusterConfig(hosts=("http://localhost:9200",)))
"""

from .exceptions import (
    ConnectionConfigError,
    ConnectionFactoryError,
    ExecutionError,
    ResponseError,
    TransportError,
)
from .models import ClusterConfig, ConnectionConfig
from .tool import Connection, ElasticsearchConnection, index_path

__all__ = [
    # 连接
    "Connection",
    "ElasticsearchConnection",
    "index_path",
    # 模型
    "ClusterConfig",
    "ConnectionConfig",
    # 异常
    "ConnectionFactoryError",
    "ConnectionConfigError",
    "ExecutionError",
    "TransportError",
    "ResponseError",
]
