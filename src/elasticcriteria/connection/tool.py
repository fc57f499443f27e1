"""连接工具模块.

提供执行层依赖的最小连接能力 Connection，以及基于官方 Elasticsearch
客户端的实现 ElasticsearchConnection。

使用示例:
    from elasticcriteria.connection import ClusterConfig, ElasticsearchConnection

    with ElasticsearchConnection(ClusterConfig(hosts=("http://localhost:9200",))) as conn:
        response = conn.search("products", {"query": {"match_all": {}}})
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import quote

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import ApiError
from elasticsearch.exceptions import TransportError as ESTransportError

from elasticcriteria.typing import BulkLines

from .exceptions import ResponseError, TransportError
from .models import ClusterConfig, ConnectionConfig

logger = logging.getLogger(__name__)


def index_path(index: str | list[str] | tuple[str, ...] | None, endpoint: str) -> str:
    """拼接索引级别的请求路径.

    Args:
        index: 索引名，支持多个索引；None 表示集群级别
        endpoint: 端点，如 "_search"

    Returns:
        请求路径，如 "/products/_search"
    """
    if index is None:
        return f"/{endpoint}"
    if isinstance(index, (list, tuple)):
        index = ",".join(index)
    return f"/{quote(index, safe=',*')}/{endpoint}"


class Connection(ABC):
    """执行层依赖的最小连接能力.

    子类只需实现 request()，search/scroll/bulk 等方法都建立在它之上。
    request() 必须把传输失败转换为 TransportError，把非成功状态码转换为
    ResponseError。
    """

    @abstractmethod
    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        ndjson: bool = False,
    ) -> Any:
        """
        发送请求并返回解析后的 JSON 响应.

        Args:
            method: HTTP 方法
            path: 请求路径
            body: 请求体；ndjson 为 True 时是行列表
            params: URL 参数
            ndjson: 是否以换行分隔的 JSON 发送请求体

        Raises:
            TransportError: 连接失败或超时
            ResponseError: 服务端返回非成功状态码
        """

    def search(
        self,
        index: str | list[str] | None,
        body: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """执行搜索请求."""
        return self.request("POST", index_path(index, "_search"), body, params)

    def scroll(self, scroll_id: str, timeout: str) -> dict[str, Any]:
        """使用游标令牌获取下一批结果，不再重复发送原始查询."""
        return self.request(
            "POST", "/_search/scroll", {"scroll": timeout, "scroll_id": scroll_id}
        )

    def clear_scroll(self, scroll_id: str) -> Any:
        """释放服务端游标."""
        return self.request("DELETE", "/_search/scroll", {"scroll_id": [scroll_id]})

    def bulk(
        self,
        lines: BulkLines,
        index: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """执行批量请求，lines 为交替的元数据行与文档行."""
        return self.request(
            "POST", index_path(index, "_bulk"), lines, params, ndjson=True
        )

    def msearch(self, lines: BulkLines) -> dict[str, Any]:
        """执行多重搜索，lines 为交替的头部行与查询行."""
        return self.request("POST", "/_msearch", lines, ndjson=True)

    def delete_by_query(
        self,
        index: str | list[str] | None,
        body: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """按查询删除文档."""
        return self.request(
            "POST", index_path(index, "_delete_by_query"), body, params
        )

    def refresh(self, index: str | list[str] | None = None) -> dict[str, Any]:
        """刷新索引，使最近写入的文档可被搜索."""
        return self.request("POST", index_path(index, "_refresh"))

    def version(self) -> str:
        """获取集群版本号."""
        return self.request("GET", "/")["version"]["number"]


class ElasticsearchConnection(Connection):
    """基于官方 Elasticsearch 客户端的连接实现.

    Args:
        cluster_config: 集群配置
        connection_config: 连接池配置，默认使用 ConnectionConfig 的默认值
        client: 已创建的客户端实例；传入时忽略上面两个配置

    Examples:
        >>> conn = ElasticsearchConnection(ClusterConfig(hosts=("http://localhost:9200",)))
        >>> conn.version()
        '8.15.0'
    """

    def __init__(
        self,
        cluster_config: ClusterConfig | None = None,
        connection_config: ConnectionConfig | None = None,
        client: Elasticsearch | None = None,
    ) -> None:
        if client is None:
            if cluster_config is None:
                raise ValueError("必须提供 cluster_config 或 client")
            client = self._create_client(
                cluster_config, connection_config or ConnectionConfig()
            )
        self._client = client

    @property
    def client(self) -> Elasticsearch:
        """底层 Elasticsearch 客户端."""
        return self._client

    @staticmethod
    def _create_client(
        cluster_config: ClusterConfig, connection_config: ConnectionConfig
    ) -> Elasticsearch:
        """根据配置创建 Elasticsearch 客户端实例."""
        kwargs: dict = {
            "hosts": list(cluster_config.hosts),
            "max_retries": connection_config.max_retries,
            "retry_on_timeout": connection_config.retry_on_timeout,
            "request_timeout": connection_config.request_timeout,
            "http_compress": connection_config.http_compress,
            "sniff_on_start": connection_config.sniff_on_start,
        }

        # Basic Auth 认证
        if cluster_config.username and cluster_config.password:
            kwargs["basic_auth"] = (cluster_config.username, cluster_config.password)

        # API Key 认证
        if cluster_config.api_key:
            kwargs["api_key"] = cluster_config.api_key

        # Bearer Token 认证
        if cluster_config.bearer_token:
            kwargs["bearer_auth"] = cluster_config.bearer_token

        # SSL/TLS 配置
        if cluster_config.ca_certs:
            kwargs["ca_certs"] = cluster_config.ca_certs
        kwargs["verify_certs"] = cluster_config.verify_certs

        return Elasticsearch(**kwargs)

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        ndjson: bool = False,
    ) -> Any:
        content_type = "application/x-ndjson" if ndjson else "application/json"
        headers = {"accept": "application/json"}
        if body is not None:
            headers["content-type"] = content_type

        logger.debug(f"{method} {path} params={params} body={body}")

        try:
            response = self._client.perform_request(
                method, path, params=params, headers=headers, body=body
            )
        except ApiError as e:
            raise ResponseError(str(e.message), status=e.meta.status, body=e.body) from e
        except ESTransportError as e:
            raise TransportError(f"请求 {method} {path} 失败: {e}") from e

        return response.body

    # ============================================================
    # 生命周期管理
    # ============================================================

    def __enter__(self) -> ElasticsearchConnection:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """关闭底层客户端连接."""
        self._client.close()
