"""连接配置数据模型定义模块.

提供不可变的连接配置模型，在创建 Connection 时一次性传入：
- ClusterConfig: 集群地址与认证信息
- ConnectionConfig: 连接池与超时配置
"""

from dataclasses import dataclass, field

from .exceptions import ConnectionConfigError


@dataclass(frozen=True)
class ClusterConfig:
    """集群配置模型.

    Attributes:
        hosts: ES 节点地址列表（必需，不可为空）
        username: Basic Auth 用户名
        password: Basic Auth 密码
        api_key: API Key 认证（字符串或元组）
        bearer_token: Bearer Token 认证
        ca_certs: CA 证书文件路径
        verify_certs: 是否验证 SSL 证书，默认 True

    Raises:
        ConnectionConfigError: 当 hosts 为空时抛出

    Examples:
        >>> config = ClusterConfig(
        ...     hosts=("http://localhost:9200",),
        ...     username="elastic",
        ...     password="changeme",
        ... )
    """

    hosts: tuple[str, ...] = field(default_factory=tuple)
    username: str | None = None
    password: str | None = None
    api_key: str | tuple[str, str] | None = None
    bearer_token: str | None = None
    ca_certs: str | None = None
    verify_certs: bool = True

    def __post_init__(self) -> None:
        """校验集群配置参数合法性."""
        if not self.hosts:
            raise ConnectionConfigError("hosts 不能为空，请提供至少一个 ES 节点地址")
        # 允许传入 list，统一转为 tuple 保证不可变
        object.__setattr__(self, "hosts", tuple(self.hosts))


@dataclass(frozen=True)
class ConnectionConfig:
    """连接池配置模型.

    Attributes:
        max_retries: 客户端内部最大重试次数，默认 0（执行层不做重试）
        retry_on_timeout: 超时是否重试，默认 False
        request_timeout: 请求超时时间（秒），默认 30，必须 >= 0
        http_compress: 是否启用 HTTP 压缩，默认 True
        sniff_on_start: 启动时是否嗅探节点，默认 False

    Raises:
        ConnectionConfigError: 当参数不合法时抛出
    """

    max_retries: int = 0
    retry_on_timeout: bool = False
    request_timeout: float = 30
    http_compress: bool = True
    sniff_on_start: bool = False

    def __post_init__(self) -> None:
        """校验连接池配置参数合法性."""
        if self.max_retries < 0:
            raise ConnectionConfigError(
                f"max_retries 必须 >= 0，当前值: {self.max_retries}"
            )
        if self.request_timeout < 0:
            raise ConnectionConfigError(
                f"request_timeout 必须 >= 0，当前值: {self.request_timeout}"
            )
