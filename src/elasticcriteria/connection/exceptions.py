"""连接与执行相关异常定义模块."""

from typing import Any

from ..exceptions import ElasticCriteriaError


class ConnectionFactoryError(ElasticCriteriaError):
    """连接创建基础异常类."""

    pass


class ConnectionConfigError(ConnectionFactoryError):
    """连接配置校验异常.

    当连接配置参数不合法时抛出，例如 hosts 为空、request_timeout 小于 0 等。
    """

    pass


class ExecutionError(ElasticCriteriaError):
    """执行期异常基类.

    failsafe 模式下，search 类请求抛出的 ExecutionError 会被转换为空结果。
    """

    pass


class TransportError(ExecutionError):
    """传输层异常.

    连接失败、超时等无法拿到服务端响应的错误。不做自动重试，直接向上抛出。
    """

    pass


class ResponseError(ExecutionError):
    """服务端返回非成功状态码时的异常.

    Attributes:
        status: HTTP 状态码
        body: 服务端返回的响应体
    """

    def __init__(self, message: str, status: int, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        return f"[{self.status}] {self.args[0]}"
