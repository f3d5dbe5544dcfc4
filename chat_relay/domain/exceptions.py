"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 REST / GraphQL 适配层做统一捕获与用户提示。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "INVALID_ARGUMENT"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 upstream_status、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ValidationError(BusinessError):
    """请求参数校验失败（消息为空、历史格式不对等）。"""


class ConfigurationError(BusinessError):
    """部署环境缺少必要配置，例如未设置 DEEPSEEK_API_KEY。"""

    def __init__(self, code: str, message: str, http_status: int = 500, **extra):
        super().__init__(code, message, http_status, **extra)


class UpstreamError(BusinessError):
    """调用上游 LLM API 失败的公共基类。"""

    def __init__(self, code: str, message: str, http_status: int = 500, **extra):
        super().__init__(code, message, http_status, **extra)


class NetworkError(UpstreamError):
    """网络层错误，例如连接失败、DNS 解析失败等。"""


class UpstreamTimeoutError(NetworkError):
    """上游调用超过超时时间。"""


class ApiError(UpstreamError):
    """上游 API 返回非 2xx 时抛出。"""


class MalformedResponseError(ApiError):
    """上游返回 2xx，但响应体缺少 choices / usage 等必要字段。"""
