"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 Handler 层做统一捕获，并映射为对外的 HTTP 状态码与错误信息。

分两类：
- 面向调用方的结果类错误：InputError / ConfigError / ServiceOverloadedError / ServiceFailureError。
- Provider 适配层抛出的调用错误：NetworkError / ApiError / RateLimitError / ValidationError，
  这些错误由 ModelFallbackChain 统一分类，不会直接暴露给调用方。
"""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from persona_core.resilience.classifier import ClassifiedError, ErrorKind
    from persona_core.resilience.fallback import AttemptRecord


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "INVALID_PERSONA"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 details、model 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class InputError(BusinessError):
    """客户端输入错误，不重试，对应 400。"""


class ConfigError(BusinessError):
    """服务端配置缺失（如 API Key 未设置），不重试，对应 500。"""

    def __init__(self, code: str, message: str, http_status: int = 500, **extra):
        super().__init__(code, message, http_status, **extra)


class ServiceOverloadedError(BusinessError):
    """所有候选模型均因瞬时错误耗尽重试，对应 503。"""

    def __init__(self, code: str, message: str, http_status: int = 503, **extra):
        super().__init__(code, message, http_status, **extra)


class ServiceFailureError(BusinessError):
    """不可重试的服务失败，对应 500。"""

    def __init__(self, code: str, message: str, http_status: int = 500, **extra):
        super().__init__(code, message, http_status, **extra)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(BusinessError):
    """Provider 限流错误，由 ModelFallbackChain 负责重试/退避。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class ModelChainError(Exception):
    """ModelFallbackChain 的聚合失败结果。

    - last: 最后一次观察到的已分类错误。
    - attempts: 每次调用的记录（模型、尝试序号、分类、退避时长）。
    - aborted: True 表示遇到 Fatal 错误后立即中止，未尝试剩余模型。
    """

    def __init__(
        self,
        last: "ClassifiedError",
        attempts: Optional[List["AttemptRecord"]] = None,
        aborted: bool = False,
    ):
        self.last = last
        self.attempts = list(attempts or [])
        self.aborted = aborted
        super().__init__(str(last.error) or type(last.error).__name__)

    @property
    def kind(self) -> "ErrorKind":
        return self.last.kind

    @property
    def calls(self) -> int:
        return len(self.attempts)
