"""模型调用错误分类。

把一次模型调用抛出的任意异常归为三类之一：

- TRANSIENT: 过载、超时、限流、5xx、"try again"，对同一模型重试。
- MODEL_UNAVAILABLE: 模型 ID 无效或当前账号不支持（not found / unsupported / invalid / 404），
  直接跳到下一个候选模型。
- FATAL: 其他所有错误，立即中止整条链路。

分类基于错误文本与状态码的启发式匹配，没有副作用。
匹配的子串由测试固定；上游若提供结构化错误码，应优先改用错误码。
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from persona_core.domain.exceptions import NetworkError, RateLimitError


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    MODEL_UNAVAILABLE = "model_unavailable"
    FATAL = "fatal"


TRANSIENT_PATTERNS = (
    "overloaded",
    "temporarily unavailable",
    "timeout",
    "timed out",
    "rate limit",
    "rate-limit",
    "resource exhausted",
    "try again",
    "502",
    "503",
    "504",
)

MODEL_UNAVAILABLE_PATTERNS = (
    "not found",
    "unknown",
    "unsupported",
    "invalid",
    "404",
)

TRANSIENT_TYPES = (asyncio.TimeoutError, httpx.TimeoutException, RateLimitError, NetworkError)


@dataclass(frozen=True)
class ClassifiedError:
    """已分类的错误。error 仅用于日志/诊断。"""

    kind: ErrorKind
    error: BaseException
    model: Optional[str] = None

    @property
    def detail(self) -> str:
        return str(self.error) or type(self.error).__name__


def extract_status(error: BaseException) -> Optional[int]:
    """尽量从异常对象上取出 HTTP 状态码。"""

    for attr in ("http_status", "status_code", "status", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    return None


def classify(error: BaseException) -> ErrorKind:
    text = str(error).lower()
    status = extract_status(error)

    if isinstance(error, TRANSIENT_TYPES):
        return ErrorKind.TRANSIENT
    if status is not None and (status == 429 or 500 <= status < 600):
        return ErrorKind.TRANSIENT
    if any(p in text for p in TRANSIENT_PATTERNS):
        return ErrorKind.TRANSIENT

    if status == 404:
        return ErrorKind.MODEL_UNAVAILABLE
    if any(p in text for p in MODEL_UNAVAILABLE_PATTERNS):
        return ErrorKind.MODEL_UNAVAILABLE

    return ErrorKind.FATAL


def classify_error(error: BaseException, model: Optional[str] = None) -> ClassifiedError:
    return ClassifiedError(kind=classify(error), error=error, model=model)
