"""模型调用的弹性层。

- classifier: 把调用错误归类为 Transient / ModelUnavailable / Fatal。
- retry: 指数退避 + 抖动的重试调度。
- fallback: 按候选模型顺序降级调用。
"""

from persona_core.resilience.classifier import ClassifiedError, ErrorKind, classify, classify_error
from persona_core.resilience.fallback import AttemptRecord, ModelFallbackChain
from persona_core.resilience.retry import RetryScheduler

__all__ = [
    "AttemptRecord",
    "ClassifiedError",
    "ErrorKind",
    "ModelFallbackChain",
    "RetryScheduler",
    "classify",
    "classify_error",
]
