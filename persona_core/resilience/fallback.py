"""有序候选模型的降级调用链。

状态机：(候选模型下标 × 当前模型尝试次数)。

- 成功：立即返回文本。
- FATAL：立即中止，不再尝试其它模型。
- MODEL_UNAVAILABLE：不重试，直接切换到下一个候选模型。
- TRANSIENT：预算内退避后重试同一模型，预算用尽则切换模型。

调用总次数不超过 len(candidates) * max_retries。
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from persona_core.domain.exceptions import ConfigError, ModelChainError
from persona_core.infrastructure.logging.logger import logger
from persona_core.providers.base import ModelProvider
from persona_core.resilience.classifier import ClassifiedError, ErrorKind, classify_error
from persona_core.resilience.retry import RetryScheduler


@dataclass
class AttemptRecord:
    """一次失败调用的记录。delay_ms 为本次失败后安排的退避时长（未重试则为 None）。"""

    model: str
    attempt: int
    kind: ErrorKind
    delay_ms: Optional[float] = None


class ModelFallbackChain:
    def __init__(
        self,
        provider: ModelProvider,
        scheduler: Optional[RetryScheduler] = None,
        candidates: Sequence[str] = (),
    ):
        self._provider = provider
        self._scheduler = scheduler or RetryScheduler()
        self._candidates = tuple(candidates)

    @property
    def max_calls(self) -> int:
        return len(self._candidates) * self._scheduler.max_retries

    async def invoke(self, prompt: str, candidates: Optional[Sequence[str]] = None) -> str:
        """按顺序尝试候选模型，返回第一个成功的文本。

        Raises:
            ConfigError: 候选模型列表为空。
            ModelChainError: FATAL 中止或全部候选耗尽；last 为最后一次观察到的错误。
        """

        models = tuple(candidates) if candidates is not None else self._candidates
        if not models:
            raise ConfigError(code="NO_CANDIDATE_MODELS", message="No candidate models configured")

        attempts: List[AttemptRecord] = []
        last: Optional[ClassifiedError] = None
        index = 0
        attempt = 0
        while index < len(models):
            model = models[index]
            try:
                text = await self._provider.generate(model, prompt)
            except Exception as exc:
                last = classify_error(exc, model=model)
                record = AttemptRecord(model=model, attempt=attempt, kind=last.kind)
                attempts.append(record)
                self._log(
                    logging.WARNING,
                    "Model call failed",
                    model=model,
                    attempt=attempt,
                    kind=last.kind.value,
                    error=last.detail,
                )

                if last.kind is ErrorKind.FATAL:
                    raise ModelChainError(last, attempts, aborted=True) from exc

                if last.kind is ErrorKind.TRANSIENT and self._scheduler.should_retry(attempt):
                    record.delay_ms = await self._scheduler.wait(attempt)
                    attempt += 1
                    continue

                index += 1
                attempt = 0
                continue

            if attempts:
                self._log(logging.INFO, "Model call recovered", model=model, failed_calls=len(attempts))
            return text

        if last is None:
            raise ConfigError(code="NO_CANDIDATE_MODELS", message="No candidate models configured")
        self._log(
            logging.ERROR,
            "All candidate models exhausted",
            models=list(models),
            calls=len(attempts),
            kind=last.kind.value,
        )
        raise ModelChainError(last, attempts) from last.error

    @staticmethod
    def _log(level: int, message: str, **fields: Any) -> None:
        payload: Dict[str, Any] = dict(fields)
        logger.log(level, message, extra={"extra": payload})
