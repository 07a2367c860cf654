"""指数退避 + 随机抖动的重试调度器。

delay(i) = base_delay_ms * 2**i + U[0, jitter_ms)，单位毫秒。
max_retries 是每个模型的最大尝试次数（含第一次），最后一次尝试失败后不再等待，
控制权交回 ModelFallbackChain。
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional


class RetryScheduler:
    def __init__(
        self,
        max_retries: int = 3,
        base_delay_ms: float = 500,
        jitter_ms: float = 200,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if base_delay_ms < 0 or jitter_ms < 0:
            raise ValueError("delays must be non-negative")
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.jitter_ms = jitter_ms
        self._rng = rng or random.Random()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, cfg) -> "RetryScheduler":
        return cls(
            max_retries=cfg.genai_max_retries,
            base_delay_ms=cfg.genai_base_delay_ms,
            jitter_ms=cfg.genai_jitter_ms,
        )

    def next_delay(self, attempt: int) -> float:
        """第 attempt 次（从 0 开始）失败后应等待的毫秒数。"""

        # random() 落在 [0, 1)，保证抖动严格小于 jitter_ms
        return self.base_delay_ms * (2 ** attempt) + self._rng.random() * self.jitter_ms

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_retries - 1

    async def wait(self, attempt: int) -> float:
        """挂起等待退避时长并返回实际使用的毫秒数；可被外层取消。"""

        delay_ms = self.next_delay(attempt)
        await self._sleep(delay_ms / 1000.0)
        return delay_ms

    def max_backoff_ms(self) -> float:
        """调度器可能给出的最大单次等待（上界，jitter_ms 为 0 时可取到）。"""

        if self.max_retries < 2:
            return 0.0
        return self.base_delay_ms * (2 ** (self.max_retries - 2)) + self.jitter_ms

    def worst_case_latency_ms(self, candidates: int) -> float:
        """Provider 调用无法中途取消时的有效超时上界。"""

        return candidates * self.max_retries * self.max_backoff_ms()
