"""Provider 抽象接口。

核心调用层不直接依赖具体厂商的 HTTP SDK，而是依赖此协议：

- 每个厂商实现一个 ModelProvider（如 GeminiClient）。
- 负责：把 (模型 ID, prompt 文本) 转成具体 API 请求，并返回生成的文本。
- 失败时抛出带有 message / http_status 的异常，由 ErrorClassifier 分类。
"""

from typing import Protocol


class ModelProvider(Protocol):
    """LLM Provider 客户端协议。

    - name: Provider 名称，用于日志/统计。
    - generate(model, prompt): 执行一次非流式生成调用，返回文本。
    """

    name: str

    async def generate(self, model: str, prompt: str) -> str:
        ...
