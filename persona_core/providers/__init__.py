"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供各厂商的具体实现 (如 gemini_client)。
"""

from typing import Callable, Dict, Optional

from persona_core.providers.base import ModelProvider
from persona_core.providers.gemini_client import GeminiClient
from persona_core.providers.registry import get_provider_config


PROVIDER_CLIENTS: Dict[str, Callable[..., ModelProvider]] = {
    "gemini": GeminiClient,
}


def create_provider(settings, name: Optional[str] = None) -> ModelProvider:
    """根据名称创建 Provider 实例，默认 gemini；未登记的名称抛 KeyError。"""

    cfg = get_provider_config(name or "gemini")
    return PROVIDER_CLIENTS[cfg.name](settings)
