"""Provider 与模型配置。

候选模型 ID 直接来自配置（例如 "gemini-1.5-flash"），这里集中维护每个已知模型
的生成参数；未登记的模型使用默认参数，是否可用由上游返回的错误决定。"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass(frozen=True)
class ModelConfig:
    """单个模型的生成参数。"""

    provider_model: str
    max_output_tokens: int
    default_temperature: float


@dataclass(frozen=True)
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]


GEMINI_CONFIG = ProviderConfig(
    name="gemini",
    base_url="https://generativelanguage.googleapis.com/v1beta",
    models={
        "gemini-1.5-flash": ModelConfig(
            provider_model="gemini-1.5-flash",
            max_output_tokens=512,
            default_temperature=0.7,
        ),
        "gemini-pro": ModelConfig(
            provider_model="gemini-pro",
            max_output_tokens=512,
            default_temperature=0.7,
        ),
    },
)

DEFAULT_MODEL_CONFIG = ModelConfig(provider_model="", max_output_tokens=512, default_temperature=0.7)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "gemini": GEMINI_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def get_model_config(provider: ProviderConfig, model: str) -> ModelConfig:
    cfg = provider.models.get(model)
    if cfg is not None:
        return cfg
    return ModelConfig(
        provider_model=model,
        max_output_tokens=DEFAULT_MODEL_CONFIG.max_output_tokens,
        default_temperature=DEFAULT_MODEL_CONFIG.default_temperature,
    )
