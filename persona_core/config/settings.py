"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置（优先级：构造参数 > 环境变量 > .env > config.yaml）。
配置对象在进程启动时由 api.service 构造一次，再显式传给 Handler / Provider，
核心逻辑内部不直接读取全局配置。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("PERSONA_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- Gemini ----
    gemini_api_key: Optional[str] = Field(default=None, description="Gemini API 密钥")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini API 基础URL",
    )
    gemini_model: str = Field(default="gemini-1.5-flash", description="首选模型")
    fallback_models: List[str] = Field(
        default_factory=lambda: ["gemini-pro"],
        description="首选模型失败后依次尝试的备用模型",
    )

    # ---- 重试 / 退避 ----
    genai_max_retries: int = Field(default=3, ge=1, le=10, description="每个模型的最大尝试次数")
    genai_base_delay_ms: int = Field(default=500, ge=0, description="退避基础时长（毫秒）")
    genai_jitter_ms: int = Field(default=200, ge=0, description="退避随机抖动上限（毫秒）")

    http_timeout: float = Field(default=30.0, ge=1.0, description="单次 HTTP 调用超时时间（秒）")
    request_timeout: float = Field(default=60.0, gt=0, description="单个聊天请求的总截止时间（秒）")

    persona_dir: Optional[str] = Field(default=None, description="人设 YAML 目录，默认使用内置数据")
    debug: bool = Field(default=False, description="是否在错误响应中附带原始错误信息")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("gemini_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("fallback_models", mode="before")
    @classmethod
    def split_models(cls, v: Any) -> Any:
        # 允许 "a,b" 形式（来自 config.yaml）
        if isinstance(v, str):
            return [m.strip() for m in v.split(",") if m.strip()]
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )

    @property
    def candidate_models(self) -> Tuple[str, ...]:
        """有序候选模型列表：首选模型在前，去重保序。"""

        ordered: List[str] = []
        for name in [self.gemini_model, *self.fallback_models]:
            name = (name or "").strip()
            if name and name not in ordered:
                ordered.append(name)
        return tuple(ordered)


settings = Settings()
