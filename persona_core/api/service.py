"""对外 API 服务模块。

提供简化的函数接口供上层 HTTP 框架调用（路由、CORS、限流等由外部负责）：

- handle_chat: 请求 JSON → (状态码, 响应 JSON)。
- list_personas: 人设展示信息。
- health: 健康检查。
"""

from typing import Any, Dict, Optional, Tuple

from persona_core import __version__
from persona_core.agents.chat_handler import ChatRequestHandler, utc_now_iso
from persona_core.config.settings import Settings, settings
from persona_core.domain.models import ChatRequest
from persona_core.domain.personas import PersonaStore
from persona_core.infrastructure.logging.logger import logger
from persona_core.infrastructure.storage.persona_store import YamlPersonaStore
from persona_core.prompts import PromptAssembler
from persona_core.providers import create_provider
from persona_core.resilience.fallback import ModelFallbackChain
from persona_core.resilience.retry import RetryScheduler


_store: Optional[PersonaStore] = None
_handler: Optional[ChatRequestHandler] = None


def build_handler(cfg: Settings, store: Optional[PersonaStore] = None) -> ChatRequestHandler:
    """根据配置组装 ChatRequestHandler（Provider → 重试调度 → 降级链 → Handler）。"""

    persona_store = store or YamlPersonaStore(root=cfg.persona_dir)
    chain = ModelFallbackChain(
        provider=create_provider(cfg),
        scheduler=RetryScheduler.from_settings(cfg),
        candidates=cfg.candidate_models,
    )
    if not cfg.gemini_api_key:
        logger.error("GEMINI_API_KEY is missing. Set it in your .env file.")
    return ChatRequestHandler(cfg, persona_store, chain, PromptAssembler())


def get_default_store() -> PersonaStore:
    global _store
    if _store is None:
        _store = YamlPersonaStore(root=settings.persona_dir)
    return _store


def get_default_handler() -> ChatRequestHandler:
    """获取默认的 ChatRequestHandler 实例（单例）。"""
    global _handler
    if _handler is None:
        _handler = build_handler(settings, get_default_store())
    return _handler


async def handle_chat(
    payload: Dict[str, Any],
    timeout: Optional[float] = None,
    handler: Optional[ChatRequestHandler] = None,
) -> Tuple[int, Dict[str, Any]]:
    """处理一次聊天请求。

    Args:
        payload: 请求体 {message, persona, history}
        timeout: 本次请求的截止时间（秒），可选
        handler: 自定义 Handler（测试或多配置场景），默认使用单例

    Returns:
        (HTTP 状态码, 响应 JSON)
    """
    request = ChatRequest.from_payload(payload if isinstance(payload, dict) else {})
    result = await (handler or get_default_handler()).handle(request, timeout=timeout)
    return result.status_code, result.body


def list_personas(store: Optional[PersonaStore] = None) -> Dict[str, Dict[str, Any]]:
    """列出所有人设的展示信息，按 id 索引。"""
    return {p.id: p.profile() for p in (store or get_default_store()).list()}


def health() -> Dict[str, Any]:
    return {"status": "healthy", "timestamp": utc_now_iso(), "version": __version__}
