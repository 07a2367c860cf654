"""聊天请求处理核心模块。

校验输入 → 解析人设 → 组装 prompt → 经 ModelFallbackChain 调用模型 → 映射为响应。
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from persona_core.domain.exceptions import (
    BusinessError,
    ConfigError,
    InputError,
    ModelChainError,
    ServiceFailureError,
    ServiceOverloadedError,
)
from persona_core.domain.models import ChatReply, ChatRequest, ChatResponse
from persona_core.domain.personas import PersonaStore
from persona_core.infrastructure.logging.logger import logger
from persona_core.prompts import PromptAssembler
from persona_core.resilience.classifier import ErrorKind
from persona_core.resilience.fallback import ModelFallbackChain


MISSING_KEY_MESSAGE = "Server misconfiguration: Missing GEMINI_API_KEY"
MISSING_INPUT_MESSAGE = "Message and persona are required"
INVALID_PERSONA_MESSAGE = "Invalid persona selected"
OVERLOADED_MESSAGE = "Model is temporarily overloaded. We retried a few times—please try again shortly."
FAILURE_MESSAGE = (
    "Failed to generate response. Please check your API key, internet connection, and server logs."
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ChatRequestHandler:
    def __init__(
        self,
        settings,
        persona_store: PersonaStore,
        chain: ModelFallbackChain,
        assembler: Optional[PromptAssembler] = None,
    ):
        self._settings = settings
        self._personas = persona_store
        self._chain = chain
        self._assembler = assembler or PromptAssembler()

    async def handle(self, request: ChatRequest, timeout: Optional[float] = None) -> ChatResponse:
        """处理一次聊天请求。

        Args:
            request: 聊天请求
            timeout: 本次请求的截止时间（秒），为空时使用配置中的 request_timeout

        Returns:
            ChatResponse：成功为 200 + {response, persona, timestamp}，
            失败为 400/500/503 + {error, details?}
        """
        log_ctx: Dict[str, Any] = {"request_id": f"rq-{uuid4().hex}", "persona": request.persona_id}
        try:
            reply = await self._generate(request, timeout, log_ctx)
        except BusinessError as e:
            self._log(logging.WARNING, "Chat request rejected", log_ctx, code=e.code, status=e.http_status)
            return self._error_response(e)
        return ChatResponse(status_code=200, body=reply.to_dict())

    async def _generate(self, request: ChatRequest, timeout: Optional[float], log_ctx: Dict[str, Any]) -> ChatReply:
        persona = self.validate(request)
        prompt = self._assembler.assemble(persona, request.message, request.history)
        deadline = timeout if timeout is not None else getattr(self._settings, "request_timeout", None)
        self._log(
            logging.INFO,
            "Invoking model chain",
            log_ctx,
            prompt_chars=len(prompt),
            history=len(request.history),
            deadline=deadline,
        )
        try:
            if deadline:
                text = await asyncio.wait_for(self._chain.invoke(prompt), timeout=deadline)
            else:
                text = await self._chain.invoke(prompt)
        except asyncio.TimeoutError as e:
            logger.error("Chat request deadline exceeded", extra={"extra": {**log_ctx, "deadline": deadline}})
            raise ServiceOverloadedError(
                code="DEADLINE_EXCEEDED",
                message=OVERLOADED_MESSAGE,
                details=f"Request deadline of {deadline}s exceeded",
            ) from e
        except ModelChainError as e:
            logger.error(
                "Chat API error",
                exc_info=e,
                extra={"extra": {**log_ctx, "kind": e.kind.value, "calls": e.calls, "aborted": e.aborted}},
            )
            raise self.map_failure(e) from e
        self._log(logging.INFO, "Chat response generated", log_ctx, response_chars=len(text))
        return ChatReply(response=text, persona=request.persona_id, timestamp=utc_now_iso())

    def validate(self, request: ChatRequest):
        """按顺序校验：配置 → 必填字段 → 人设存在；返回解析出的 PersonaConfig。"""

        if not getattr(self._settings, "gemini_api_key", None):
            raise ConfigError(code="MISSING_API_KEY", message=MISSING_KEY_MESSAGE)
        if not request.message or not request.persona_id:
            raise InputError(code="MISSING_INPUT", message=MISSING_INPUT_MESSAGE)
        persona = self._personas.get(request.persona_id)
        if persona is None:
            raise InputError(code="INVALID_PERSONA", message=INVALID_PERSONA_MESSAGE)
        return persona

    @staticmethod
    def map_failure(error: ModelChainError) -> BusinessError:
        detail = error.last.detail
        if error.kind is ErrorKind.TRANSIENT:
            return ServiceOverloadedError(code="MODEL_OVERLOADED", message=OVERLOADED_MESSAGE, details=detail)
        return ServiceFailureError(code="MODEL_FAILURE", message=FAILURE_MESSAGE, details=detail)

    def _error_response(self, error: BusinessError) -> ChatResponse:
        body: Dict[str, Any] = {"error": error.message}
        details = error.extra.get("details")
        if details and getattr(self._settings, "debug", False):
            body["details"] = details
        return ChatResponse(status_code=error.http_status, body=body)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
