"""Gemini Provider 适配器。

本模块负责：

1. 接收 (模型 ID, prompt 文本)。
2. 转换为 Gemini generateContent 的 HTTP 请求：
   - URL: {base_url}/models/{model}:generateContent
   - 认证: x-goog-api-key: <api_key>
3. 调用 HTTP 接口并把网络/API 异常包装为统一的业务异常。
4. 从响应 JSON 中拼出候选回答文本。

错误包装时保留上游的 error.message 与状态码，ErrorClassifier 依赖这两者判断是否重试。
"""

from typing import Any, Dict, List

import httpx

from persona_core.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from persona_core.providers.registry import GEMINI_CONFIG, ModelConfig, get_model_config


class GeminiClient:
    """Gemini 提供方客户端实现。"""

    name = "gemini"

    def __init__(self, settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = settings

    async def generate(self, model: str, prompt: str) -> str:
        """执行一次非流式生成调用。

        步骤：
        1. 读取模型参数（未登记的模型使用默认参数）。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/限流/服务端错误。
        4. 解析候选文本。
        """

        if not getattr(self._settings, "gemini_api_key", None):
            raise ValidationError(code="MISSING_API_KEY", message="GEMINI_API_KEY not set")
        model_cfg = get_model_config(GEMINI_CONFIG, model)
        payload = self._build_payload(prompt, model_cfg)
        base = getattr(self._settings, "gemini_base_url", None) or GEMINI_CONFIG.base_url
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    f"{base}/models/{model_cfg.provider_model}:generateContent",
                    json=payload,
                    headers={
                        "x-goog-api-key": self._settings.gemini_api_key,
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TimeoutException as e:
            raise NetworkError(code="TIMEOUT", message=f"Request timeout: {e}", http_status=504)
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接失败等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)
        if resp.status_code == 429:
            raise RateLimitError(
                code="RATE_LIMIT",
                message=self._error_message(resp) or "Gemini rate limit",
                http_status=429,
            )
        if resp.status_code >= 400:
            raise ApiError(
                code="API_ERROR",
                message=self._error_message(resp) or resp.text,
                http_status=resp.status_code,
                model=model,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError(
                code="INVALID_RESPONSE",
                message=f"Malformed response body: {e}",
                http_status=502,
                model=model,
            )
        if not isinstance(data, dict):
            raise ApiError(
                code="INVALID_RESPONSE",
                message=f"Unexpected response body type: {type(data).__name__}",
                http_status=502,
                model=model,
            )
        return self._parse_response(data, model)

    def _build_payload(self, prompt: str, model_cfg: ModelConfig) -> Dict[str, Any]:
        """将 prompt 转成 Gemini 所需的请求 JSON。"""

        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": model_cfg.default_temperature,
                "maxOutputTokens": model_cfg.max_output_tokens,
            },
        }

    def _parse_response(self, data: Dict[str, Any], model: str) -> str:
        """拼接第一个候选回答的全部文本片段。"""

        candidates: List[Dict[str, Any]] = data.get("candidates") or []
        if not candidates:
            block = (data.get("promptFeedback") or {}).get("blockReason")
            raise ApiError(
                code="EMPTY_RESPONSE",
                message=f"Response blocked: {block}" if block else "Empty response from model",
                http_status=502 if not block else 400,
                model=model,
            )
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text:
            reason = candidates[0].get("finishReason") or "UNKNOWN"
            raise ApiError(
                code="EMPTY_RESPONSE",
                message=f"Empty response from model (finishReason={reason})",
                http_status=502,
                model=model,
            )
        return text

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        """取出 Google API 错误体中的 error.message。"""

        try:
            body = resp.json()
        except ValueError:
            return ""
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict):
                return str(err.get("message") or "")
        return ""
