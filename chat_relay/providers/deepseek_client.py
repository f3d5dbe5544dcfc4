"""DeepSeek Provider 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 DeepSeek chat/completions 的 HTTP 请求格式。
3. 调用 HTTP 接口并处理网络/超时/API 异常。
4. 将响应 JSON 解析为统一的 ChatResult 结构。

也就是“厂商 JSON ⇄ 项目内部统一模型”的转换层。DeepSeek 的接口与 OpenAI
兼容，只依赖公共字段：model/messages/temperature/max_tokens/stream。
"""

from typing import Any, Dict, List

import httpx

from chat_relay.domain.models import (
    ChatRequest,
    ChatResult,
    ChatMessage,
    ChatChoice,
    ChatUsage,
)
from chat_relay.domain.exceptions import (
    ApiError,
    ConfigurationError,
    MalformedResponseError,
    NetworkError,
    UpstreamTimeoutError,
)
from chat_relay.providers.registry import DEEPSEEK_CONFIG, ModelConfig, get_model_config


class DeepSeekClient:
    """DeepSeek 提供方客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - chat: 对外统一调用入口，返回 ChatResult。
    """

    name = "deepseek"

    def __init__(self, settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = settings

    async def chat(self, req: ChatRequest) -> ChatResult:
        """执行一次非流式对话调用。

        步骤：
        1. 读取模型配置（logical model -> provider model）。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/超时/服务端错误。
        4. 使用统一的解析函数构造 ChatResult。

        不做任何重试，失败直接抛给上层。
        """

        api_key = getattr(self._settings, "deepseek_api_key", None)
        if not api_key:
            raise ConfigurationError(code="MISSING_API_KEY", message="DEEPSEEK_API_KEY is not configured")
        model_cfg = get_model_config(self.name, req.model)
        payload = self.build_payload(req, model_cfg)
        base = (getattr(self._settings, "deepseek_base_url", None) or DEEPSEEK_CONFIG.base_url).rstrip("/")
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    f"{base}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                code="TIMEOUT",
                message=str(e) or f"DeepSeek did not respond within {self._settings.http_timeout}s",
            )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接被拒绝等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)
        if resp.status_code >= 400:
            raise ApiError(
                code="API_ERROR",
                message=self._error_message(resp),
                upstream_status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError:
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="DeepSeek returned a non-JSON body")
        return self.parse_response(data, req)

    def build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> Dict[str, Any]:
        """将 ChatRequest 转成 DeepSeek 所需的请求 JSON。"""

        return {
            "model": model_cfg.provider_model,
            "messages": [m.to_payload() for m in req.messages],
            "temperature": req.temperature if req.temperature is not None else model_cfg.default_temperature,
            "max_tokens": req.max_tokens or model_cfg.max_tokens,
            "stream": False,
        }

    def parse_response(self, data: Any, req: ChatRequest) -> ChatResult:
        """将 DeepSeek 的原始响应 JSON 解析为统一的 ChatResult。

        缺少 choices[0].message.content 或 usage 计数时抛 MalformedResponseError，
        不静默填默认值。
        """

        if not isinstance(data, dict):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="DeepSeek response is not an object")
        raw_choices = data.get("choices")
        if not isinstance(raw_choices, list) or not raw_choices:
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="DeepSeek response has no choices")

        choices: List[ChatChoice] = []
        for i, ch in enumerate(raw_choices):
            msg = ch.get("message") if isinstance(ch, dict) else None
            content = msg.get("content") if isinstance(msg, dict) else None
            if not isinstance(content, str):
                raise MalformedResponseError(
                    code="MALFORMED_RESPONSE",
                    message=f"DeepSeek choice {i} has no message content",
                )
            choices.append(
                ChatChoice(
                    index=ch.get("index", i),
                    message=ChatMessage(role=msg.get("role") or "assistant", content=content),
                    finish_reason=ch.get("finish_reason"),
                )
            )

        return ChatResult(
            provider=self.name,
            model=req.model,
            choices=choices,
            usage=self._parse_usage(data.get("usage")),
            raw=data,
        )

    @staticmethod
    def _parse_usage(usage_raw: Any) -> ChatUsage:
        if not isinstance(usage_raw, dict):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="DeepSeek response has no usage")
        counts = {}
        for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
            value = usage_raw.get(key)
            # bool 是 int 的子类，需要单独排除
            if not isinstance(value, int) or isinstance(value, bool):
                raise MalformedResponseError(
                    code="MALFORMED_RESPONSE",
                    message=f"DeepSeek usage is missing {key}",
                )
            counts[key] = value
        return ChatUsage(**counts)

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        """优先取上游 error.message，其次原始响应文本，最后退回状态码。"""

        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
            if isinstance(err, str) and err:
                return err
        text = (resp.text or "").strip()
        return text or f"HTTP {resp.status_code}"
