"""对外 Relay 服务模块。

REST 与 GraphQL 两个适配层共用这里的 ChatRelay：
校验输入 → 拼接历史与当前消息 → 调用 Provider → 归一化结果/错误。
对话历史完全由调用方持有，服务端不保存任何状态。
"""

from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional

from chat_relay.config.settings import Settings, settings as default_settings
from chat_relay.domain.exceptions import BusinessError, ConfigurationError, ValidationError
from chat_relay.domain.models import KNOWN_ROLES, ChatMessage, ChatRequest, RelayReply
from chat_relay.infrastructure.logging.logger import logger
from chat_relay.providers.base import ProviderClient
from chat_relay.providers import create_provider


class ChatRelay:
    """调用方消息与上游 LLM API 之间的转换单元。

    配置通过构造函数显式注入；provider 缺省时按同一份配置创建默认 Provider（DeepSeek）。
    实例本身不持有可变状态，可以被并发请求共享。
    """

    def __init__(self, settings: Optional[Settings] = None, provider: Optional[ProviderClient] = None):
        self._settings = settings or default_settings
        self._provider = provider or create_provider(cfg=self._settings)

    @property
    def settings(self) -> Settings:
        return self._settings

    async def send_message(self, message: Any, conversation_history: Any = None) -> RelayReply:
        """发送一条消息，返回模型回复与 token 统计。

        Args:
            message: 当前用户消息，去掉首尾空白后不能为空。
            conversation_history: 按时间顺序排列的历史消息（可选）。

        Raises:
            ValidationError: 消息为空，或历史格式不对。
            ConfigurationError: 未配置 DEEPSEEK_API_KEY（发请求前检查）。
            UpstreamError: 上游调用失败、超时或响应格式不对。
        """
        if not isinstance(message, str) or not message.strip():
            raise ValidationError(code="INVALID_ARGUMENT", message="Message content must not be empty")
        messages = self.build_messages(message, conversation_history)

        if not getattr(self._settings, "deepseek_api_key", None):
            raise ConfigurationError(code="MISSING_API_KEY", message="DEEPSEEK_API_KEY is not configured")

        req = ChatRequest(
            provider=self._provider.name,
            model=self._settings.default_model,
            messages=messages,
        )
        try:
            result = await self._provider.chat(req)
        except BusinessError as e:
            logger.error(f"Relay failed: {e.message}", extra={"extra": {
                "provider": self._provider.name,
                "code": e.code,
                "history": len(messages) - 1,
                **e.extra,
            }})
            raise

        reply = RelayReply(message=result.choices[0].message.content, usage=result.usage)
        logger.info("relay.success", extra={"extra": {
            "provider": result.provider,
            "history": len(messages) - 1,
            **reply.usage.to_dict(),
        }})
        return reply

    def build_messages(self, message: str, conversation_history: Any = None) -> List[ChatMessage]:
        """历史在前、当前消息在后，顺序固定。

        每条历史只保留 role/content，其余字段丢弃。默认不校验 role，
        settings.strict_roles 为真时才拒绝未知 role 和空内容。
        """
        if conversation_history is None:
            conversation_history = []
        if isinstance(conversation_history, (str, bytes, Mapping)) or not isinstance(conversation_history, Sequence):
            raise ValidationError(code="INVALID_ARGUMENT", message="conversationHistory must be a list")

        strict = bool(getattr(self._settings, "strict_roles", False))
        messages: List[ChatMessage] = []
        for i, entry in enumerate(conversation_history):
            if isinstance(entry, Mapping):
                role, content = entry.get("role"), entry.get("content")
            elif hasattr(entry, "role") and hasattr(entry, "content"):
                role, content = entry.role, entry.content
            else:
                raise ValidationError(
                    code="INVALID_ARGUMENT",
                    message=f"conversationHistory[{i}] must be an object with role and content",
                )
            if strict:
                if role not in KNOWN_ROLES:
                    raise ValidationError(
                        code="INVALID_ARGUMENT",
                        message=f"conversationHistory[{i}] has unknown role {role!r}",
                    )
                if not isinstance(content, str) or not content:
                    raise ValidationError(
                        code="INVALID_ARGUMENT",
                        message=f"conversationHistory[{i}] has empty content",
                    )
            messages.append(ChatMessage(role=role, content=content))

        messages.append(ChatMessage(role="user", content=message))
        return messages

    def clear_conversation(self) -> Dict[str, bool]:
        # 历史由调用方持有，服务端没有可清理的内容
        return {"success": True}


_relay: Optional[ChatRelay] = None


def get_default_relay() -> ChatRelay:
    """获取按默认配置构造的 ChatRelay（单例）。"""
    global _relay
    if _relay is None:
        _relay = ChatRelay(default_settings)
    return _relay
