"""Chat Relay 顶层包。

把用户消息与调用方持有的对话历史转发给 DeepSeek chat/completions，
再把回复与 token 统计返回；对外提供 REST 与 GraphQL 两种适配层。
"""

from chat_relay.api.service import ChatRelay, get_default_relay

__all__ = ["ChatRelay", "get_default_relay"]
