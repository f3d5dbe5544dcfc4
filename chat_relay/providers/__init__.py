"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供厂商的具体实现 (deepseek_client)。
"""

from typing import Optional

from chat_relay.config.settings import settings
from chat_relay.providers.base import ProviderClient
from chat_relay.providers.deepseek_client import DeepSeekClient


def create_provider(name: Optional[str] = None, cfg=None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认使用 deepseek。"""

    cfg = cfg or settings
    provider_name = (name or "deepseek").lower()
    if provider_name == "deepseek":
        return DeepSeekClient(cfg)
    raise KeyError(f"Unknown provider: {name!r}")

