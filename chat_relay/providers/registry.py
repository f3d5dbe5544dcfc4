"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：在代码里使用的统一名称，例如 "chat"。
- provider_model：厂商实际提供的模型 ID，例如 "deepseek-chat"。

上层只关心逻辑名，具体用哪个底层模型由这里集中配置，便于后续升级或切换。"""

from dataclasses import dataclass
from typing import Dict, Mapping

from chat_relay.domain.exceptions import ConfigurationError


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    max_tokens: int
    default_temperature: float


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]


# DeepSeek 配置（OpenAI 兼容的 chat/completions 接口）
DEEPSEEK_CONFIG = ProviderConfig(
    name="deepseek",
    base_url="https://api.deepseek.com/v1",
    models={
        "chat": ModelConfig(
            logical_name="chat",
            provider_model="deepseek-chat",
            max_tokens=2000,
            default_temperature=0.7,
        )
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "deepseek": DEEPSEEK_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def get_model_config(provider: str, model: str) -> ModelConfig:
    """取出某个 Provider 下的逻辑模型配置，未知模型属于部署配置错误，抛 ConfigurationError。"""

    cfg = get_provider_config(provider)
    try:
        return cfg.models[model]
    except KeyError:
        raise ConfigurationError(
            code="UNKNOWN_MODEL",
            message=f"Unknown model {model!r} for provider {cfg.name!r}",
        ) from None
