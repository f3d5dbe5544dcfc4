"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
DEEPSEEK_API_KEY 由部署环境注入（Serverless 环境变量 / Edge 运行时绑定）。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CHAT_RELAY_CONFIG_FILE")
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

    # ---- Provider 相关配置 ----
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API 密钥")
    deepseek_base_url: str = Field(
        default="https://api.deepseek.com/v1",
        description="DeepSeek API 基础URL",
    )
    default_model: str = Field(
        default="chat",
        description="逻辑模型名，由 registry 映射为具体厂商模型",
    )
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")
    strict_roles: bool = Field(
        default=False,
        description="是否严格校验历史消息的 role/content（默认原样透传）",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="", description="日志目录，为空时输出到 stderr")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- 本地运行 ----
    host: str = Field(default="127.0.0.1", description="uvicorn 监听地址")
    port: int = Field(default=8000, ge=1, le=65535, description="uvicorn 监听端口")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("deepseek_api_key")
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        # 空字符串与未配置等价
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").upper()

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


def settings_from_bindings(bindings: Mapping[str, Any]) -> Settings:
    """把 Edge 运行时注入的绑定（如 {"DEEPSEEK_API_KEY": ...}）转成 Settings。

    绑定优先于环境变量；未知键忽略。
    """
    known = set(Settings.model_fields)
    overrides = {}
    for key, value in (bindings or {}).items():
        name = str(key).lower()
        if name in known:
            overrides[name] = value
    return Settings(**overrides)


settings = Settings()
