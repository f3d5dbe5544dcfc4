"""统一的对话与结果数据模型。

本模块定义了 Relay 与 Provider 之间共享的标准数据结构：

- ChatMessage: 一条对话消息（system/user/assistant）。
- ChatRequest: 发给底层 LLM Provider 的完整请求。
- ChatResult: 从 Provider 解析后的统一响应结果。
- RelayReply: Relay 返回给适配层的精简结果（回复文本 + token 统计）。

所有实体都只在一次请求内存在，不做任何持久化。
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Any, Dict, List, get_args


# LLM 消息角色类型（与 DeepSeek / OpenAI 的 role 字段对应）
Role = Literal["system", "user", "assistant"]

KNOWN_ROLES = get_args(Role)


@dataclass
class ChatMessage:
    """一条对话消息，既可用于请求，也可用于响应。

    role 在宽松模式下不做校验，调用方传什么就原样转发给上游。
    """

    role: str
    content: str

    def to_payload(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    """一次完整的聊天请求。

    Relay 把历史与当前消息拼成 ChatRequest，再交给具体 ProviderClient。
    Provider 适配层负责把本结构转换成各家 API 的 JSON 请求体。
    """

    provider: str  # 逻辑 Provider 名，如 "deepseek"
    model: str  # 逻辑模型名，如 "chat"（再由 registry 映射为真实模型名）
    messages: List[ChatMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class ChatUsage:
    """Provider 返回的 token 统计信息（统一格式）。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }

    def to_camel(self) -> Dict[str, int]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass
class ChatChoice:
    """单个候选回答（目前只用 index=0 的一条）。"""

    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


@dataclass
class ChatResult:
    """一次对话调用的最终结果。

    - provider: 逻辑 Provider 名（如 "deepseek"）。
    - model: 逻辑模型名（如 "chat"）。
    - choices: 一个或多个候选回答。
    - usage: token 使用统计。
    - raw: 原始响应 JSON，用于调试或日志记录。
    """

    provider: str
    model: str
    choices: List[ChatChoice]
    usage: ChatUsage
    raw: Optional[dict] = field(default=None, repr=False)


@dataclass
class RelayReply:
    """Relay 对外的结果：第一条候选的文本与 token 统计。"""

    message: str
    usage: ChatUsage
