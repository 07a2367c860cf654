"""统一的人设、对话与响应数据模型。

本模块定义了核心调用层在各组件之间共享的标准数据结构：

- PersonaConfig / TrainingExample: 人设配置（系统指令 + few-shot 示例 + 展示信息）。
- ConversationTurn: 调用方传入的一条历史消息，核心逻辑只读不改。
- ChatRequest: 一次聊天请求（消息、人设 ID、历史）。
- ChatReply / ChatResponse: 成功结果与传输无关的响应（状态码 + body）。

Provider 适配器与 Handler 都只依赖这些模型，
具体 HTTP 框架如何序列化由外部负责。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple


# 历史消息发送方（前端使用 "ai" 表示助手，解析时统一映射为 "assistant"）
Sender = Literal["user", "assistant"]


@dataclass(frozen=True)
class TrainingExample:
    """一条 few-shot 示例：用户输入与期望回答。"""

    user_input: str
    expected_response: str


@dataclass(frozen=True)
class PersonaConfig:
    """一个人设的完整配置，进程内只加载一次，不可变。

    - id: 人设标识，如 "hitesh"。
    - name: 展示名，如 "Hitesh Choudhary"，用于 prompt 中的角色声明。
    - system_instruction: 原样放在 prompt 开头的系统指令。
    - training_examples: 有序的 few-shot 示例。
    - tone: 语气描述（如 "Hinglish"），用于指导规则块。
    - 其余字段仅用于人设列表展示。
    """

    id: str
    name: str
    system_instruction: str
    training_examples: Tuple[TrainingExample, ...] = ()
    tone: str = "natural, conversational"
    title: str = ""
    description: str = ""
    avatar: str = ""
    specialties: Tuple[str, ...] = ()
    greeting: str = ""

    def profile(self) -> Dict[str, Any]:
        """对外展示用的人设信息（不含系统指令与示例）。"""

        return {
            "id": self.id,
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "avatar": self.avatar,
            "specialties": list(self.specialties),
            "greeting": self.greeting,
        }


@dataclass(frozen=True)
class ConversationTurn:
    """一条历史消息。"""

    sender: Sender
    content: str
    timestamp: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ConversationTurn":
        sender: Sender = "user" if data.get("sender") == "user" else "assistant"
        return cls(
            sender=sender,
            content=str(data.get("content") or ""),
            timestamp=data.get("timestamp"),
        )


@dataclass(frozen=True)
class ChatRequest:
    """一次完整的聊天请求，history 按时间顺序排列（最新的在最后）。"""

    message: str
    persona_id: str
    history: Tuple[ConversationTurn, ...] = ()

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ChatRequest":
        """从请求 JSON 构造 ChatRequest，字段缺失时保留空值交给 Handler 校验。"""

        raw_history = data.get("history")
        history = tuple(
            ConversationTurn.from_payload(item)
            for item in (raw_history if isinstance(raw_history, list) else [])
            if isinstance(item, dict)
        )
        return cls(
            message=str(data.get("message") or ""),
            persona_id=str(data.get("persona") or ""),
            history=history,
        )


@dataclass(frozen=True)
class ChatReply:
    """成功生成的回复。"""

    response: str
    persona: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {"response": self.response, "persona": self.persona, "timestamp": self.timestamp}


@dataclass
class ChatResponse:
    """Handler 的最终输出：HTTP 状态码 + JSON body。"""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code < 400
