# zyro/core/types.py
"""
Shared types: provider ids, message taxonomy, chat messages and agent output segments.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Literal


class AiProvider(str, Enum):
    GEMINI = "GEMINI"
    OPENAI = "OPENAI"
    ANTHROPIC = "ANTHROPIC"
    GROK = "GROK"
    OPENROUTER = "OPENROUTER"


class MessageRole(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


class MessageType(str, Enum):
    PLAN = "PLAN"
    RESULT = "RESULT"
    ERROR = "ERROR"


AgentPurpose = Literal["code", "title", "response"]


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolCall":
        return cls(id=data["id"], name=data["name"], arguments=data.get("arguments") or {})


@dataclass
class ChatMessage:
    """
    Provider-neutral conversation entry.

    role is one of "user", "assistant", "tool".
    Assistant entries may carry tool_calls; tool entries answer one call by tool_call_id.
    """
    role: str
    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_call_id: Optional[str] = None
    name: Optional[str] = None


@dataclass
class LLMResponse:
    """Normalized provider output."""
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "tool_calls": [c.to_dict() for c in self.tool_calls],
            "usage": self.usage,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LLMResponse":
        return cls(
            text=data.get("text") or "",
            tool_calls=[ToolCall.from_dict(c) for c in data.get("tool_calls") or []],
            usage=data.get("usage") or {},
        )


@dataclass
class OutputSegment:
    """
    One typed piece of an agent's output.

    type "text": content is the assistant text.
    type "tool_call": content is the ToolCall.
    type "tool_result": content is whatever the tool returned (string, list or None).
    """
    type: str
    content: Any = None
    tool_name: Optional[str] = None
    tool_call_id: Optional[str] = None
