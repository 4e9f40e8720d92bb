# zyro/agents/state.py
"""
State threaded through one agent network run.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from zyro.core.types import ChatMessage, LLMResponse, OutputSegment


@dataclass
class AgentState:
    """
    Owned by exactly one workflow run.

    files only grows or overwrites existing keys; it is never cleared.
    """
    summary: str = ""
    files: Dict[str, str] = field(default_factory=dict)


@dataclass
class AgentResult:
    """One agent invocation: the model's reply and the results of its tool calls."""
    agent_name: str
    response: LLMResponse
    tool_results: List[OutputSegment] = field(default_factory=list)

    @property
    def output(self) -> List[OutputSegment]:
        segments: List[OutputSegment] = []
        if self.response.text:
            segments.append(OutputSegment(type="text", content=self.response.text))
        segments.extend(self.tool_results)
        return segments

    def to_messages(self) -> List[ChatMessage]:
        """Conversation entries to feed back on the next iteration."""
        messages = [ChatMessage(
            role="assistant",
            content=self.response.text,
            tool_calls=list(self.response.tool_calls),
        )]
        for r in self.tool_results:
            messages.append(ChatMessage(
                role="tool",
                content=stringify_tool_output(r.content),
                tool_call_id=r.tool_call_id,
                name=r.tool_name,
            ))
        return messages


@dataclass
class NetworkState:
    """Shared state plus the ordered results of every iteration."""
    state: AgentState = field(default_factory=AgentState)
    results: List[AgentResult] = field(default_factory=list)

    @property
    def iterations(self) -> int:
        return len(self.results)


def stringify_tool_output(output: Any) -> str:
    if output is None:
        return ""
    if isinstance(output, str):
        return output
    return json.dumps(output)


def last_assistant_text(result: AgentResult) -> Optional[str]:
    text = result.response.text
    return text if text else None


def first_output_text(result: Optional[AgentResult], fallback: str) -> str:
    """
    Text of the first output segment, or `fallback` when there is none.

    A tool_result segment whose content is a list uses the first item's
    "content" field.
    """
    if result is None or not result.output:
        return fallback

    first = result.output[0]
    if first.type == "text":
        return first.content or fallback

    content = first.content
    if isinstance(content, list) and content:
        item = content[0]
        content = item.get("content") if isinstance(item, dict) else item
    return content if isinstance(content, str) and content else fallback
