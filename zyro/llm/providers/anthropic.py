# zyro/llm/providers/anthropic.py
"""
Anthropic Claude provider implementation.
"""
import aiohttp
from typing import Any, Dict, List, Optional

from zyro.core.config import settings
from zyro.core.exceptions import LLMError, RateLimitError
from zyro.core.types import ChatMessage, LLMResponse, ToolCall


API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_MAX_TOKENS = 4096


def _blocks(m: ChatMessage) -> List[Dict[str, Any]]:
    if m.role == "tool":
        return [{"type": "tool_result", "tool_use_id": m.tool_call_id, "content": m.content}]

    blocks: List[Dict[str, Any]] = []
    if m.content:
        blocks.append({"type": "text", "text": m.content})
    for c in m.tool_calls:
        blocks.append({"type": "tool_use", "id": c.id, "name": c.name, "input": c.arguments})
    return blocks


def build_messages(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    """
    Map to Anthropic turns. Tool results travel in user turns and
    consecutive same-role turns are merged.
    """
    turns: List[Dict[str, Any]] = []
    for m in messages:
        role = "assistant" if m.role == "assistant" else "user"
        blocks = _blocks(m)
        if not blocks:
            continue
        if turns and turns[-1]["role"] == role:
            turns[-1]["content"].extend(blocks)
        else:
            turns.append({"role": role, "content": blocks})
    return turns


def parse_response(data: Dict[str, Any]) -> LLMResponse:
    content = data.get("content")
    if content is None:
        raise LLMError("anthropic", "No content in response")

    texts = []
    calls = []
    for block in content:
        if block.get("type") == "text":
            texts.append(block.get("text", ""))
        elif block.get("type") == "tool_use":
            calls.append(ToolCall(id=block.get("id", ""), name=block.get("name", ""), arguments=block.get("input") or {}))

    usage = data.get("usage") or {}
    return LLMResponse(
        text="\n".join(t for t in texts if t),
        tool_calls=calls,
        usage={"input": usage.get("input_tokens", 0), "output": usage.get("output_tokens", 0)},
    )


async def chat(
    api_key: str,
    model: str,
    system_prompt: str,
    messages: List[ChatMessage],
    tools: Optional[List[Dict[str, Any]]] = None,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
    base_url: Optional[str] = None,
) -> LLMResponse:
    """
    Call Anthropic Messages API.

    Raises:
        RateLimitError on 429, LLMError on other API errors.
    """
    payload: Dict[str, Any] = {
        "model": model,
        "max_tokens": max_tokens or DEFAULT_MAX_TOKENS,
        "messages": build_messages(messages),
        "temperature": settings.llm.temperature if temperature is None else temperature,
    }

    if system_prompt:
        payload["system"] = system_prompt

    if tools:
        payload["tools"] = [
            {"name": t["name"], "description": t["description"], "input_schema": t["parameters"]}
            for t in tools
        ]

    headers = {
        "x-api-key": api_key,
        "anthropic-version": "2023-06-01",
        "Content-Type": "application/json",
    }

    async with aiohttp.ClientSession() as session:
        async with session.post(
            base_url or API_URL,
            json=payload,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=settings.llm.request_timeout)
        ) as response:
            if response.status == 429:
                raise RateLimitError("anthropic")

            if response.status != 200:
                text = await response.text()
                raise LLMError("anthropic", f"API error {response.status}: {text[:200]}")

            data = await response.json()
            return parse_response(data)
