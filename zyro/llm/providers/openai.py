# zyro/llm/providers/openai.py
"""
OpenAI chat-completions provider.

Also serves OpenAI-compatible endpoints (xAI Grok, OpenRouter) via base_url.
"""
import json
import aiohttp
from typing import Any, Dict, List, Optional

from zyro.core.config import settings
from zyro.core.exceptions import LLMError, RateLimitError
from zyro.core.types import ChatMessage, LLMResponse, ToolCall


DEFAULT_BASE_URL = "https://api.openai.com/v1"


def build_messages(system_prompt: str, messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    payload: List[Dict[str, Any]] = []
    if system_prompt:
        payload.append({"role": "system", "content": system_prompt})

    for m in messages:
        if m.role == "tool":
            payload.append({
                "role": "tool",
                "tool_call_id": m.tool_call_id,
                "content": m.content,
            })
        elif m.role == "assistant" and m.tool_calls:
            payload.append({
                "role": "assistant",
                "content": m.content or None,
                "tool_calls": [
                    {
                        "id": c.id,
                        "type": "function",
                        "function": {"name": c.name, "arguments": json.dumps(c.arguments)},
                    }
                    for c in m.tool_calls
                ],
            })
        else:
            payload.append({"role": m.role, "content": m.content})
    return payload


def build_tools(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": t["name"],
                "description": t["description"],
                "parameters": t["parameters"],
            },
        }
        for t in tools
    ]


def parse_response(data: Dict[str, Any]) -> LLMResponse:
    try:
        message = data["choices"][0]["message"]
    except (KeyError, IndexError) as e:
        raise LLMError("openai", f"Failed to parse response: {e}")

    calls = []
    for raw in message.get("tool_calls") or []:
        fn = raw.get("function", {})
        try:
            arguments = json.loads(fn.get("arguments") or "{}")
        except json.JSONDecodeError:
            arguments = {"_raw": fn.get("arguments")}
        calls.append(ToolCall(id=raw.get("id", ""), name=fn.get("name", ""), arguments=arguments))

    usage = data.get("usage") or {}
    return LLMResponse(
        text=message.get("content") or "",
        tool_calls=calls,
        usage={
            "input": usage.get("prompt_tokens", 0),
            "output": usage.get("completion_tokens", 0),
        },
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
    Call a chat-completions endpoint.

    Raises:
        RateLimitError on 429, LLMError on any other non-200 or malformed body.
    """
    payload: Dict[str, Any] = {
        "model": model,
        "messages": build_messages(system_prompt, messages),
        "temperature": settings.llm.temperature if temperature is None else temperature,
    }
    if max_tokens:
        payload["max_tokens"] = max_tokens
    if tools:
        payload["tools"] = build_tools(tools)

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    url = f"{(base_url or DEFAULT_BASE_URL).rstrip('/')}/chat/completions"

    async with aiohttp.ClientSession() as session:
        async with session.post(
            url,
            json=payload,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=settings.llm.request_timeout)
        ) as response:
            if response.status == 429:
                raise RateLimitError("openai")

            if response.status != 200:
                text = await response.text()
                raise LLMError("openai", f"API error {response.status}: {text[:200]}")

            data = await response.json()
            return parse_response(data)
