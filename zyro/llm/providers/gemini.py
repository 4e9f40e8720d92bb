# zyro/llm/providers/gemini.py
"""
Google Gemini provider implementation.
"""
import json
import uuid
import aiohttp
from typing import Any, Dict, List, Optional

from zyro.core.config import settings
from zyro.core.exceptions import LLMError, RateLimitError
from zyro.core.logging import log
from zyro.core.types import ChatMessage, LLMResponse, ToolCall


API_URL = "https://generativelanguage.googleapis.com/v1beta/models"


def build_contents(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    """
    Gemini turns are "user" or "model". Function results go back as
    functionResponse parts in a user turn.
    """
    # Gemini matches responses to calls by name, not id
    names_by_id = {c.id: c.name for m in messages for c in m.tool_calls}

    contents: List[Dict[str, Any]] = []
    for m in messages:
        if m.role == "tool":
            role = "user"
            parts = [{
                "functionResponse": {
                    "name": m.name or names_by_id.get(m.tool_call_id, "tool"),
                    "response": {"content": m.content},
                }
            }]
        else:
            role = "model" if m.role == "assistant" else "user"
            parts = []
            if m.content:
                parts.append({"text": m.content})
            for c in m.tool_calls:
                parts.append({"functionCall": {"name": c.name, "args": c.arguments}})

        if not parts:
            continue
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].extend(parts)
        else:
            contents.append({"role": role, "parts": parts})
    return contents


def parse_response(data: Dict[str, Any]) -> LLMResponse:
    candidates = data.get("candidates", [])
    if not candidates:
        raise LLMError("gemini", "No candidates in response")

    parts = candidates[0].get("content", {}).get("parts", [])
    texts = []
    calls = []
    for part in parts:
        if "text" in part:
            texts.append(part["text"])
        elif "functionCall" in part:
            fn = part["functionCall"]
            calls.append(ToolCall(
                id=f"call_{uuid.uuid4().hex[:12]}",
                name=fn.get("name", ""),
                arguments=fn.get("args") or {},
            ))

    usage_metadata = data.get("usageMetadata", {})
    return LLMResponse(
        text="".join(texts),
        tool_calls=calls,
        usage={
            "input": usage_metadata.get("promptTokenCount", 0),
            "output": usage_metadata.get("candidatesTokenCount", 0),
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
    Call Google Gemini generateContent.

    Raises:
        RateLimitError on 429, LLMError on other API errors.
    """
    url = f"{base_url or API_URL}/{model}:generateContent"

    generation_config: Dict[str, Any] = {
        "temperature": settings.llm.temperature if temperature is None else temperature,
    }
    if max_tokens:
        generation_config["maxOutputTokens"] = max_tokens

    payload: Dict[str, Any] = {
        "contents": build_contents(messages),
        "generationConfig": generation_config,
    }

    if system_prompt:
        payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

    if tools:
        payload["tools"] = [{
            "functionDeclarations": [
                {"name": t["name"], "description": t["description"], "parameters": t["parameters"]}
                for t in tools
            ]
        }]

    headers = {"x-goog-api-key": api_key, "Content-Type": "application/json"}

    async with aiohttp.ClientSession() as session:
        async with session.post(
            url,
            json=payload,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=settings.llm.request_timeout)
        ) as response:
            text = await response.text()

            if response.status == 429:
                log("LLM", f"[GEMINI] 429 Rate limit response: {text[:300]}")
                raise RateLimitError("gemini")

            if response.status != 200:
                log("LLM", f"[GEMINI] Error {response.status}: {text[:300]}")
                raise LLMError("gemini", f"API error {response.status}: {text[:200]}")

            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                raise LLMError("gemini", f"Failed to parse response: {e}")

            return parse_response(data)
