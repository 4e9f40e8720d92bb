# zyro/llm/adapter.py
"""
Unified LLM adapter - single interface for all providers.

An adapter is bound to one provider, one user API key and one agent purpose.
No fallback and no retries: a failed call fails the step that made it.
"""
from typing import Any, Dict, List, Optional

from zyro.core.exceptions import LLMError
from zyro.core.logging import log
from zyro.core.types import AgentPurpose, AiProvider, ChatMessage, LLMResponse
from .registry import ModelConfig, get_model_config


class LLMAdapter:
    """
    Bound model client used by agents.

    Handles:
    - Provider/model selection from the registry
    - Dispatch to the provider's wire format
    - Normalizing failures into LLMError
    """

    def __init__(self, provider: AiProvider, api_key: str, purpose: AgentPurpose = "code"):
        self.provider = AiProvider(provider)
        self.purpose = purpose
        self.config: ModelConfig = get_model_config(self.provider, purpose)
        self._api_key = api_key

    def __repr__(self) -> str:
        # Never expose the key
        return f"LLMAdapter(provider={self.provider.value}, model={self.config.model})"

    async def chat(
        self,
        system_prompt: str,
        messages: List[ChatMessage],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> LLMResponse:
        """
        Run one inference.

        Raises:
            LLMError: provider failed (RateLimitError on 429)
        """
        # Import here to avoid circular imports
        from .providers import gemini, openai, anthropic

        provider_map = {
            "gemini": gemini.chat,
            "openai": openai.chat,
            "anthropic": anthropic.chat,
        }
        call_func = provider_map[self.config.wire]

        log("LLM", f"{self.provider.value}/{self.config.model} ({self.purpose}) - {len(messages)} messages, {len(tools or [])} tools")

        try:
            response = await call_func(
                api_key=self._api_key,
                model=self.config.model,
                system_prompt=system_prompt,
                messages=messages,
                tools=tools,
                max_tokens=self.config.max_tokens,
                base_url=self.config.base_url,
            )
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(self.provider.value.lower(), f"Provider error: {e}")

        if response.usage:
            log("LLM", f"Usage: {response.usage}")
        return response


def create_adapter(provider: AiProvider, api_key: str, purpose: AgentPurpose) -> LLMAdapter:
    return LLMAdapter(provider, api_key, purpose)
