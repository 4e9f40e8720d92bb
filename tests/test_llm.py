# tests/test_llm.py
"""
Model registry, provider wire formats and the adapter's dispatch.
"""
import pytest
from unittest.mock import AsyncMock, patch

from zyro.core.exceptions import LLMError, RateLimitError
from zyro.core.types import AiProvider, ChatMessage, ToolCall
from zyro.llm import LLMAdapter, MODEL_REGISTRY, get_model_config
from zyro.llm.providers import anthropic, gemini, openai


CALL = ToolCall(id="call_1", name="terminal", arguments={"command": "ls"})

CONVERSATION = [
    ChatMessage(role="user", content="Build a page"),
    ChatMessage(role="assistant", content="", tool_calls=[CALL]),
    ChatMessage(role="tool", content="package.json", tool_call_id="call_1", name="terminal"),
]


class TestRegistry:

    def test_every_provider_is_mapped(self):
        assert set(MODEL_REGISTRY) == set(AiProvider)

    @pytest.mark.parametrize("provider", list(AiProvider))
    @pytest.mark.parametrize("purpose", ["code", "title", "response"])
    def test_every_purpose_resolves(self, provider, purpose):
        config = get_model_config(provider, purpose)
        assert config.provider == provider
        assert config.model

    def test_anthropic_uses_a_smaller_model_for_short_outputs(self):
        assert get_model_config(AiProvider.ANTHROPIC, "code").model != get_model_config(AiProvider.ANTHROPIC, "title").model

    def test_compatible_endpoints_use_openai_wire(self):
        grok = get_model_config(AiProvider.GROK, "code")
        openrouter = get_model_config(AiProvider.OPENROUTER, "response")
        assert (grok.wire, openrouter.wire) == ("openai", "openai")
        assert grok.base_url.startswith("https://api.x.ai")
        assert openrouter.base_url.startswith("https://openrouter.ai")


class TestOpenAIWire:

    def test_tool_round_trip_messages(self):
        payload = openai.build_messages("system", CONVERSATION)

        assert payload[0] == {"role": "system", "content": "system"}
        assert payload[2]["tool_calls"][0]["function"] == {"name": "terminal", "arguments": '{"command": "ls"}'}
        assert payload[3] == {"role": "tool", "tool_call_id": "call_1", "content": "package.json"}

    def test_parse_tool_calls(self):
        response = openai.parse_response({
            "choices": [{"message": {"content": None, "tool_calls": [
                {"id": "c9", "function": {"name": "readFile", "arguments": '{"files": ["a.ts"]}'}},
            ]}}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 3},
        })

        assert response.text == ""
        assert response.tool_calls == [ToolCall(id="c9", name="readFile", arguments={"files": ["a.ts"]})]
        assert response.usage == {"input": 10, "output": 3}

    def test_malformed_body(self):
        with pytest.raises(LLMError):
            openai.parse_response({"choices": []})


class TestAnthropicWire:

    def test_tool_results_travel_in_user_turns(self):
        messages = CONVERSATION + [ChatMessage(role="user", content="continue")]
        turns = anthropic.build_messages(messages)

        assert [t["role"] for t in turns] == ["user", "assistant", "user"]
        assert turns[2]["content"][0] == {"type": "tool_result", "tool_use_id": "call_1", "content": "package.json"}
        assert turns[2]["content"][1] == {"type": "text", "text": "continue"}

    def test_parse_mixed_blocks(self):
        response = anthropic.parse_response({"content": [
            {"type": "text", "text": "Writing files"},
            {"type": "tool_use", "id": "tu_1", "name": "terminal", "input": {"command": "npm i"}},
        ]})
        assert response.text == "Writing files"
        assert response.tool_calls[0].arguments == {"command": "npm i"}


class TestGeminiWire:

    def test_function_response_is_matched_by_name(self):
        contents = gemini.build_contents(CONVERSATION)

        assert [c["role"] for c in contents] == ["user", "model", "user"]
        assert contents[1]["parts"] == [{"functionCall": {"name": "terminal", "args": {"command": "ls"}}}]
        assert contents[2]["parts"][0]["functionResponse"]["name"] == "terminal"

    def test_generated_call_ids_are_unique(self):
        part = {"functionCall": {"name": "terminal", "args": {}}}
        response = gemini.parse_response({"candidates": [{"content": {"parts": [part, part]}}]})
        assert len({c.id for c in response.tool_calls}) == 2

    def test_no_candidates(self):
        with pytest.raises(LLMError):
            gemini.parse_response({"candidates": []})


class TestAdapter:

    def test_repr_hides_key(self):
        adapter = LLMAdapter(AiProvider.OPENAI, "sk-super-secret", "code")
        assert "sk-super-secret" not in repr(adapter)

    @pytest.mark.asyncio
    async def test_dispatches_compatible_provider_to_openai_wire(self):
        with patch("zyro.llm.providers.openai.chat", new=AsyncMock()) as chat:
            await LLMAdapter(AiProvider.OPENROUTER, "or-key", "title").chat("sys", [])

        kwargs = chat.await_args.kwargs
        assert kwargs["api_key"] == "or-key"
        assert kwargs["model"] == "mistralai/mistral-7b-instruct:free"
        assert kwargs["base_url"].startswith("https://openrouter.ai")

    @pytest.mark.asyncio
    async def test_unexpected_errors_become_llm_errors(self):
        with patch("zyro.llm.providers.gemini.chat", new=AsyncMock(side_effect=ValueError("boom"))):
            with pytest.raises(LLMError) as exc:
                await LLMAdapter(AiProvider.GEMINI, "gm", "code").chat("sys", [])
        assert "boom" in exc.value.message

    @pytest.mark.asyncio
    async def test_rate_limit_passes_through(self):
        with patch("zyro.llm.providers.anthropic.chat", new=AsyncMock(side_effect=RateLimitError("anthropic"))):
            with pytest.raises(RateLimitError):
                await LLMAdapter(AiProvider.ANTHROPIC, "sk-ant", "response").chat("sys", [])
