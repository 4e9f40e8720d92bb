# tests/test_vault.py
"""
Credential vault: default provider resolution, key resolution and management.
"""
import pytest

from zyro.core.exceptions import DecryptionError, MissingCredentialError, UnknownProviderError
from zyro.core.types import AiProvider
from zyro.credentials import (
    clear_key,
    get_status,
    has_any_key,
    resolve_api_key,
    resolve_default_provider,
    set_default_provider,
    set_key,
)


@pytest.mark.asyncio
async def test_default_provider_falls_back_to_gemini(store):
    assert await resolve_default_provider(store, "nobody") == AiProvider.GEMINI


@pytest.mark.asyncio
async def test_default_provider_never_fails(store):
    async def broken(user_id):
        raise RuntimeError("db down")

    store.find_settings = broken
    assert await resolve_default_provider(store, "u") == AiProvider.GEMINI


@pytest.mark.asyncio
async def test_resolve_api_key_round_trip(store):
    await set_key(store, "u", "openai", "sk-openai-9876")
    await set_default_provider(store, "u", "OPENAI")

    resolved = await resolve_api_key(store, "u")
    assert resolved == {"provider": "OPENAI", "api_key": "sk-openai-9876"}


@pytest.mark.asyncio
async def test_missing_key_for_default_provider(store):
    # Key exists, but for a provider that is not the default
    await set_key(store, "u", "ANTHROPIC", "sk-ant-1111")
    await set_default_provider(store, "u", "GROK")

    with pytest.raises(MissingCredentialError) as exc:
        await resolve_api_key(store, "u")
    assert exc.value.provider == "GROK"
    assert "No API key configured for GROK" in exc.value.message


@pytest.mark.asyncio
async def test_tampered_record_raises_decryption_error(store):
    await set_key(store, "u", "GEMINI", "gm-key-0000")
    row = await store.find_credential("u", AiProvider.GEMINI)
    row.auth_tag = bytes(b ^ 0xFF for b in row.auth_tag)

    with pytest.raises(DecryptionError):
        await resolve_api_key(store, "u")


@pytest.mark.asyncio
async def test_first_key_sets_default_without_overwriting(store):
    await set_key(store, "u", "OPENROUTER", "or-key-aaaa")
    await set_key(store, "u", "OPENAI", "sk-key-bbbb")

    assert (await store.find_settings("u")).default_provider == AiProvider.OPENROUTER


@pytest.mark.asyncio
async def test_status_exposes_only_last4(store):
    await set_key(store, "u", "GEMINI", "gm-very-secret-4321")
    status = await get_status(store, "u")

    assert status["default_provider"] == "GEMINI"
    assert status["providers"]["GEMINI"]["configured"] is True
    assert status["providers"]["GEMINI"]["last4"] == "4321"
    assert status["providers"]["OPENAI"] == {"configured": False, "last4": None, "updated_at": None}
    assert "gm-very-secret-4321" not in str(status)


@pytest.mark.asyncio
async def test_clear_key(store):
    await set_key(store, "u", "GEMINI", "gm-key-0000")
    assert await has_any_key(store, "u") is True

    assert await clear_key(store, "u", "gemini") == 1
    assert await has_any_key(store, "u") is False
    assert await clear_key(store, "u", "gemini") == 0


@pytest.mark.asyncio
async def test_unknown_provider_rejected(store):
    with pytest.raises(UnknownProviderError):
        await set_key(store, "u", "mistral", "key")
