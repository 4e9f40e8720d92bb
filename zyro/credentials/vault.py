# zyro/credentials/vault.py
"""
Credential vault.

Per-user, per-provider encrypted API keys plus a per-user default provider.
"""
import asyncio
from typing import Any, Dict, Optional

from zyro.core.config import settings
from zyro.core.exceptions import MissingCredentialError, UnknownProviderError
from zyro.core.logging import log
from zyro.core.types import AiProvider
from zyro.db.store import CredentialRecord, Store
from zyro.lib.secrets import decrypt_api_key, encrypt_api_key


def parse_provider(value: Any) -> AiProvider:
    """Coerce a provider id, rejecting anything outside the supported set."""
    try:
        return AiProvider(str(value).upper())
    except ValueError:
        raise UnknownProviderError(str(value))


def fallback_provider() -> AiProvider:
    try:
        return AiProvider(settings.llm.default_provider)
    except ValueError:
        return AiProvider.GEMINI


async def resolve_default_provider(store: Store, user_id: str) -> AiProvider:
    """User's configured default provider, or the fixed fallback. Never fails."""
    try:
        row = await store.find_settings(user_id)
    except Exception as e:
        log("VAULT", f"⚠️ Could not read settings for user, using fallback: {e}")
        return fallback_provider()
    return row.default_provider if row else fallback_provider()


async def resolve_api_key(store: Store, user_id: str) -> Dict[str, str]:
    """
    Resolve the default provider and decrypt its key.

    Returns {"provider": ..., "api_key": ...}.
    Raises MissingCredentialError when no key is stored for that provider.
    """
    provider = await resolve_default_provider(store, user_id)
    row = await store.find_credential(user_id, provider)

    if row is None:
        log("VAULT", f"No {provider.value} key stored for user")
        raise MissingCredentialError(provider.value)

    api_key = decrypt_api_key(row.iv, row.ciphertext, row.auth_tag)
    log("VAULT", f"Resolved {provider.value} key ending in {row.last4}")
    return {"provider": provider.value, "api_key": api_key}


async def has_any_key(store: Store, user_id: str) -> bool:
    return await store.count_credentials(user_id) > 0


async def get_status(store: Store, user_id: str) -> Dict[str, Any]:
    """Default provider and per-provider configured/last4. Never exposes the key."""
    settings_row, keys = await asyncio.gather(
        store.find_settings(user_id),
        store.list_credentials(user_id),
    )
    by_provider = {k.provider: k for k in keys}

    providers = {}
    for provider in AiProvider:
        row = by_provider.get(provider)
        providers[provider.value] = {
            "configured": row is not None,
            "last4": row.last4 if row else None,
            "updated_at": row.updated_at.isoformat() if row and row.updated_at else None,
        }

    return {
        "default_provider": (settings_row.default_provider if settings_row else fallback_provider()).value,
        "providers": providers,
    }


async def set_key(store: Store, user_id: str, provider: Any, api_key: str) -> None:
    """Encrypt and upsert. First key also creates the settings row with this provider as default."""
    provider = parse_provider(provider)
    encrypted = encrypt_api_key(api_key)

    await store.upsert_credential(CredentialRecord(
        user_id=user_id,
        provider=provider,
        iv=encrypted.iv,
        ciphertext=encrypted.ciphertext,
        auth_tag=encrypted.auth_tag,
        last4=encrypted.last4,
    ))
    await store.ensure_settings(user_id, provider)
    log("VAULT", f"Stored {provider.value} key ending in {encrypted.last4}")


async def clear_key(store: Store, user_id: str, provider: Any) -> int:
    provider = parse_provider(provider)
    deleted = await store.delete_credential(user_id, provider)
    log("VAULT", f"Cleared {provider.value} key ({deleted} row(s))")
    return deleted


async def set_default_provider(store: Store, user_id: str, provider: Any) -> Optional[str]:
    provider = parse_provider(provider)
    row = await store.set_default_provider(user_id, provider)
    return row.default_provider.value
