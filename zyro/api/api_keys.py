# zyro/api/api_keys.py
"""
Per-user AI provider key management. Keys are write-only: responses carry
at most the last four characters.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from zyro.core.logging import log
from zyro.credentials import clear_key, get_status, parse_provider, set_default_provider, set_key
from zyro.db import get_store
from .deps import get_current_user


router = APIRouter(prefix="/api/api-keys", tags=["API Keys"])


class SetKeyRequest(BaseModel):
    api_key: str = Field(..., min_length=1)


class DefaultProviderRequest(BaseModel):
    provider: str


@router.get("")
async def api_key_status(user_id: str = Depends(get_current_user)):
    return await get_status(get_store(), user_id)


@router.put("/default")
async def update_default_provider(data: DefaultProviderRequest, user_id: str = Depends(get_current_user)):
    provider = parse_provider(data.provider)
    await set_default_provider(get_store(), user_id, provider)
    return {"success": True, "default_provider": provider.value}


@router.put("/{provider}")
async def save_api_key(provider: str, data: SetKeyRequest, user_id: str = Depends(get_current_user)):
    parsed = parse_provider(provider)
    await set_key(get_store(), user_id, parsed, data.api_key)
    log("API", f"{parsed.value} key saved")
    return {"success": True}


@router.delete("/{provider}")
async def delete_api_key(provider: str, user_id: str = Depends(get_current_user)):
    parsed = parse_provider(provider)
    deleted = await clear_key(get_store(), user_id, parsed)
    return {"success": True, "deleted": deleted}
