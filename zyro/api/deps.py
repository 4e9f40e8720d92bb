# zyro/api/deps.py
"""
Shared route dependencies.
"""
from typing import Optional
from fastapi import Header, HTTPException

from zyro.credentials import has_any_key
from zyro.db import get_store
from zyro.db.store import ProjectRecord, Store
from zyro.core.exceptions import ProjectNotFoundError


async def get_current_user(x_user_id: Optional[str] = Header(None)) -> str:
    """Authenticated user id. Identity is established upstream and forwarded in X-User-Id."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


async def require_api_key(store: Store, user_id: str) -> None:
    if not await has_any_key(store, user_id):
        raise HTTPException(
            status_code=412,
            detail="No AI API key configured. Go to Settings → API Keys.",
        )


async def get_owned_project(store: Store, project_id: str, user_id: str) -> ProjectRecord:
    """Project owned by the user; someone else's project is reported as missing."""
    project = await store.find_project(project_id)
    if project is None or project.user_id != user_id:
        raise ProjectNotFoundError(project_id)
    return project


__all__ = ["get_current_user", "require_api_key", "get_owned_project", "get_store"]
