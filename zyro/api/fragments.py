# zyro/api/fragments.py
"""
Fragment routes: sandbox status check and fix requests.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from zyro.core.exceptions import FragmentNotFoundError, ProjectNotFoundError
from zyro.db import get_store
from zyro.sandbox import get_sandbox
from zyro.workflow import check_fragment_status, get_engine
from .deps import get_current_user, get_owned_project, require_api_key


router = APIRouter(prefix="/api/fragments", tags=["Fragments"])


class FixRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=10000)


async def _owned_fragment(fragment_id: str, user_id: str):
    store = get_store()
    fragment = await store.find_fragment(fragment_id)
    if fragment is None:
        raise FragmentNotFoundError(fragment_id)
    try:
        await get_owned_project(store, fragment.project_id, user_id)
    except ProjectNotFoundError:
        raise FragmentNotFoundError(fragment_id)
    return fragment


@router.get("/{fragment_id}/status")
async def fragment_status(fragment_id: str, user_id: str = Depends(get_current_user)):
    await _owned_fragment(fragment_id, user_id)
    return await check_fragment_status(get_store(), get_sandbox(), fragment_id)


@router.post("/{fragment_id}/fix")
async def fix_fragment(fragment_id: str, data: FixRequest, user_id: str = Depends(get_current_user)):
    fragment = await _owned_fragment(fragment_id, user_id)
    await require_api_key(get_store(), user_id)

    run_id = await get_engine().send(
        "code-agent/fix",
        {"projectId": fragment.project_id, "value": data.value, "fragmentId": fragment_id},
    )
    return {"success": True, "runId": run_id}
