# zyro/api/messages.py
"""
Conversation routes: list turns, send a follow-up (starts planning),
approve a plan (starts generation).
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from zyro.core.logging import log
from zyro.core.types import MessageRole, MessageType
from zyro.db import get_store
from zyro.workflow import get_engine
from .deps import get_current_user, get_owned_project, require_api_key
from .serializers import message_to_dict


router = APIRouter(tags=["Messages"])

APPROVED_PLAN_VALUE = "Generate code based on the approved plan."


class CreateMessageRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=10000)


@router.get("/api/projects/{project_id}/messages")
async def list_messages(project_id: str, user_id: str = Depends(get_current_user)):
    store = get_store()
    await get_owned_project(store, project_id, user_id)
    messages = await store.find_messages(project_id, newest_first=False)
    return {"messages": [message_to_dict(m) for m in messages]}


@router.post("/api/projects/{project_id}/messages")
async def create_message(project_id: str, data: CreateMessageRequest, user_id: str = Depends(get_current_user)):
    store = get_store()
    await require_api_key(store, user_id)
    await get_owned_project(store, project_id, user_id)

    message = await store.create_message(
        project_id=project_id,
        content=data.value,
        role=MessageRole.USER,
        type=MessageType.RESULT,
    )
    run_id = await get_engine().send("code-agent/plan", {"projectId": project_id, "value": data.value})

    log("API", "Follow-up received, planning", project_id=project_id)
    return {**message_to_dict(message), "runId": run_id}


@router.post("/api/messages/{message_id}/approve")
async def approve_plan(message_id: str, user_id: str = Depends(get_current_user)):
    store = get_store()
    message = await store.find_message(message_id)
    if message is None:
        raise HTTPException(status_code=404, detail=f"Message not found: {message_id}")

    await get_owned_project(store, message.project_id, user_id)
    if message.type != MessageType.PLAN:
        raise HTTPException(status_code=400, detail="Only plan messages can be approved")

    run_id = await get_engine().send(
        "code-agent/generate",
        {"projectId": message.project_id, "value": APPROVED_PLAN_VALUE},
    )
    log("API", "Plan approved, generating", project_id=message.project_id)
    return {"success": True, "runId": run_id}
