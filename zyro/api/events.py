# zyro/api/events.py
"""
Raw event intake and run inspection.
"""
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from zyro.db import get_store
from zyro.workflow import get_engine
from .deps import get_current_user, get_owned_project
from .serializers import run_to_dict


router = APIRouter(tags=["Events"])


class EventRequest(BaseModel):
    name: str
    data: Dict[str, Any] = Field(default_factory=dict)


@router.post("/api/events", status_code=202)
async def send_event(event: EventRequest, user_id: str = Depends(get_current_user)):
    project_id = event.data.get("projectId")
    if project_id:
        await get_owned_project(get_store(), project_id, user_id)
    run_id = await get_engine().send(event.name, event.data)
    return {"runId": run_id}


@router.get("/api/runs/{run_id}")
async def get_run(run_id: str, user_id: str = Depends(get_current_user)):
    store = get_store()
    run = await store.find_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")

    project_id = run.payload.get("projectId")
    if project_id:
        await get_owned_project(store, project_id, user_id)
    return run_to_dict(run)
