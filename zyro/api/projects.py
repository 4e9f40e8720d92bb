# zyro/api/projects.py
"""
Project routes.

Creating a project stores the prompt as the first USER message and starts
the combined plan+generate run.
"""
import re
import uuid
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from zyro.core.logging import log
from zyro.core.types import MessageRole, MessageType
from zyro.db import get_store
from zyro.workflow import get_engine
from .deps import get_current_user, get_owned_project, require_api_key
from .serializers import project_to_dict


router = APIRouter(prefix="/api/projects", tags=["Projects"])


class CreateProjectRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=10000)


def generate_slug(prompt: str) -> str:
    """URL-safe, human-readable project name from the prompt."""
    text = prompt[:50].lower()

    filler_words = ['a', 'an', 'the', 'create', 'build', 'make', 'i want', 'please', 'for me']
    for word in filler_words:
        text = re.sub(rf'\b{word}\b', '', text)

    slug = re.sub(r'[^a-z0-9]+', '-', text)
    slug = re.sub(r'-+', '-', slug).strip('-')[:30].strip('-')

    if len(slug) < 3:
        slug = "project"
    return f"{slug}-{uuid.uuid4().hex[:4]}"


@router.post("")
async def create_project(data: CreateProjectRequest, user_id: str = Depends(get_current_user)):
    store = get_store()
    await require_api_key(store, user_id)

    project = await store.create_project(user_id, generate_slug(data.value))
    await store.create_message(
        project_id=project.id,
        content=data.value,
        role=MessageRole.USER,
        type=MessageType.RESULT,
    )
    run_id = await get_engine().send("code-agent/run", {"projectId": project.id, "value": data.value})

    log("API", f"Project {project.name} created", project_id=project.id)
    return {**project_to_dict(project), "runId": run_id}


@router.get("")
async def list_projects(user_id: str = Depends(get_current_user)):
    projects = await get_store().list_projects(user_id)
    return {"projects": [project_to_dict(p) for p in projects]}


@router.get("/{project_id}")
async def get_project(project_id: str, user_id: str = Depends(get_current_user)):
    project = await get_owned_project(get_store(), project_id, user_id)
    return project_to_dict(project)
