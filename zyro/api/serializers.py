# zyro/api/serializers.py
"""
Record -> JSON shapes returned by the API.
"""
from typing import Any, Dict, Optional

from zyro.db.store import FragmentRecord, MessageRecord, ProjectRecord, RunRecord


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def project_to_dict(project: ProjectRecord) -> Dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "userId": project.user_id,
        "createdAt": _iso(project.created_at),
    }


def fragment_to_dict(fragment: FragmentRecord) -> Dict[str, Any]:
    return {
        "id": fragment.id,
        "messageId": fragment.message_id,
        "sandboxId": fragment.sandbox_id,
        "sandboxUrl": fragment.sandbox_url,
        "title": fragment.title,
        "files": fragment.files,
        "createdAt": _iso(fragment.created_at),
    }


def message_to_dict(message: MessageRecord) -> Dict[str, Any]:
    return {
        "id": message.id,
        "projectId": message.project_id,
        "content": message.content,
        "role": message.role.value,
        "type": message.type.value,
        "createdAt": _iso(message.created_at),
        "fragment": fragment_to_dict(message.fragment) if message.fragment else None,
    }


def run_to_dict(run: RunRecord) -> Dict[str, Any]:
    return {
        "id": run.run_id,
        "event": run.event,
        "status": run.status,
        "result": run.result,
        "error": run.error,
        "startedAt": _iso(run.started_at),
        "completedAt": _iso(run.completed_at),
    }
