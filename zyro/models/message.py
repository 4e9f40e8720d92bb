from datetime import datetime, timezone
from typing import Dict, Optional
from beanie import Document, Indexed
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from zyro.core.types import MessageRole, MessageType


class Message(Document):
    project_id: Indexed(str)
    content: str
    role: MessageRole
    type: MessageType
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    # Set by workflow steps so a replayed step cannot append a duplicate
    idempotency_key: Optional[str] = None

    class Settings:
        name = "messages"
        indexes = [
            # Only string keys are unique; unkeyed messages store null
            IndexModel(
                [("idempotency_key", ASCENDING)],
                name="idempotency_key_unique",
                unique=True,
                partialFilterExpression={"idempotency_key": {"$type": "string"}},
            ),
        ]


class Fragment(Document):
    """Output of one successful generation. Immutable once written."""
    message_id: Indexed(str, unique=True)
    project_id: str
    sandbox_id: str
    sandbox_url: str
    title: str
    files: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "fragments"
