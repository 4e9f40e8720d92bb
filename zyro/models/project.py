from datetime import datetime, timezone
from beanie import Document, Indexed
from pydantic import Field


class Project(Document):
    user_id: Indexed(str)
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "projects"
