from datetime import datetime, timezone
from beanie import Document, Indexed
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from zyro.core.types import AiProvider


class UserAiProviderKey(Document):
    """Encrypted provider key. Only last4 is stored in clear."""
    user_id: str
    provider: AiProvider
    iv: bytes
    ciphertext: bytes
    auth_tag: bytes
    last4: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "user_ai_provider_keys"
        indexes = [
            IndexModel([("user_id", ASCENDING), ("provider", ASCENDING)], unique=True),
        ]


class UserAiSettings(Document):
    user_id: Indexed(str, unique=True)
    default_provider: AiProvider = AiProvider.GEMINI

    class Settings:
        name = "user_ai_settings"
