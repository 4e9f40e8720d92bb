# zyro/db/store.py
"""
Persistence boundary.

Workflows, the credential vault and the API talk to a Store, never to the
driver. Records are plain dataclasses so callers do not depend on beanie.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from zyro.core.types import AiProvider, MessageRole, MessageType


@dataclass
class ProjectRecord:
    id: str
    user_id: str
    name: str
    created_at: datetime


@dataclass
class FragmentRecord:
    id: str
    message_id: str
    project_id: str
    sandbox_id: str
    sandbox_url: str
    title: str
    files: Dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass
class FragmentDraft:
    """Fragment fields supplied by the workflow; ids are assigned by the store."""
    sandbox_id: str
    sandbox_url: str
    title: str
    files: Dict[str, str] = field(default_factory=dict)


@dataclass
class MessageRecord:
    id: str
    project_id: str
    content: str
    role: MessageRole
    type: MessageType
    created_at: datetime
    fragment: Optional[FragmentRecord] = None


@dataclass
class CredentialRecord:
    user_id: str
    provider: AiProvider
    iv: bytes
    ciphertext: bytes
    auth_tag: bytes
    last4: str
    updated_at: Optional[datetime] = None


@dataclass
class SettingsRecord:
    user_id: str
    default_provider: AiProvider


@dataclass
class RunRecord:
    run_id: str
    event: str
    payload: Dict[str, Any]
    status: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass
class StepRecord:
    run_id: str
    step_id: str
    output: Any = None


class Store(ABC):
    """Create/read/update calls consumed by the core."""

    # Projects
    @abstractmethod
    async def find_project(self, project_id: str) -> Optional[ProjectRecord]: ...

    @abstractmethod
    async def create_project(self, user_id: str, name: str) -> ProjectRecord: ...

    @abstractmethod
    async def list_projects(self, user_id: str) -> List[ProjectRecord]: ...

    # Messages / fragments
    @abstractmethod
    async def create_message(
        self,
        project_id: str,
        content: str,
        role: MessageRole,
        type: MessageType,
        fragment: Optional[FragmentDraft] = None,
        idempotency_key: Optional[str] = None,
    ) -> MessageRecord: ...

    @abstractmethod
    async def find_messages(
        self,
        project_id: str,
        limit: Optional[int] = None,
        newest_first: bool = True,
    ) -> List[MessageRecord]: ...

    @abstractmethod
    async def find_message(self, message_id: str) -> Optional[MessageRecord]: ...

    @abstractmethod
    async def find_fragment(self, fragment_id: str) -> Optional[FragmentRecord]: ...

    # Credentials
    @abstractmethod
    async def find_credential(self, user_id: str, provider: AiProvider) -> Optional[CredentialRecord]: ...

    @abstractmethod
    async def list_credentials(self, user_id: str) -> List[CredentialRecord]: ...

    @abstractmethod
    async def upsert_credential(self, record: CredentialRecord) -> None: ...

    @abstractmethod
    async def delete_credential(self, user_id: str, provider: AiProvider) -> int: ...

    @abstractmethod
    async def count_credentials(self, user_id: str) -> int: ...

    @abstractmethod
    async def find_settings(self, user_id: str) -> Optional[SettingsRecord]: ...

    @abstractmethod
    async def ensure_settings(self, user_id: str, default_provider: AiProvider) -> SettingsRecord:
        """Create the settings row if absent. Never overwrites."""

    @abstractmethod
    async def set_default_provider(self, user_id: str, provider: AiProvider) -> SettingsRecord: ...

    # Workflow runs / step log
    @abstractmethod
    async def create_run(self, run_id: str, event: str, payload: Dict[str, Any]) -> RunRecord: ...

    @abstractmethod
    async def find_run(self, run_id: str) -> Optional[RunRecord]: ...

    @abstractmethod
    async def list_runs(self, status: str) -> List[RunRecord]: ...

    @abstractmethod
    async def finish_run(
        self,
        run_id: str,
        status: str,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None: ...

    @abstractmethod
    async def find_step(self, run_id: str, step_id: str) -> Optional[StepRecord]: ...

    @abstractmethod
    async def save_step(self, run_id: str, step_id: str, output: Any) -> None: ...
