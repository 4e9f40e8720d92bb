# zyro/db/beanie_store.py
"""
MongoDB implementation of the Store, backed by beanie documents.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from beanie import PydanticObjectId
from beanie.operators import In
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from zyro.core.logging import log
from zyro.core.types import AiProvider, MessageRole, MessageType
from zyro.models import (
    Fragment,
    Message,
    Project,
    UserAiProviderKey,
    UserAiSettings,
    WorkflowRun,
    WorkflowStepRecord,
)
from .store import (
    CredentialRecord,
    FragmentDraft,
    FragmentRecord,
    MessageRecord,
    ProjectRecord,
    RunRecord,
    SettingsRecord,
    StepRecord,
    Store,
)


def _object_id(value: str) -> Optional[PydanticObjectId]:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        return None


def _project(doc: Project) -> ProjectRecord:
    return ProjectRecord(id=str(doc.id), user_id=doc.user_id, name=doc.name, created_at=doc.created_at)


def _fragment(doc: Fragment) -> FragmentRecord:
    return FragmentRecord(
        id=str(doc.id),
        message_id=doc.message_id,
        project_id=doc.project_id,
        sandbox_id=doc.sandbox_id,
        sandbox_url=doc.sandbox_url,
        title=doc.title,
        files=dict(doc.files),
        created_at=doc.created_at,
    )


def _message(doc: Message, fragment: Optional[Fragment] = None) -> MessageRecord:
    return MessageRecord(
        id=str(doc.id),
        project_id=doc.project_id,
        content=doc.content,
        role=doc.role,
        type=doc.type,
        created_at=doc.created_at,
        fragment=_fragment(fragment) if fragment else None,
    )


def _credential(doc: UserAiProviderKey) -> CredentialRecord:
    return CredentialRecord(
        user_id=doc.user_id,
        provider=doc.provider,
        iv=doc.iv,
        ciphertext=doc.ciphertext,
        auth_tag=doc.auth_tag,
        last4=doc.last4,
        updated_at=doc.updated_at,
    )


def _run(doc: WorkflowRun) -> RunRecord:
    return RunRecord(
        run_id=doc.run_id,
        event=doc.event,
        payload=dict(doc.payload),
        status=doc.status,
        result=doc.result,
        error=doc.error,
        started_at=doc.started_at,
        completed_at=doc.completed_at,
    )


class BeanieStore(Store):
    """Store over MongoDB. Requires connect_db() to have initialised beanie."""

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def find_project(self, project_id: str) -> Optional[ProjectRecord]:
        oid = _object_id(project_id)
        if oid is None:
            return None
        doc = await Project.get(oid)
        return _project(doc) if doc else None

    async def create_project(self, user_id: str, name: str) -> ProjectRecord:
        doc = Project(user_id=user_id, name=name)
        await doc.insert()
        return _project(doc)

    async def list_projects(self, user_id: str) -> List[ProjectRecord]:
        docs = await Project.find(Project.user_id == user_id).sort(-Project.created_at).to_list()
        return [_project(d) for d in docs]

    # ------------------------------------------------------------------
    # Messages / fragments
    # ------------------------------------------------------------------

    async def create_message(
        self,
        project_id: str,
        content: str,
        role: MessageRole,
        type: MessageType,
        fragment: Optional[FragmentDraft] = None,
        idempotency_key: Optional[str] = None,
    ) -> MessageRecord:
        doc = None
        if idempotency_key:
            doc = await Message.find_one(Message.idempotency_key == idempotency_key)
            if doc:
                log("DB", f"Message for key {idempotency_key} already exists, reusing", project_id=project_id)

        if doc is None:
            doc = Message(
                project_id=project_id,
                content=content,
                role=role,
                type=type,
                idempotency_key=idempotency_key,
            )
            try:
                await doc.insert()
            except DuplicateKeyError:
                if not idempotency_key:
                    raise
                # Lost a race with a concurrent replay of the same step
                doc = await Message.find_one(Message.idempotency_key == idempotency_key)

        fragment_doc = None
        if fragment is not None:
            fragment_doc = await Fragment.find_one(Fragment.message_id == str(doc.id))
            if fragment_doc is None:
                fragment_doc = Fragment(
                    message_id=str(doc.id),
                    project_id=project_id,
                    sandbox_id=fragment.sandbox_id,
                    sandbox_url=fragment.sandbox_url,
                    title=fragment.title,
                    files=dict(fragment.files),
                )
                await fragment_doc.insert()

        return _message(doc, fragment_doc)

    async def find_messages(
        self,
        project_id: str,
        limit: Optional[int] = None,
        newest_first: bool = True,
    ) -> List[MessageRecord]:
        order = -Message.created_at if newest_first else +Message.created_at
        query = Message.find(Message.project_id == project_id).sort(order)
        if limit:
            query = query.limit(limit)
        docs = await query.to_list()

        ids = [str(d.id) for d in docs]
        fragments = await Fragment.find(In(Fragment.message_id, ids)).to_list() if ids else []
        by_message = {f.message_id: f for f in fragments}

        return [_message(d, by_message.get(str(d.id))) for d in docs]

    async def find_message(self, message_id: str) -> Optional[MessageRecord]:
        oid = _object_id(message_id)
        if oid is None:
            return None
        doc = await Message.get(oid)
        if doc is None:
            return None
        fragment = await Fragment.find_one(Fragment.message_id == message_id)
        return _message(doc, fragment)

    async def find_fragment(self, fragment_id: str) -> Optional[FragmentRecord]:
        oid = _object_id(fragment_id)
        if oid is None:
            return None
        doc = await Fragment.get(oid)
        return _fragment(doc) if doc else None

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def find_credential(self, user_id: str, provider: AiProvider) -> Optional[CredentialRecord]:
        doc = await UserAiProviderKey.find_one(
            UserAiProviderKey.user_id == user_id,
            UserAiProviderKey.provider == provider,
        )
        return _credential(doc) if doc else None

    async def list_credentials(self, user_id: str) -> List[CredentialRecord]:
        docs = await UserAiProviderKey.find(UserAiProviderKey.user_id == user_id).to_list()
        return [_credential(d) for d in docs]

    async def upsert_credential(self, record: CredentialRecord) -> None:
        doc = await UserAiProviderKey.find_one(
            UserAiProviderKey.user_id == record.user_id,
            UserAiProviderKey.provider == record.provider,
        )
        if doc is None:
            doc = UserAiProviderKey(
                user_id=record.user_id,
                provider=record.provider,
                iv=record.iv,
                ciphertext=record.ciphertext,
                auth_tag=record.auth_tag,
                last4=record.last4,
            )
            await doc.insert()
            return

        doc.iv = record.iv
        doc.ciphertext = record.ciphertext
        doc.auth_tag = record.auth_tag
        doc.last4 = record.last4
        doc.updated_at = datetime.now(timezone.utc)
        await doc.save()

    async def delete_credential(self, user_id: str, provider: AiProvider) -> int:
        result = await UserAiProviderKey.find(
            UserAiProviderKey.user_id == user_id,
            UserAiProviderKey.provider == provider,
        ).delete()
        return result.deleted_count if result else 0

    async def count_credentials(self, user_id: str) -> int:
        return await UserAiProviderKey.find(UserAiProviderKey.user_id == user_id).count()

    async def find_settings(self, user_id: str) -> Optional[SettingsRecord]:
        doc = await UserAiSettings.find_one(UserAiSettings.user_id == user_id)
        return SettingsRecord(user_id=doc.user_id, default_provider=doc.default_provider) if doc else None

    async def ensure_settings(self, user_id: str, default_provider: AiProvider) -> SettingsRecord:
        doc = await UserAiSettings.find_one(UserAiSettings.user_id == user_id)
        if doc is None:
            doc = UserAiSettings(user_id=user_id, default_provider=default_provider)
            try:
                await doc.insert()
            except DuplicateKeyError:
                doc = await UserAiSettings.find_one(UserAiSettings.user_id == user_id)
        return SettingsRecord(user_id=doc.user_id, default_provider=doc.default_provider)

    async def set_default_provider(self, user_id: str, provider: AiProvider) -> SettingsRecord:
        doc = await UserAiSettings.find_one(UserAiSettings.user_id == user_id)
        if doc is None:
            doc = UserAiSettings(user_id=user_id, default_provider=provider)
            await doc.insert()
        else:
            doc.default_provider = provider
            await doc.save()
        return SettingsRecord(user_id=doc.user_id, default_provider=doc.default_provider)

    # ------------------------------------------------------------------
    # Workflow runs / step log
    # ------------------------------------------------------------------

    async def create_run(self, run_id: str, event: str, payload: Dict[str, Any]) -> RunRecord:
        doc = WorkflowRun(run_id=run_id, event=event, payload=payload)
        await doc.insert()
        return _run(doc)

    async def find_run(self, run_id: str) -> Optional[RunRecord]:
        doc = await WorkflowRun.find_one(WorkflowRun.run_id == run_id)
        return _run(doc) if doc else None

    async def list_runs(self, status: str) -> List[RunRecord]:
        docs = await WorkflowRun.find(WorkflowRun.status == status).sort(+WorkflowRun.started_at).to_list()
        return [_run(d) for d in docs]

    async def finish_run(
        self,
        run_id: str,
        status: str,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        doc = await WorkflowRun.find_one(WorkflowRun.run_id == run_id)
        if doc is None:
            log("DB", f"⚠️ finish_run: unknown run {run_id}")
            return
        doc.status = status
        doc.result = result
        doc.error = error
        doc.completed_at = datetime.now(timezone.utc)
        await doc.save()

    async def find_step(self, run_id: str, step_id: str) -> Optional[StepRecord]:
        doc = await WorkflowStepRecord.find_one(
            WorkflowStepRecord.run_id == run_id,
            WorkflowStepRecord.step_id == step_id,
        )
        return StepRecord(run_id=doc.run_id, step_id=doc.step_id, output=doc.output) if doc else None

    async def save_step(self, run_id: str, step_id: str, output: Any) -> None:
        try:
            await WorkflowStepRecord(run_id=run_id, step_id=step_id, output=output).insert()
        except DuplicateKeyError:
            log("DB", f"Step {step_id} of run {run_id[:8]} already recorded")
