# tests/conftest.py
"""
Shared pytest fixtures for Zyro tests.

Provides:
- In-memory Store (no MongoDB)
- Scripted LLM client (no provider calls)
- Fake sandbox gateway (no E2B)
- Master encryption key
- HTTP client against the FastAPI app
"""
import asyncio
import itertools
import pytest
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field, replace

from zyro.core.config import settings
from zyro.core.exceptions import SandboxError, SandboxUnavailableError
from zyro.core.types import AiProvider, LLMResponse, MessageRole, MessageType, ToolCall
from zyro.db.store import (
    CredentialRecord,
    FragmentRecord,
    MessageRecord,
    ProjectRecord,
    RunRecord,
    SettingsRecord,
    StepRecord,
    Store,
)
from zyro.sandbox import CommandResult, HealthMonitor


TEST_MASTER_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════
# IN-MEMORY STORE
# ═══════════════════════════════════════════════════════

class InMemoryStore(Store):
    """Store backed by dicts. Mirrors BeanieStore semantics."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.projects: Dict[str, ProjectRecord] = {}
        self.messages: List[MessageRecord] = []
        self.fragments: Dict[str, FragmentRecord] = {}
        self.idempotency: Dict[str, str] = {}
        self.credentials: Dict[tuple, CredentialRecord] = {}
        self.settings_rows: Dict[str, SettingsRecord] = {}
        self.runs: Dict[str, RunRecord] = {}
        self.steps: Dict[tuple, StepRecord] = {}

    def _id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    # Projects
    async def find_project(self, project_id):
        return self.projects.get(project_id)

    async def create_project(self, user_id, name):
        project = ProjectRecord(id=self._id("p"), user_id=user_id, name=name, created_at=_now())
        self.projects[project.id] = project
        return project

    async def list_projects(self, user_id):
        return [p for p in self.projects.values() if p.user_id == user_id]

    # Messages / fragments
    async def create_message(self, project_id, content, role, type, fragment=None, idempotency_key=None):
        if idempotency_key and idempotency_key in self.idempotency:
            return await self.find_message(self.idempotency[idempotency_key])

        message = MessageRecord(
            id=self._id("m"),
            project_id=project_id,
            content=content,
            role=role,
            type=type,
            created_at=_now(),
        )
        if fragment is not None:
            record = FragmentRecord(
                id=self._id("f"),
                message_id=message.id,
                project_id=project_id,
                sandbox_id=fragment.sandbox_id,
                sandbox_url=fragment.sandbox_url,
                title=fragment.title,
                files=dict(fragment.files),
                created_at=_now(),
            )
            self.fragments[record.id] = record
            message.fragment = record

        self.messages.append(message)
        if idempotency_key:
            self.idempotency[idempotency_key] = message.id
        return message

    async def find_messages(self, project_id, limit=None, newest_first=True):
        rows = [m for m in self.messages if m.project_id == project_id]
        if newest_first:
            rows = list(reversed(rows))
        return rows[:limit] if limit else rows

    async def find_message(self, message_id):
        return next((m for m in self.messages if m.id == message_id), None)

    async def find_fragment(self, fragment_id):
        return self.fragments.get(fragment_id)

    # Credentials
    async def find_credential(self, user_id, provider):
        return self.credentials.get((user_id, AiProvider(provider)))

    async def list_credentials(self, user_id):
        return [c for (uid, _), c in self.credentials.items() if uid == user_id]

    async def upsert_credential(self, record):
        self.credentials[(record.user_id, record.provider)] = replace(record, updated_at=_now())

    async def delete_credential(self, user_id, provider):
        return 1 if self.credentials.pop((user_id, AiProvider(provider)), None) else 0

    async def count_credentials(self, user_id):
        return len(await self.list_credentials(user_id))

    async def find_settings(self, user_id):
        return self.settings_rows.get(user_id)

    async def ensure_settings(self, user_id, default_provider):
        if user_id not in self.settings_rows:
            self.settings_rows[user_id] = SettingsRecord(user_id=user_id, default_provider=default_provider)
        return self.settings_rows[user_id]

    async def set_default_provider(self, user_id, provider):
        self.settings_rows[user_id] = SettingsRecord(user_id=user_id, default_provider=provider)
        return self.settings_rows[user_id]

    # Runs / steps
    async def create_run(self, run_id, event, payload):
        run = RunRecord(run_id=run_id, event=event, payload=dict(payload), status="running", started_at=_now())
        self.runs[run_id] = run
        return run

    async def find_run(self, run_id):
        return self.runs.get(run_id)

    async def list_runs(self, status):
        return [r for r in self.runs.values() if r.status == status]

    async def finish_run(self, run_id, status, result=None, error=None):
        run = self.runs.get(run_id)
        if run is not None:
            run.status = status
            run.result = result
            run.error = error
            run.completed_at = _now()

    async def find_step(self, run_id, step_id):
        return self.steps.get((run_id, step_id))

    async def save_step(self, run_id, step_id, output):
        self.steps.setdefault((run_id, step_id), StepRecord(run_id=run_id, step_id=step_id, output=output))

    # Helpers
    def messages_of(self, project_id: str, type: Optional[MessageType] = None) -> List[MessageRecord]:
        return [m for m in self.messages if m.project_id == project_id and (type is None or m.type == type)]


# ═══════════════════════════════════════════════════════
# SCRIPTED LLM
# ═══════════════════════════════════════════════════════

def text_reply(text: str) -> LLMResponse:
    return LLMResponse(text=text)


def tool_reply(name: str, arguments: Dict[str, Any], text: str = "", call_id: Optional[str] = None) -> LLMResponse:
    return LLMResponse(text=text, tool_calls=[ToolCall(id=call_id or f"call_{name}", name=name, arguments=arguments)])


def write_files_reply(files: Dict[str, str], call_id: str = "call_write") -> LLMResponse:
    return tool_reply(
        "createOrUpdateFile",
        {"files": [{"path": p, "content": c} for p, c in files.items()]},
        call_id=call_id,
    )


class ScriptedLLM:
    """
    Returns queued responses in order. When the queue runs dry it keeps
    returning `default`.
    """

    def __init__(self, responses: Optional[List[LLMResponse]] = None, default: Optional[LLMResponse] = None):
        self.responses = list(responses or [])
        self.default = default or LLMResponse(text="Still working.")
        self.calls: List[Dict[str, Any]] = []

    async def chat(self, system_prompt, messages, tools=None):
        self.calls.append({"system_prompt": system_prompt, "messages": list(messages), "tools": tools})
        if self.responses:
            return self.responses.pop(0)
        return self.default


@dataclass
class ModelFactory:
    """model_factory(provider, api_key, purpose) returning one ScriptedLLM per purpose."""
    by_purpose: Dict[str, ScriptedLLM] = field(default_factory=dict)
    requested: List[tuple] = field(default_factory=list)

    def __call__(self, provider, api_key, purpose):
        self.requested.append((AiProvider(provider), api_key, purpose))
        return self.by_purpose.setdefault(purpose, ScriptedLLM())


# ═══════════════════════════════════════════════════════
# FAKE SANDBOX
# ═══════════════════════════════════════════════════════

class FakeSandbox:
    """
    Sandbox gateway double.

    `http_status` is what the liveness curl prints; set `start_serves` to flip
    it to 200 once the dev server start command runs.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self.files: Dict[str, Dict[str, str]] = {}
        self.commands: List[tuple] = []
        self.created: List[str] = []
        self.reconnected: List[str] = []
        self.unavailable: set = set()
        self.http_status = "200"
        self.start_serves = False
        self.command_outputs: Dict[str, CommandResult] = {}
        self.fail_reads: set = set()
        self.fail_writes: set = set()
        self._locks: Dict[str, asyncio.Lock] = {}

    async def create(self, template=None):
        sandbox_id = f"sbx-{next(self._ids)}"
        self.files[sandbox_id] = {}
        self.created.append(sandbox_id)
        return sandbox_id

    async def reconnect(self, sandbox_id):
        if sandbox_id in self.unavailable or sandbox_id not in self.files:
            raise SandboxUnavailableError(sandbox_id)
        self.reconnected.append(sandbox_id)
        return sandbox_id

    def lock(self, sandbox_id):
        return self._locks.setdefault(sandbox_id, asyncio.Lock())

    async def run_command(self, sandbox_id, command, timeout=None, on_stdout=None, on_stderr=None):
        self.commands.append((sandbox_id, command))
        if "curl" in command:
            return CommandResult(stdout=self.http_status)
        if "npm run dev" in command:
            if self.start_serves:
                self.http_status = "200"
            return CommandResult()
        result = self.command_outputs.get(command, CommandResult(stdout=f"ran: {command}"))
        if on_stdout and result.stdout:
            on_stdout(result.stdout)
        if on_stderr and result.stderr:
            on_stderr(result.stderr)
        return result

    async def write_file(self, sandbox_id, path, content):
        if path in self.fail_writes:
            raise SandboxError(sandbox_id, f"write {path} failed")
        self.files.setdefault(sandbox_id, {})[path] = content

    async def read_file(self, sandbox_id, path):
        if path in self.fail_reads or path not in self.files.get(sandbox_id, {}):
            raise SandboxError(sandbox_id, f"read {path} failed")
        return self.files[sandbox_id][path]

    async def get_public_url(self, sandbox_id, port=None):
        return f"https://{port or 3000}-{sandbox_id}.e2b.app"


# ═══════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def master_key(monkeypatch):
    """Every test gets a valid master key unless it removes it."""
    monkeypatch.setattr(settings.security, "encryption_key", TEST_MASTER_KEY)
    return TEST_MASTER_KEY


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def sandbox():
    return FakeSandbox()


@pytest.fixture
def models():
    return ModelFactory()


@pytest.fixture
def monitor(sandbox):
    return HealthMonitor(sandbox, grace=0, probes=2)


@pytest.fixture
def context(store, sandbox, monitor, models):
    from zyro.workflow.functions import WorkflowContext
    return WorkflowContext(store=store, gateway=sandbox, monitor=monitor, model_factory=models)


@pytest.fixture
def engine(context):
    from zyro.workflow.engine import WorkflowEngine
    return WorkflowEngine(lambda: context)


@pytest.fixture
async def user_with_key(store):
    """A user holding a GEMINI key, and a project they own."""
    from zyro.credentials import set_key
    await set_key(store, "user-1", AiProvider.GEMINI, "gm-secret-key-1234")
    project = await store.create_project("user-1", "todo-app")
    await store.create_message(project.id, "Build a todo app", MessageRole.USER, MessageType.RESULT)
    return {"user_id": "user-1", "project_id": project.id}


@pytest.fixture
async def async_client(store, engine):
    """HTTP client against the app with the store and engine swapped for fakes."""
    from httpx import ASGITransport, AsyncClient
    from zyro.db import set_store
    from zyro.workflow.engine import set_engine
    from zyro.main import app

    set_store(store)
    set_engine(engine)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        set_store(None)
        set_engine(None)
