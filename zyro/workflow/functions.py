# zyro/workflow/functions.py
"""
Workflow functions - one per event.

    code-agent/plan      project -> key -> history(5) -> planner -> PLAN message
    code-agent/generate  project -> key -> sandbox -> history(10) -> code network
                         -> title/response -> liveness -> RESULT or ERROR message
    code-agent/run       plan phase then generate phase in one run
    code-agent/fix       generate against an existing fragment's sandbox

Every side effect sits inside a named StepRunner step so a resumed run
replays completed steps instead of repeating them. Credential resolution
is read-only and runs outside the step log; the decrypted key is never
persisted.
"""
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from zyro.agents import (
    Agent,
    AgentNetwork,
    AgentState,
    always,
    capture_plan,
    capture_summary,
    code_router,
    first_output_text,
)
from zyro.core.config import settings
from zyro.core.exceptions import (
    FragmentNotFoundError,
    MissingCredentialError,
    ProjectNotFoundError,
    SandboxUnavailableError,
)
from zyro.core.logging import log, log_section
from zyro.core.types import AiProvider, ChatMessage, MessageRole, MessageType
from zyro.credentials import resolve_api_key
from zyro.db.store import FragmentDraft, Store
from zyro.llm import create_adapter
from zyro.llm.prompts import (
    CODE_AGENT_PROMPT,
    FRAGMENT_TITLE_PROMPT,
    PLANNING_PROMPT,
    RESPONSE_PROMPT,
)
from zyro.sandbox import HealthMonitor
from zyro.tools import create_sandbox_tools
from .checkpoint import StepRunner


@dataclass
class WorkflowContext:
    """Collaborators a workflow needs. Tests swap in fakes."""
    store: Store
    gateway: Any
    monitor: Optional[HealthMonitor] = None
    model_factory: Callable[..., Any] = field(default=create_adapter)

    def __post_init__(self):
        if self.monitor is None:
            self.monitor = HealthMonitor(self.gateway)


# =============================================================================
# SHARED STEPS
# =============================================================================

async def load_project(ctx: WorkflowContext, step: StepRunner, project_id: str) -> Dict[str, Any]:
    async def fetch() -> Dict[str, Any]:
        project = await ctx.store.find_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return {"id": project.id, "user_id": project.user_id}

    return await step.run("get-project", fetch)


async def load_credentials(
    ctx: WorkflowContext,
    step: StepRunner,
    project_id: str,
    user_id: str,
) -> Optional[Dict[str, str]]:
    """
    Resolved {"provider", "api_key"}, or None after persisting the
    missing-key ERROR message.
    """
    try:
        return await resolve_api_key(ctx.store, user_id)
    except MissingCredentialError as e:
        log("WORKFLOW", f"⚠️ {e.message}", project_id=project_id)

        async def save() -> Dict[str, Any]:
            message = await ctx.store.create_message(
                project_id=project_id,
                content=e.message,
                role=MessageRole.ASSISTANT,
                type=MessageType.ERROR,
                idempotency_key=step.idempotency_key("save-missing-api-key-message"),
            )
            return {"message_id": message.id}

        await step.run("save-missing-api-key-message", save)
        return None


async def load_history(store: Store, project_id: str, limit: int) -> List[Dict[str, str]]:
    """
    Last `limit` turns, oldest first. Empty turns are skipped; only
    ASSISTANT maps to the assistant role.
    """
    messages = await store.find_messages(project_id, limit=limit, newest_first=True)
    history = [
        {
            "role": "assistant" if m.role == MessageRole.ASSISTANT else "user",
            "content": m.content,
        }
        for m in messages
        if m.content
    ]
    history.reverse()
    return history


def to_chat(history: List[Dict[str, str]]) -> List[ChatMessage]:
    return [ChatMessage(role=h["role"], content=h["content"]) for h in history]


# =============================================================================
# PLAN
# =============================================================================

async def run_plan_phase(
    ctx: WorkflowContext,
    step: StepRunner,
    project_id: str,
    credentials: Dict[str, str],
    value: str,
) -> Dict[str, Any]:
    history = await step.run(
        "get-previous-message",
        lambda: load_history(ctx.store, project_id, settings.workflow.plan_history_limit),
    )

    provider = AiProvider(credentials["provider"])
    planner = Agent(
        name="planner",
        description="Writes an implementation plan for approval",
        system_prompt=PLANNING_PROMPT,
        model=ctx.model_factory(provider, credentials["api_key"], "code"),
        on_response=capture_plan,
    )
    network = AgentNetwork(
        name="planning-network",
        router=partial(always, agent=planner),
        max_iter=settings.workflow.plan_iterations,
    )
    result = await network.run(value, to_chat(history), step, project_id=project_id)
    summary = result.state.summary

    async def save() -> Dict[str, Any]:
        message = await ctx.store.create_message(
            project_id=project_id,
            content=summary or settings.workflow.plan_fallback,
            role=MessageRole.ASSISTANT,
            type=MessageType.PLAN,
            idempotency_key=step.idempotency_key("save-plan"),
        )
        return {"message_id": message.id}

    saved = await step.run("save-plan", save)
    return {"plan_message_id": saved["message_id"], "has_plan": bool(summary)}


async def plan_workflow(ctx: WorkflowContext, step: StepRunner, data: Dict[str, Any]) -> Dict[str, Any]:
    project_id = data["projectId"]
    log_section("WORKFLOW", "code-agent/plan", project_id=project_id)

    project = await load_project(ctx, step, project_id)
    credentials = await load_credentials(ctx, step, project_id, project["user_id"])
    if credentials is None:
        return {"missing_api_key": True}

    return await run_plan_phase(ctx, step, project_id, credentials, data.get("value", ""))


# =============================================================================
# GENERATE
# =============================================================================

async def acquire_sandbox(
    ctx: WorkflowContext,
    step: StepRunner,
    sandbox_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Reconnect when an id is given, otherwise create. A reclaimed sandbox is
    replaced by a fresh one and reported as recreated.
    """
    async def get_sandbox() -> Dict[str, Any]:
        if sandbox_id:
            try:
                await ctx.gateway.reconnect(sandbox_id)
                return {"sandbox_id": sandbox_id, "recreated": False}
            except SandboxUnavailableError as e:
                log("SANDBOX", f"⚠️ {e.message}; creating a replacement")
                return {"sandbox_id": await ctx.gateway.create(), "recreated": True}
        return {"sandbox_id": await ctx.gateway.create(), "recreated": False}

    return await step.run("get-sandbox", get_sandbox)


async def run_generate_phase(
    ctx: WorkflowContext,
    step: StepRunner,
    project_id: str,
    credentials: Dict[str, str],
    value: str,
    sandbox_id: Optional[str] = None,
    seed_files: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    sandbox = await acquire_sandbox(ctx, step, sandbox_id)
    sandbox_id = sandbox["sandbox_id"]

    async with ctx.gateway.lock(sandbox_id):
        if sandbox["recreated"] and seed_files:
            async def restore() -> int:
                for path, content in seed_files.items():
                    await ctx.gateway.write_file(sandbox_id, path, content)
                return len(seed_files)

            await step.run("restore-files", restore)

        history = await step.run(
            "get-previous-messages",
            lambda: load_history(ctx.store, project_id, settings.workflow.generate_history_limit),
        )

        provider = AiProvider(credentials["provider"])
        api_key = credentials["api_key"]

        code_agent = Agent(
            name="code-agent",
            description="An expert coding agent",
            system_prompt=CODE_AGENT_PROMPT,
            model=ctx.model_factory(provider, api_key, "code"),
            tools=create_sandbox_tools(ctx.gateway, sandbox_id),
            on_response=capture_summary,
        )
        network = AgentNetwork(
            name="coding-agent-network",
            router=partial(code_router, agent=code_agent),
            state=AgentState(files=dict(seed_files or {})),
            max_iter=settings.workflow.max_iterations,
        )
        result = await network.run(value, to_chat(history), step, project_id=project_id)
        state = result.state

        title_agent = Agent(
            name="fragment-title-generator",
            system_prompt=FRAGMENT_TITLE_PROMPT,
            model=ctx.model_factory(provider, api_key, "title"),
        )
        response_agent = Agent(
            name="response-generator",
            system_prompt=RESPONSE_PROMPT,
            model=ctx.model_factory(provider, api_key, "response"),
        )

        async def summarize(agent: Agent, fallback: str) -> str:
            # Nothing to summarize after a non-terminating loop
            if not state.summary:
                return fallback
            output = await agent.run(state.summary)
            return first_output_text(output, fallback)

        title = await step.run(
            "generate-fragment-title",
            lambda: summarize(title_agent, settings.workflow.title_fallback),
        )
        response = await step.run(
            "generate-response",
            lambda: summarize(response_agent, settings.workflow.response_fallback),
        )

        is_error = not state.summary or not state.files

        serving = await step.run("get-sandbox-url", lambda: ctx.monitor.ensure_serving(sandbox_id))
        sandbox_url = serving["url"]

    async def save() -> Dict[str, Any]:
        key = step.idempotency_key("save-result")
        if is_error:
            message = await ctx.store.create_message(
                project_id=project_id,
                content=settings.workflow.failure_message,
                role=MessageRole.ASSISTANT,
                type=MessageType.ERROR,
                idempotency_key=key,
            )
        else:
            message = await ctx.store.create_message(
                project_id=project_id,
                content=response,
                role=MessageRole.ASSISTANT,
                type=MessageType.RESULT,
                fragment=FragmentDraft(
                    sandbox_id=sandbox_id,
                    sandbox_url=sandbox_url,
                    title=title,
                    files=dict(state.files),
                ),
                idempotency_key=key,
            )
        return {
            "message_id": message.id,
            "fragment_id": message.fragment.id if message.fragment else None,
        }

    saved = await step.run("save-result", save)

    if is_error:
        log("WORKFLOW", f"❌ Generation produced no result (summary={bool(state.summary)}, files={len(state.files)})", project_id=project_id)
    else:
        log("WORKFLOW", f"✅ {title}: {len(state.files)} file(s) at {sandbox_url}", project_id=project_id)

    return {
        "message_id": saved["message_id"],
        "fragment_id": saved["fragment_id"],
        "sandbox_id": sandbox_id,
        "sandbox_url": sandbox_url,
        "title": title,
        "is_error": is_error,
    }


async def generate_workflow(ctx: WorkflowContext, step: StepRunner, data: Dict[str, Any]) -> Dict[str, Any]:
    project_id = data["projectId"]
    log_section("WORKFLOW", "code-agent/generate", project_id=project_id)

    project = await load_project(ctx, step, project_id)
    credentials = await load_credentials(ctx, step, project_id, project["user_id"])
    if credentials is None:
        return {"missing_api_key": True}

    return await run_generate_phase(
        ctx, step, project_id, credentials, data.get("value", ""),
        sandbox_id=data.get("sandboxId"),
    )


async def run_workflow(ctx: WorkflowContext, step: StepRunner, data: Dict[str, Any]) -> Dict[str, Any]:
    """Plan and generate in one run, without waiting for approval."""
    project_id = data["projectId"]
    log_section("WORKFLOW", "code-agent/run", project_id=project_id)

    project = await load_project(ctx, step, project_id)
    credentials = await load_credentials(ctx, step, project_id, project["user_id"])
    if credentials is None:
        return {"missing_api_key": True}

    value = data.get("value", "")
    plan = await run_plan_phase(ctx, step, project_id, credentials, value)
    result = await run_generate_phase(ctx, step, project_id, credentials, value, sandbox_id=data.get("sandboxId"))
    return {**plan, **result}


async def fix_workflow(ctx: WorkflowContext, step: StepRunner, data: Dict[str, Any]) -> Dict[str, Any]:
    """Follow-up request against an existing fragment's sandbox and files."""
    project_id = data["projectId"]
    fragment_id = data["fragmentId"]
    log_section("WORKFLOW", f"code-agent/fix ({fragment_id})", project_id=project_id)

    project = await load_project(ctx, step, project_id)

    async def get_fragment() -> Dict[str, Any]:
        fragment = await ctx.store.find_fragment(fragment_id)
        if fragment is None or fragment.project_id != project_id:
            raise FragmentNotFoundError(fragment_id)
        return {"sandbox_id": fragment.sandbox_id, "files": fragment.files}

    fragment = await step.run("get-fragment", get_fragment)

    credentials = await load_credentials(ctx, step, project_id, project["user_id"])
    if credentials is None:
        return {"missing_api_key": True}

    return await run_generate_phase(
        ctx, step, project_id, credentials, data.get("value", ""),
        sandbox_id=fragment["sandbox_id"],
        seed_files=fragment["files"],
    )


WORKFLOWS = {
    "code-agent/plan": plan_workflow,
    "code-agent/generate": generate_workflow,
    "code-agent/run": run_workflow,
    "code-agent/fix": fix_workflow,
}
