# zyro/workflow/engine.py
"""
Workflow engine - event intake, background execution and crash recovery.

send() records a WorkflowRun and schedules it on the event loop. At startup
resume_incomplete_runs() re-executes every run still marked "running";
completed steps are replayed from the step log, so side effects are not
repeated.
"""
import asyncio
import uuid
from typing import Any, Callable, Dict, Optional, Set

from zyro.core.config import settings
from zyro.core.exceptions import (
    DecryptionError,
    FragmentNotFoundError,
    InvalidInputError,
    ProjectNotFoundError,
    WorkflowError,
)
from zyro.core.logging import log, log_error
from zyro.core.types import MessageRole, MessageType
from zyro.lib.monitoring import record_run_finished, set_active_workflow_runs
from .checkpoint import StepRunner
from .functions import WORKFLOWS, WorkflowContext


REQUIRED_FIELDS = {
    "code-agent/plan": ("projectId",),
    "code-agent/generate": ("projectId",),
    "code-agent/run": ("projectId",),
    "code-agent/fix": ("projectId", "fragmentId"),
}


class WorkflowEngine:
    """
    Runs workflow functions for events.

    One run id executes at most once at a time in this process.
    """

    def __init__(self, context_factory: Callable[[], WorkflowContext]):
        self._context_factory = context_factory
        self._active: Set[str] = set()
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def active_runs(self) -> int:
        return len(self._active)

    async def send(self, event: str, data: Dict[str, Any]) -> str:
        """
        Accept an event and start its run in the background.

        Returns the run id. Raises InvalidInputError for unknown events or
        payloads missing required fields.
        """
        if event not in WORKFLOWS:
            raise InvalidInputError(f"Unknown event: {event}", {"event": event})
        missing = [f for f in REQUIRED_FIELDS[event] if not data.get(f)]
        if missing:
            raise InvalidInputError(f"Missing fields for {event}: {', '.join(missing)}", {"event": event})

        ctx = self._context_factory()
        run_id = uuid.uuid4().hex
        await ctx.store.create_run(run_id, event, data)
        log("WORKFLOW", f"📨 {event} -> run {run_id[:8]}", project_id=data.get("projectId"))

        self._schedule(run_id, event, data)
        return run_id

    def _schedule(self, run_id: str, event: str, data: Dict[str, Any]) -> None:
        async def _run_with_logging():
            try:
                await self.execute(run_id, event, data)
            except Exception as e:
                log_error("WORKFLOW", f"Run {run_id[:8]} crashed", e, project_id=data.get("projectId"))

        task = asyncio.create_task(_run_with_logging())
        self._tasks[run_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(run_id, None))

    async def wait(self, run_id: str) -> None:
        """Wait for a scheduled run to finish (no-op if not scheduled here)."""
        task = self._tasks.get(run_id)
        if task is not None:
            await task

    async def execute(self, run_id: str, event: str, data: Dict[str, Any]) -> Optional[str]:
        """
        Run (or resume) one workflow to completion and record its outcome.

        Returns the final status, or None when the run is already executing.
        """
        if run_id in self._active:
            log("WORKFLOW", f"⚠️ Run {run_id[:8]} already executing, ignoring duplicate", project_id=data.get("projectId"))
            return None

        self._active.add(run_id)
        set_active_workflow_runs(len(self._active))

        ctx = self._context_factory()
        project_id = data.get("projectId")
        step = StepRunner(run_id, ctx.store, project_id=project_id)
        status = "failed"

        try:
            workflow = WORKFLOWS.get(event)
            if workflow is None:
                raise WorkflowError(f"No workflow registered for {event}", {"event": event})
            result = await workflow(ctx, step, data)
            status = "completed"
            await ctx.store.finish_run(run_id, status, result=result)
            log("WORKFLOW", f"🏁 {event} completed ({step.executed} executed, {step.replayed} replayed)", project_id=project_id)

        except (ProjectNotFoundError, FragmentNotFoundError) as e:
            log_error("WORKFLOW", f"{event} aborted", e, project_id=project_id)
            await ctx.store.finish_run(run_id, status, error=e.message)

        except DecryptionError as e:
            log_error("WORKFLOW", f"{event} could not decrypt the user's key", e, project_id=project_id)
            await self._save_failure(ctx, step, project_id, settings.workflow.decryption_failure_message)
            await ctx.store.finish_run(run_id, status, error=e.message)

        except Exception as e:
            # Full detail for operators only; the user sees the fixed text
            log_error("WORKFLOW", f"{event} failed", e, project_id=project_id)
            await self._save_failure(ctx, step, project_id, settings.workflow.failure_message)
            await ctx.store.finish_run(run_id, status, error=f"{type(e).__name__}: {e}")

        finally:
            self._active.discard(run_id)
            set_active_workflow_runs(len(self._active))
            record_run_finished(event, status)

        return status

    async def _save_failure(self, ctx: WorkflowContext, step: StepRunner, project_id: Optional[str], content: str) -> None:
        if not project_id:
            return
        await ctx.store.create_message(
            project_id=project_id,
            content=content,
            role=MessageRole.ASSISTANT,
            type=MessageType.ERROR,
            idempotency_key=step.idempotency_key("run-failed"),
        )

    async def resume_incomplete_runs(self) -> int:
        """Re-execute runs left "running" by a previous process."""
        ctx = self._context_factory()
        runs = await ctx.store.list_runs("running")
        for run in runs:
            if run.run_id in self._active or run.run_id in self._tasks:
                continue
            log("WORKFLOW", f"🔄 Resuming run {run.run_id[:8]} ({run.event})", project_id=run.payload.get("projectId"))
            self._schedule(run.run_id, run.event, run.payload)
        return len(runs)


def default_context() -> WorkflowContext:
    from zyro.db import get_store
    from zyro.sandbox import get_sandbox
    return WorkflowContext(store=get_store(), gateway=get_sandbox())


# Lazy initialization - only create when first accessed
_engine_instance: Optional[WorkflowEngine] = None


def get_engine() -> WorkflowEngine:
    """Get the workflow engine singleton."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = WorkflowEngine(default_context)
    return _engine_instance


def set_engine(engine: Optional[WorkflowEngine]) -> None:
    """Replace the engine singleton (tests)."""
    global _engine_instance
    _engine_instance = engine
