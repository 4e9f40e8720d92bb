# zyro/workflow/checkpoint.py
"""
Durable steps for workflow runs.

Every side-effecting phase of a run goes through StepRunner.run(). The
first execution records the step's output in the step log; when a crashed
run is resumed, recorded steps return their stored output instead of
running again, so sandboxes are not re-created and messages are not
re-appended.

Usage:
    step = StepRunner(run_id, store)
    project = await step.run("get-project", lambda: load_project(...))
"""
import json
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from zyro.core.logging import log


class StepRunner:
    """
    Step log client for one run.

    Step ids are derived from the step name and its call count within the
    run ("terminal", "terminal:2", ...), so a deterministic replay asks for
    the same ids in the same order.
    """

    def __init__(self, run_id: str, store: Any, project_id: Optional[str] = None):
        self.run_id = run_id
        self.store = store
        self.project_id = project_id
        self._counts: Dict[str, int] = {}
        self.executed = 0
        self.replayed = 0

    def _next_id(self, name: str) -> str:
        count = self._counts.get(name, 0) + 1
        self._counts[name] = count
        return name if count == 1 else f"{name}:{count}"

    def idempotency_key(self, name: str) -> str:
        """Key for writes that must land at most once per run."""
        return f"{self.run_id}:{name}"

    async def run(self, name: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        """
        Execute `fn` once per run.

        The output must be JSON-serialisable. It is normalised through JSON
        before being returned so a fresh execution and a replay yield the
        same shapes.
        """
        step_id = self._next_id(name)

        record = await self.store.find_step(self.run_id, step_id)
        if record is not None:
            self.replayed += 1
            log("STEP", f"↩️ {step_id} (replayed)", project_id=self.project_id)
            return record.output

        start = time.monotonic()
        output = await fn()
        output = json.loads(json.dumps(output))

        await self.store.save_step(self.run_id, step_id, output)
        self.executed += 1
        log("STEP", f"✅ {step_id} ({time.monotonic() - start:.1f}s)", project_id=self.project_id)
        return output
