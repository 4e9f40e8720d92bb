from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional
from beanie import Document, Indexed
from pydantic import Field
from pymongo import ASCENDING, IndexModel


RunStatus = Literal["running", "completed", "failed"]


class WorkflowRun(Document):
    """One durable execution triggered by one event."""
    run_id: Indexed(str, unique=True)
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    status: RunStatus = "running"
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    class Settings:
        name = "workflow_runs"


class WorkflowStepRecord(Document):
    """Memoized output of a completed step. Replayed instead of re-executed."""
    run_id: str
    step_id: str
    output: Any = None
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "workflow_steps"
        indexes = [
            IndexModel([("run_id", ASCENDING), ("step_id", ASCENDING)], unique=True),
        ]
