# zyro/workflow/__init__.py
"""
Workflow module - durable event-driven agent pipelines.

Note: Imports are done lazily so that importing zyro.workflow does not pull
in the sandbox SDK and LLM providers until they are needed.
"""

def __getattr__(name):
    """Lazy import to avoid circular dependencies."""
    if name in ("WorkflowEngine", "get_engine", "set_engine"):
        from . import engine
        return getattr(engine, name)
    elif name in ("WorkflowContext", "WORKFLOWS"):
        from . import functions
        return getattr(functions, name)
    elif name == "StepRunner":
        from .checkpoint import StepRunner
        return StepRunner
    elif name == "check_fragment_status":
        from .status import check_fragment_status
        return check_fragment_status

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "WorkflowEngine",
    "get_engine",
    "set_engine",
    "WorkflowContext",
    "WORKFLOWS",
    "StepRunner",
    "check_fragment_status",
]
