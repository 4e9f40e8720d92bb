# zyro/sandbox/__init__.py
"""
Zyro - Remote Sandbox Gateway
Command execution, file I/O and liveness checks against E2B sandboxes
"""

from .sandbox_manager import SandboxManager, CommandResult, normalize_url
from .health_monitor import HealthMonitor
from .diagnostics import build_log_report, detect_advice, truncate_tail

# Lazy initialization - only create when first accessed
_sandbox_instance = None


def get_sandbox() -> SandboxManager:
    """Get the sandbox gateway singleton (lazy initialization)."""
    global _sandbox_instance
    if _sandbox_instance is None:
        _sandbox_instance = SandboxManager()
    return _sandbox_instance


__all__ = [
    "SandboxManager",
    "CommandResult",
    "HealthMonitor",
    "normalize_url",
    "build_log_report",
    "detect_advice",
    "truncate_tail",
    "get_sandbox",
]
