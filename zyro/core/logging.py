# zyro/core/logging.py
import os
import sys
from datetime import datetime
from typing import Any, Optional


# Only these scopes are shown at INFO level.
# Everything else is gated behind ZYRO_DEBUG.
INFO_SCOPES = {
    "WORKFLOW",     # Run lifecycle
    "STEP",         # Durable step execution / replay
    "AGENT",        # Agent network iterations
    "TOOL",         # Tool invocations
    "SANDBOX",      # Remote sandbox calls
    "VAULT",        # Credential resolution
    "LLM",          # Provider boundary
    "API",          # HTTP routes
    "DB",           # Persistence
}

DEBUG_MODE = os.getenv("ZYRO_DEBUG", "false").lower() == "true"


def log(scope: str, message: str, data: Any = None, project_id: Optional[str] = None) -> None:
    """
    Unified logging function for Zyro.

    Only INFO_SCOPES are shown by default.
    Set ZYRO_DEBUG=true to see all scopes.
    """
    if not DEBUG_MODE and scope not in INFO_SCOPES:
        return

    timestamp = datetime.now().strftime("%H:%M:%S")
    prefix = f"[{timestamp}] [{scope}]"

    if project_id:
        prefix += f" [{project_id[:8]}]"

    print(f"{prefix} {message}")

    if data:
        print(f"  Data: {data}")

    sys.stdout.flush()


def log_section(scope: str, title: str, project_id: Optional[str] = None) -> None:
    """
    Log a section header with visual separator.
    """
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"\n{'='*60}")
    if project_id:
        print(f"[{timestamp}] [{scope}] [{project_id[:8]}] {title}")
    else:
        print(f"[{timestamp}] [{scope}] {title}")
    print(f"{'='*60}")
    sys.stdout.flush()


def log_error(scope: str, message: str, error: BaseException, project_id: Optional[str] = None) -> None:
    """
    Log a failure with its exception type. Operator-facing only.
    """
    log(scope, f"❌ {message}: {type(error).__name__}: {error}", project_id=project_id)
