# zyro/sandbox/diagnostics.py
"""
Dev-server log heuristics for the status check.
"""
from typing import List, Optional

from zyro.core.config import settings


HYDRATION_SIGNATURES = (
    "Hydration failed",
    "hydration mismatch",
    "did not match. Server:",
)

CLIENT_BOUNDARY_SIGNATURES = (
    "You're importing a component that needs",
    "only works in Client Components",
    "only works in a Client Component",
    "Add the \"use client\" directive",
)

HYDRATION_ADVICE = (
    "Hint: a hydration mismatch means the server-rendered HTML differs from the first client render. "
    "Avoid reading Date.now(), Math.random(), window or localStorage during render; move them into useEffect."
)

CLIENT_BOUNDARY_ADVICE = (
    "Hint: a component that uses hooks, event handlers or browser APIs is rendered as a Server Component. "
    "Add \"use client\" as the first line of that file."
)


def detect_advice(log_text: str) -> List[str]:
    """Advice lines for every known error signature in the log."""
    advice = []
    if any(sig in log_text for sig in HYDRATION_SIGNATURES):
        advice.append(HYDRATION_ADVICE)
    if any(sig in log_text for sig in CLIENT_BOUNDARY_SIGNATURES):
        advice.append(CLIENT_BOUNDARY_ADVICE)
    return advice


def truncate_tail(text: str, limit: Optional[int] = None) -> str:
    """Keep the trailing `limit` characters, prefixed with "..." when cut."""
    limit = settings.sandbox.status_log_chars if limit is None else limit
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]


def build_log_report(log_text: str, limit: Optional[int] = None) -> str:
    """
    Signatures are matched on the full log; advice is appended and the
    result is cut to the trailing window.
    """
    advice = detect_advice(log_text)
    report = log_text
    if advice:
        report = report.rstrip("\n") + "\n\n" + "\n".join(advice)
    return truncate_tail(report, limit)
