# zyro/workflow/status.py
"""
Status check for a generated fragment's sandbox.

Not an event workflow: it runs inline for the request and has no side
effects besides reading the sandbox.
"""
import asyncio
from typing import Any, Dict

from zyro.core.config import settings
from zyro.core.exceptions import FragmentNotFoundError, SandboxError, SandboxUnavailableError
from zyro.core.logging import log
from zyro.db.store import Store
from zyro.sandbox import HealthMonitor, build_log_report


async def check_fragment_status(
    store: Store,
    gateway: Any,
    fragment_id: str,
    monitor: HealthMonitor = None,
) -> Dict[str, Any]:
    """
    Reconnect to the fragment's sandbox, probe the app, read the dev-server
    log and return it with advice appended and trimmed to the trailing window.

    A sandbox held by a running generate/fix phase is reported as busy
    instead of blocking the request until that run ends.

    Raises:
        FragmentNotFoundError: unknown fragment id
    """
    fragment = await store.find_fragment(fragment_id)
    if fragment is None:
        raise FragmentNotFoundError(fragment_id)

    monitor = monitor or HealthMonitor(gateway)
    sandbox_id = fragment.sandbox_id

    report: Dict[str, Any] = {
        "fragment_id": fragment_id,
        "sandbox_id": sandbox_id,
        "sandbox_url": fragment.sandbox_url,
        "available": False,
        "busy": False,
        "serving": False,
        "http_status": "000",
        "logs": "",
    }

    lock = gateway.lock(sandbox_id)
    try:
        await asyncio.wait_for(lock.acquire(), timeout=settings.sandbox.status_lock_timeout)
    except asyncio.TimeoutError:
        log("SANDBOX", f"⏳ Status check: {sandbox_id} is busy with a running generation")
        report["busy"] = True
        return report

    try:
        try:
            await gateway.reconnect(sandbox_id)
        except SandboxUnavailableError as e:
            log("SANDBOX", f"⚠️ Status check: {e.message}")
            return report

        status = await monitor.probe(sandbox_id)

        try:
            raw_log = await gateway.read_file(sandbox_id, settings.sandbox.log_path)
        except SandboxError as e:
            log("SANDBOX", f"⚠️ Could not read {settings.sandbox.log_path}: {e.message}")
            raw_log = ""

        sandbox_url = await gateway.get_public_url(sandbox_id, settings.sandbox.app_port)
    finally:
        lock.release()

    report.update({
        "available": True,
        "serving": status == "200",
        "http_status": status,
        "sandbox_url": sandbox_url,
        "logs": build_log_report(raw_log),
    })
    return report
