# zyro/sandbox/health_monitor.py
"""
Health Monitor
Checks whether the generated app is being served inside a sandbox and,
if not, makes one bounded attempt to start it.
"""
import asyncio
from typing import Any, Dict, Optional

from zyro.core.config import settings
from zyro.core.exceptions import SandboxError
from zyro.core.logging import log


class HealthMonitor:
    """Liveness probe for the dev server on the sandbox's app port."""

    def __init__(
        self,
        gateway: Any,
        grace: Optional[float] = None,
        probes: Optional[int] = None,
    ):
        self.gateway = gateway
        self.port = settings.sandbox.app_port
        self.grace = settings.sandbox.startup_grace if grace is None else grace
        self.probes = settings.sandbox.startup_probes if probes is None else probes

    @property
    def probe_command(self) -> str:
        # curl prints 000 itself on connection failure; the echo covers a missing curl
        return f"curl -s -o /dev/null -w '%{{http_code}}' http://localhost:{self.port} || echo '000'"

    @property
    def start_command(self) -> str:
        return (
            f"cd {settings.sandbox.workdir} && "
            f"(npm run dev > {settings.sandbox.log_path} 2>&1 &) || true"
        )

    async def probe(self, sandbox_id: str) -> str:
        """HTTP status code of the local app as a string; "000" when unreachable."""
        try:
            result = await self.gateway.run_command(
                sandbox_id,
                self.probe_command,
                timeout=settings.sandbox.probe_timeout,
            )
        except SandboxError as e:
            log("HEALTH", f"⚠️ Probe failed for {sandbox_id}: {e}")
            return "000"

        status = (result.stdout or "").strip()
        # "000000" when curl and the echo both print
        return status[:3] if status else "000"

    async def start_server(self, sandbox_id: str) -> None:
        """Launch the dev server in the background. Best-effort."""
        try:
            await self.gateway.run_command(
                sandbox_id,
                self.start_command,
                timeout=settings.sandbox.start_timeout,
            )
        except SandboxError as e:
            log("HEALTH", f"⚠️ Could not start dev server in {sandbox_id}: {e}")

    async def ensure_serving(self, sandbox_id: str) -> Dict[str, Any]:
        """
        Probe, start if needed, then re-probe a bounded number of times.

        The public URL is returned even when the app never comes up.

        Returns:
            {"url": str, "serving": bool, "http_status": str}
        """
        url = await self.gateway.get_public_url(sandbox_id, self.port)

        status = await self.probe(sandbox_id)
        if status == "200":
            log("SANDBOX", f"✅ App already serving at {url}")
            return {"url": url, "serving": True, "http_status": status}

        log("SANDBOX", f"App not serving (status {status}), starting dev server in {sandbox_id}")
        await self.start_server(sandbox_id)

        for attempt in range(self.probes):
            await asyncio.sleep(self.grace)
            status = await self.probe(sandbox_id)
            if status == "200":
                log("SANDBOX", f"✅ App came up after {attempt + 1} probe(s)")
                return {"url": url, "serving": True, "http_status": status}

        log("SANDBOX", f"⚠️ App still not serving (status {status}); returning URL anyway")
        return {"url": url, "serving": False, "http_status": status}
