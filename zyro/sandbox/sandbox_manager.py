# zyro/sandbox/sandbox_manager.py
"""
Sandbox Gateway - thin wrapper over the E2B remote execution sandbox.

Sandboxes are addressed by id everywhere so that any workflow step (or a
later request after a restart) can re-acquire the same environment.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from e2b import CommandExitException, NotFoundException, SandboxException, TimeoutException
from e2b_code_interpreter import AsyncSandbox

from zyro.core.config import settings
from zyro.core.exceptions import SandboxError, SandboxUnavailableError
from zyro.core.logging import log


OutputCallback = Callable[[str], None]


@dataclass
class CommandResult:
    """Outcome of one shell command. A non-zero exit is data, not an error."""
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0


class SandboxManager:
    """
    Gateway to remote sandboxes.

    Handles:
    - create / reconnect-by-id (with linear backoff on transient errors)
    - command execution with streamed output
    - file read/write
    - public URL resolution (always https)
    """

    def __init__(
        self,
        template: Optional[str] = None,
        timeout: Optional[int] = None,
        reconnect_retries: Optional[int] = None,
        reconnect_backoff: Optional[float] = None,
    ) -> None:
        self.template = template or settings.sandbox.template
        self.timeout = timeout or settings.sandbox.timeout
        self.reconnect_retries = settings.sandbox.reconnect_retries if reconnect_retries is None else reconnect_retries
        self.reconnect_backoff = settings.sandbox.reconnect_backoff if reconnect_backoff is None else reconnect_backoff

        self.active_sandboxes: Dict[str, AsyncSandbox] = {}
        self._last_used: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def create(self, template: Optional[str] = None) -> str:
        """Create a sandbox from a template and return its id."""
        template = template or self.template
        try:
            sbx = await AsyncSandbox.create(template=template, timeout=self.timeout)
            await sbx.set_timeout(self.timeout)
        except SandboxException as e:
            raise SandboxError("new", f"create from {template} failed: {e}")

        self._cache(sbx.sandbox_id, sbx)
        log("SANDBOX", f"✅ Created sandbox {sbx.sandbox_id} from {template} (timeout {self.timeout}s)")
        return sbx.sandbox_id

    async def reconnect(self, sandbox_id: str) -> str:
        """
        Re-acquire a sandbox by id.

        Transient failures are retried with linear backoff; a sandbox the
        service no longer knows about fails immediately.

        Raises:
            SandboxUnavailableError: reclaimed, expired or unreachable
        """
        self.active_sandboxes.pop(sandbox_id, None)
        last_error: Optional[Exception] = None

        for attempt in range(self.reconnect_retries + 1):
            if attempt > 0:
                delay = self.reconnect_backoff * attempt
                log("SANDBOX", f"🔄 Reconnect retry {attempt}/{self.reconnect_retries} for {sandbox_id} in {delay}s")
                await asyncio.sleep(delay)
            try:
                sbx = await AsyncSandbox.connect(sandbox_id)
                await sbx.set_timeout(self.timeout)
                self._cache(sandbox_id, sbx)
                log("SANDBOX", f"Reconnected to {sandbox_id}")
                return sandbox_id
            except NotFoundException as e:
                self.forget(sandbox_id)
                raise SandboxUnavailableError(sandbox_id, f"sandbox not found: {e}")
            except (SandboxException, TimeoutException) as e:
                last_error = e

        self.forget(sandbox_id)
        raise SandboxUnavailableError(sandbox_id, f"reconnect failed after {self.reconnect_retries + 1} attempts: {last_error}")

    async def _get(self, sandbox_id: str) -> AsyncSandbox:
        sbx = self.active_sandboxes.get(sandbox_id)
        if sbx is None:
            await self.reconnect(sandbox_id)
            sbx = self.active_sandboxes[sandbox_id]
        self._last_used[sandbox_id] = time.monotonic()
        return sbx

    def _cache(self, sandbox_id: str, sbx: AsyncSandbox) -> None:
        self._evict_idle()
        self.active_sandboxes[sandbox_id] = sbx
        self._last_used[sandbox_id] = time.monotonic()

    def _evict_idle(self) -> None:
        # Past the idle timeout the service has reclaimed the sandbox anyway
        cutoff = time.monotonic() - self.timeout
        for sandbox_id, last_used in list(self._last_used.items()):
            if last_used < cutoff:
                self.forget(sandbox_id)

    def forget(self, sandbox_id: str) -> None:
        """Drop the cached handle and, unless it is held, the lock."""
        self.active_sandboxes.pop(sandbox_id, None)
        self._last_used.pop(sandbox_id, None)
        lock = self._locks.get(sandbox_id)
        if lock is not None and not lock.locked():
            del self._locks[sandbox_id]

    def lock(self, sandbox_id: str) -> asyncio.Lock:
        """Per-sandbox lock serializing runs within this process."""
        if sandbox_id not in self._locks:
            # Idle locks of sandboxes no longer cached are not needed
            for other, lock in list(self._locks.items()):
                if other not in self.active_sandboxes and not lock.locked():
                    del self._locks[other]
            self._locks[sandbox_id] = asyncio.Lock()
        return self._locks[sandbox_id]

    # =========================================================================
    # COMMANDS & FILES
    # =========================================================================

    async def run_command(
        self,
        sandbox_id: str,
        command: str,
        timeout: Optional[float] = None,
        on_stdout: Optional[OutputCallback] = None,
        on_stderr: Optional[OutputCallback] = None,
    ) -> CommandResult:
        """
        Run a shell command, streaming output to the callbacks.

        Raises:
            SandboxError: transport failure or command timeout
        """
        sbx = await self._get(sandbox_id)
        timeout = settings.sandbox.command_timeout if timeout is None else timeout
        log("SANDBOX", f"$ {command[:120]}")

        try:
            result = await sbx.commands.run(
                command,
                on_stdout=on_stdout,
                on_stderr=on_stderr,
                timeout=timeout,
            )
        except CommandExitException as e:
            return CommandResult(stdout=e.stdout or "", stderr=e.stderr or "", exit_code=e.exit_code)
        except TimeoutException as e:
            raise SandboxError(sandbox_id, f"command timed out after {timeout}s: {e}")
        except SandboxException as e:
            raise SandboxError(sandbox_id, f"command failed: {e}")

        return CommandResult(stdout=result.stdout or "", stderr=result.stderr or "", exit_code=result.exit_code)

    async def write_file(self, sandbox_id: str, path: str, content: str) -> None:
        sbx = await self._get(sandbox_id)
        try:
            await sbx.files.write(path, content)
        except SandboxException as e:
            raise SandboxError(sandbox_id, f"write {path} failed: {e}")

    async def read_file(self, sandbox_id: str, path: str) -> str:
        sbx = await self._get(sandbox_id)
        try:
            return await sbx.files.read(path)
        except SandboxException as e:
            raise SandboxError(sandbox_id, f"read {path} failed: {e}")

    async def get_public_url(self, sandbox_id: str, port: Optional[int] = None) -> str:
        """Public URL for a served port, normalized to https."""
        sbx = await self._get(sandbox_id)
        host = sbx.get_host(port or settings.sandbox.app_port)
        return normalize_url(host)


def normalize_url(host: str) -> str:
    """Strip any scheme and force https."""
    for scheme in ("https://", "http://"):
        if host.startswith(scheme):
            host = host[len(scheme):]
            break
    return f"https://{host}"
