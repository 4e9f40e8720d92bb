# zyro/tools/sandbox_tools.py
"""
Agent tool set backed by the sandbox gateway.

- terminal: run a shell command, return stdout
- createOrUpdateFile: write files and merge them into AgentState.files
- readFile: read files and return them as one JSON string

Each call executes inside its own durable step when a StepRunner is given.
Failures are turned into results the agent can read; they never abort the loop.
"""
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

from zyro.core.logging import log, log_error
from zyro.agents.state import AgentState
from .specs import ToolSpec


async def _in_step(step: Optional[Any], name: str, fn: Callable[[], Awaitable[Any]]) -> Any:
    if step is None:
        return await fn()
    return await step.run(name, fn)


def terminal_tool(gateway: Any, sandbox_id: str) -> ToolSpec:

    async def handler(arguments: Dict[str, Any], state: AgentState, step: Optional[Any] = None) -> Optional[str]:
        command = arguments.get("command", "")

        async def execute() -> Optional[str]:
            stdout: List[str] = []
            stderr: List[str] = []
            try:
                result = await gateway.run_command(
                    sandbox_id,
                    command,
                    on_stdout=lambda data: stdout.append(str(data)),
                    on_stderr=lambda data: stderr.append(str(data)),
                )
            except Exception as e:
                log_error("TOOL", f"terminal failed: {command}\nstdout: {''.join(stdout)}\nstderr: {''.join(stderr)}", e)
                return None

            if result.exit_code != 0:
                log("TOOL", f"❌ terminal exit {result.exit_code}: {command}\nstdout: {result.stdout}\nstderr: {result.stderr}")
                return None
            return "".join(stdout) or result.stdout

        return await _in_step(step, "terminal", execute)

    return ToolSpec(
        name="terminal",
        description="Use the terminal to run commands",
        handler=handler,
        parameters={
            "type": "object",
            "properties": {"command": {"type": "string"}},
            "required": ["command"],
        },
    )


def create_or_update_file_tool(gateway: Any, sandbox_id: str) -> ToolSpec:

    async def handler(arguments: Dict[str, Any], state: AgentState, step: Optional[Any] = None) -> Any:
        files = arguments.get("files") or []

        async def execute() -> Any:
            try:
                # Read-modify-write against the live state so earlier calls in
                # the same iteration are visible.
                updated = dict(state.files)
                for f in files:
                    await gateway.write_file(sandbox_id, f["path"], f["content"])
                    updated[f["path"]] = f["content"]
                return updated
            except Exception as e:
                log_error("TOOL", "createOrUpdateFile failed", e)
                return f"Error: {e}"

        result = await _in_step(step, "createOrUpdateFile", execute)
        if isinstance(result, dict):
            state.files.update(result)
            log("TOOL", f"📝 {len(files)} file(s) written, {len(state.files)} total")
        return result

    return ToolSpec(
        name="createOrUpdateFile",
        description="Create or update files in the sandbox",
        handler=handler,
        parameters={
            "type": "object",
            "properties": {
                "files": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "path": {"type": "string"},
                            "content": {"type": "string"},
                        },
                        "required": ["path", "content"],
                    },
                },
            },
            "required": ["files"],
        },
    )


def read_file_tool(gateway: Any, sandbox_id: str) -> ToolSpec:

    async def handler(arguments: Dict[str, Any], state: AgentState, step: Optional[Any] = None) -> str:
        paths = arguments.get("files") or []

        async def execute() -> str:
            try:
                contents = []
                for path in paths:
                    content = await gateway.read_file(sandbox_id, path)
                    contents.append({"path": path, "content": content})
                return json.dumps(contents)
            except Exception as e:
                log_error("TOOL", "readFile failed", e)
                return f"Error: {e}"

        return await _in_step(step, "readFile", execute)

    return ToolSpec(
        name="readFile",
        description="Read files from the sandbox",
        handler=handler,
        parameters={
            "type": "object",
            "properties": {"files": {"type": "array", "items": {"type": "string"}}},
            "required": ["files"],
        },
    )


def create_sandbox_tools(gateway: Any, sandbox_id: str) -> List[ToolSpec]:
    """Tool set bound to one sandbox."""
    return [
        terminal_tool(gateway, sandbox_id),
        create_or_update_file_tool(gateway, sandbox_id),
        read_file_tool(gateway, sandbox_id),
    ]
