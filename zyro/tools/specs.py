# zyro/tools/specs.py
"""
Tool definitions exposed to agents.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from zyro.agents.state import AgentState


# handler(arguments, state, step_runner) -> tool output
ToolHandler = Callable[[Dict[str, Any], AgentState, Optional[Any]], Awaitable[Any]]


@dataclass
class ToolSpec:
    name: str
    description: str
    handler: ToolHandler
    parameters: Dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

    def schema(self) -> Dict[str, Any]:
        """Provider-neutral declaration passed to the LLM adapter."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    async def invoke(self, arguments: Dict[str, Any], state: AgentState, step: Optional[Any] = None) -> Any:
        return await self.handler(arguments, state, step)
