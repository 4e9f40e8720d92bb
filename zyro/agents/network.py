# zyro/agents/network.py
"""
Agent network: runs agents chosen by a router until it stops or the
iteration ceiling is hit.
"""
from typing import Any, Callable, List, Optional

from zyro.core.config import settings
from zyro.core.logging import log
from zyro.core.types import ChatMessage
from .agent import Agent
from .state import AgentState, NetworkState


Router = Callable[[AgentState], Optional[Agent]]


class AgentNetwork:
    """
    States: Running -> Terminated.

    Terminated when the router returns None or after max_iter invocations,
    whichever comes first. There is no other cancellation.
    """

    def __init__(
        self,
        name: str,
        router: Router,
        state: Optional[AgentState] = None,
        max_iter: Optional[int] = None,
    ):
        self.name = name
        self.router = router
        self.state = state or AgentState()
        self.max_iter = settings.workflow.max_iterations if max_iter is None else max_iter

    async def run(
        self,
        input: str,
        history: Optional[List[ChatMessage]] = None,
        step: Optional[Any] = None,
        project_id: Optional[str] = None,
    ) -> NetworkState:
        network = NetworkState(state=self.state)

        while network.iterations < self.max_iter:
            agent = self.router(network.state)
            if agent is None:
                break
            log("AGENT", f"[{self.name}] iteration {network.iterations + 1}/{self.max_iter} -> {agent.name}", project_id=project_id)
            result = await agent.run(input, history, network, step)
            network.results.append(result)

        if network.state.summary:
            log("AGENT", f"[{self.name}] finished after {network.iterations} iteration(s)", project_id=project_id)
        else:
            log("AGENT", f"⚠️ [{self.name}] stopped after {network.iterations} iteration(s) without a summary", project_id=project_id)
        return network
