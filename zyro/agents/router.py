# zyro/agents/router.py
"""
Routing policies: given the shared state, which agent runs next (None stops).
"""
from typing import Optional

from .agent import Agent
from .state import AgentResult, AgentState, NetworkState, last_assistant_text
from zyro.core.config import settings


def code_router(state: AgentState, agent: Agent) -> Optional[Agent]:
    """Keep calling the code agent until it has produced a summary."""
    if state.summary:
        return None
    return agent


def always(state: AgentState, agent: Agent) -> Optional[Agent]:
    """Route to the same agent every time; the iteration ceiling ends the loop."""
    return agent


def capture_summary(result: AgentResult, network: NetworkState) -> None:
    """Record the reply as the summary once it contains the termination marker."""
    text = last_assistant_text(result)
    if text and settings.workflow.termination_marker in text:
        network.state.summary = text


def capture_plan(result: AgentResult, network: NetworkState) -> None:
    """Any assistant text is the plan."""
    text = last_assistant_text(result)
    if text:
        network.state.summary = text
