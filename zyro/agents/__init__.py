"""
Agents - LLM roles, the routed agent network and its shared state.
"""
from .state import AgentState, AgentResult, NetworkState, first_output_text
from .agent import Agent
from .network import AgentNetwork
from .router import code_router, always, capture_summary, capture_plan

__all__ = [
    "AgentState",
    "AgentResult",
    "NetworkState",
    "first_output_text",
    "Agent",
    "AgentNetwork",
    "code_router",
    "always",
    "capture_summary",
    "capture_plan",
]
