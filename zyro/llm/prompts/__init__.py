# zyro/llm/prompts/__init__.py
"""
Agent prompts - organized by agent.
"""
from .code import CODE_AGENT_PROMPT
from .planning import PLANNING_PROMPT
from .fragment import FRAGMENT_TITLE_PROMPT, RESPONSE_PROMPT

__all__ = [
    "CODE_AGENT_PROMPT",
    "PLANNING_PROMPT",
    "FRAGMENT_TITLE_PROMPT",
    "RESPONSE_PROMPT",
]
