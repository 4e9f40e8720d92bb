"""
LLM Providers - one module per wire format.
"""
from . import gemini, openai, anthropic

__all__ = ["gemini", "openai", "anthropic"]
