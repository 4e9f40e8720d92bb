# zyro/llm/registry.py
"""
Provider -> model registry.

Each provider maps a purpose ("code", "title", "response") to the concrete
model the agents use. The mapping must cover every AiProvider; this is
checked when the module is imported and again at application startup.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from zyro.core.types import AgentPurpose, AiProvider


@dataclass(frozen=True)
class ModelConfig:
    """What an adapter needs to reach one model."""
    provider: AiProvider
    wire: str                      # "openai" | "anthropic" | "gemini"
    model: str
    base_url: Optional[str] = None
    max_tokens: Optional[int] = None


XAI_BASE_URL = "https://api.x.ai/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


def _gemini(purpose: AgentPurpose) -> ModelConfig:
    return ModelConfig(AiProvider.GEMINI, "gemini", "gemini-2.0-flash")


def _openai(purpose: AgentPurpose) -> ModelConfig:
    return ModelConfig(AiProvider.OPENAI, "openai", "gpt-4o-mini")


def _grok(purpose: AgentPurpose) -> ModelConfig:
    return ModelConfig(AiProvider.GROK, "openai", "grok-2-latest", base_url=XAI_BASE_URL)


def _anthropic(purpose: AgentPurpose) -> ModelConfig:
    if purpose == "code":
        return ModelConfig(AiProvider.ANTHROPIC, "anthropic", "claude-3-5-sonnet-latest", max_tokens=4096)
    return ModelConfig(AiProvider.ANTHROPIC, "anthropic", "claude-3-5-haiku-latest", max_tokens=1024)


def _openrouter(purpose: AgentPurpose) -> ModelConfig:
    # Free-tier models
    model = "mistralai/devstral-2512:free" if purpose == "code" else "mistralai/mistral-7b-instruct:free"
    return ModelConfig(AiProvider.OPENROUTER, "openai", model, base_url=OPENROUTER_BASE_URL)


MODEL_REGISTRY: Dict[AiProvider, Callable[[AgentPurpose], ModelConfig]] = {
    AiProvider.GEMINI: _gemini,
    AiProvider.OPENAI: _openai,
    AiProvider.GROK: _grok,
    AiProvider.ANTHROPIC: _anthropic,
    AiProvider.OPENROUTER: _openrouter,
}


def validate_registry() -> None:
    """Fail loudly if any provider lacks a model mapping."""
    missing = [p.value for p in AiProvider if p not in MODEL_REGISTRY]
    if missing:
        raise RuntimeError(f"No model mapping for providers: {', '.join(missing)}")


def get_model_config(provider: AiProvider, purpose: AgentPurpose) -> ModelConfig:
    return MODEL_REGISTRY[AiProvider(provider)](purpose)


validate_registry()
