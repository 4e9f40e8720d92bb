"""
LLM module - Unified interface for all LLM providers.
"""
from .adapter import LLMAdapter, create_adapter
from .registry import MODEL_REGISTRY, ModelConfig, get_model_config, validate_registry

__all__ = [
    "LLMAdapter",
    "create_adapter",
    "MODEL_REGISTRY",
    "ModelConfig",
    "get_model_config",
    "validate_registry",
]
