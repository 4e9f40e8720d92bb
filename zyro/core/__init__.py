"""
Core module - configuration, logging, exceptions and shared types.
"""
from .config import settings
from .exceptions import (
    ZyroError,
    WorkflowError,
    MissingCredentialError,
    InvalidInputError,
    MissingMasterKeyError,
    DecryptionError,
    LLMError,
    RateLimitError,
    UnknownProviderError,
    SandboxError,
    SandboxUnavailableError,
    ProjectNotFoundError,
    FragmentNotFoundError,
    PersistenceError,
)
from .types import (
    AiProvider,
    MessageRole,
    MessageType,
    ChatMessage,
    ToolCall,
    LLMResponse,
    OutputSegment,
)

__all__ = [
    "settings",
    "ZyroError",
    "WorkflowError",
    "MissingCredentialError",
    "InvalidInputError",
    "MissingMasterKeyError",
    "DecryptionError",
    "LLMError",
    "RateLimitError",
    "UnknownProviderError",
    "SandboxError",
    "SandboxUnavailableError",
    "ProjectNotFoundError",
    "FragmentNotFoundError",
    "PersistenceError",
    "AiProvider",
    "MessageRole",
    "MessageType",
    "ChatMessage",
    "ToolCall",
    "LLMResponse",
    "OutputSegment",
]
