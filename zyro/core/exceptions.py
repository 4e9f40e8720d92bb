# zyro/core/exceptions.py
"""
Custom exceptions for the application.
"""
from typing import Optional, Dict, Any


class ZyroError(Exception):
    """Base exception for all Zyro errors."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class WorkflowError(ZyroError):
    """Workflow execution error."""
    pass


class MissingCredentialError(ZyroError):
    """No API key stored for the user's default provider. Expected, recoverable."""
    code = "MISSING_USER_API_KEY"

    def __init__(self, provider: str, message: Optional[str] = None):
        super().__init__(
            message or f"No API key configured for {provider}. Set one in Settings → API Keys.",
            {"provider": provider}
        )
        self.provider = provider


class InvalidInputError(ZyroError):
    """Caller supplied unusable input (e.g. a blank API key)."""
    pass


class MissingMasterKeyError(ZyroError):
    """Server-held encryption key is absent or malformed."""
    pass


class DecryptionError(ZyroError):
    """Authentication tag did not verify: tampered record or wrong master key."""
    pass


class LLMError(ZyroError):
    """LLM provider error."""
    def __init__(self, provider: str, message: str):
        super().__init__(
            f"LLM error ({provider}): {message}",
            {"provider": provider}
        )
        self.provider = provider


class RateLimitError(LLMError):
    """Provider rejected the call with 429."""
    def __init__(self, provider: str):
        super().__init__(provider, "Rate limited (429)")


class UnknownProviderError(ZyroError):
    """Provider id outside the supported set."""
    def __init__(self, provider: str):
        super().__init__(f"Unknown provider: {provider}", {"provider": provider})
        self.provider = provider


class SandboxError(ZyroError):
    """Remote sandbox call failed."""
    def __init__(self, sandbox_id: str, message: str):
        super().__init__(
            f"Sandbox error for {sandbox_id}: {message}",
            {"sandbox_id": sandbox_id}
        )
        self.sandbox_id = sandbox_id


class SandboxUnavailableError(SandboxError):
    """Sandbox was reclaimed, expired, or cannot be reached."""
    def __init__(self, sandbox_id: str, message: str = "sandbox is no longer available"):
        super().__init__(sandbox_id, message)


class ProjectNotFoundError(ZyroError):
    """Project id does not resolve."""
    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}", {"project_id": project_id})
        self.project_id = project_id


class FragmentNotFoundError(ZyroError):
    """Fragment id does not resolve."""
    def __init__(self, fragment_id: str):
        super().__init__(f"Fragment not found: {fragment_id}", {"fragment_id": fragment_id})
        self.fragment_id = fragment_id


class PersistenceError(ZyroError):
    """Database write/read error."""
    pass
