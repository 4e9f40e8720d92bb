# zyro/core/config.py
"""
Application configuration - single source of truth for all settings.
"""
import os
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


@dataclass
class LLMSettings:
    """LLM provider configuration."""
    default_provider: str = field(default_factory=lambda: os.getenv("DEFAULT_AI_PROVIDER", "GEMINI").upper())
    request_timeout: int = 120
    temperature: float = 0.2


@dataclass
class WorkflowSettings:
    """Agent pipeline configuration."""
    max_iterations: int = 15
    plan_iterations: int = 1
    plan_history_limit: int = 5
    generate_history_limit: int = 10
    termination_marker: str = "<task_summary>"
    # Fixed user-visible texts
    failure_message: str = "Something went wrong. Please try again."
    decryption_failure_message: str = (
        "Your saved API key could not be decrypted. Please re-enter it in Settings → API Keys."
    )
    plan_fallback: str = "Failed to generate plan."
    title_fallback: str = "Fragment"
    response_fallback: str = "Here you go!"


@dataclass
class SandboxSettings:
    """Remote sandbox configuration."""
    template: str = field(default_factory=lambda: os.getenv("SANDBOX_TEMPLATE", "zyro-nextjs-riaz37"))
    timeout: int = field(default_factory=lambda: int(os.getenv("SANDBOX_TIMEOUT", "1800")))
    app_port: int = 3000
    workdir: str = "/home/user"
    log_path: str = "/tmp/nextjs.log"
    command_timeout: int = 120
    probe_timeout: int = 10
    start_timeout: int = 15
    startup_grace: float = 3.0
    startup_probes: int = 2
    reconnect_retries: int = 2
    reconnect_backoff: float = 2.0
    status_log_chars: int = 2000
    status_lock_timeout: float = 5.0


@dataclass
class SecuritySettings:
    """Credential encryption configuration."""
    # 32-byte master key, hex (64 chars) or base64
    encryption_key: Optional[str] = field(default_factory=lambda: os.getenv("API_KEY_ENCRYPTION_KEY"))


@dataclass
class DatabaseSettings:
    """MongoDB configuration."""
    url: str = field(default_factory=lambda: os.getenv("MONGODB_URL", "mongodb://localhost:27017"))
    name: str = field(default_factory=lambda: os.getenv("MONGODB_DB", "zyro"))


@dataclass
class Settings:
    """Main application settings."""
    llm: LLMSettings = field(default_factory=LLMSettings)
    workflow: WorkflowSettings = field(default_factory=WorkflowSettings)
    sandbox: SandboxSettings = field(default_factory=SandboxSettings)
    security: SecuritySettings = field(default_factory=SecuritySettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    port: int = field(default_factory=lambda: int(os.getenv("PORT", 8000)))
    debug: bool = field(default_factory=lambda: os.getenv("ZYRO_DEBUG", "false").lower() == "true")


# Singleton instance
settings = Settings()
