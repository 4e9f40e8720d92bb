"""
Credential vault - per-user provider keys.
"""
from .vault import (
    parse_provider,
    resolve_default_provider,
    resolve_api_key,
    has_any_key,
    get_status,
    set_key,
    clear_key,
    set_default_provider,
)

__all__ = [
    "parse_provider",
    "resolve_default_provider",
    "resolve_api_key",
    "has_any_key",
    "get_status",
    "set_key",
    "clear_key",
    "set_default_provider",
]
