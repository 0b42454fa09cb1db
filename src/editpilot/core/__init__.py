"""Core module exports."""

from editpilot.core.errors import (
    AssistantError,
    ConfigError,
    EditPilotError,
    ErrorCode,
    PromptError,
    can_retry_error,
)
from editpilot.core.logging import (
    clear_query_id,
    configure_logging,
    get_query_id,
    set_query_id,
)

__all__ = [
    # Errors
    "AssistantError",
    "ConfigError",
    "EditPilotError",
    "ErrorCode",
    "PromptError",
    "can_retry_error",
    # Logging
    "clear_query_id",
    "configure_logging",
    "get_query_id",
    "set_query_id",
]
