"""EditPilot error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Assistant process
- 4xxx: Prompt
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Assistant (3xxx)
    TOOL_NOT_INSTALLED = 3001
    TOOL_FAILED = 3002
    SESSION_CONFLICT = 3003

    # Prompt (4xxx)
    PROMPT_BAD_TEMPLATE = 4001


@dataclass(frozen=True, slots=True)
class EditPilotError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'TOOL_FAILED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(EditPilotError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class AssistantError(EditPilotError):
    """Failures at the assistant process boundary."""

    @classmethod
    def tool_not_installed(cls, executable: str) -> "AssistantError":
        return cls(
            code=ErrorCode.TOOL_NOT_INSTALLED,
            message=(
                f"Assistant CLI '{executable}' not found. "
                f"Install it and make sure '{executable}' is on your PATH "
                "(or set assistant.executable to its full path)."
            ),
            retryable=False,
            details={"executable": executable},
        )

    @classmethod
    def tool_failed(cls, executable: str, exit_code: int | None, stderr: str) -> "AssistantError":
        text = stderr.strip()
        return cls(
            code=ErrorCode.TOOL_FAILED,
            message=text or f"{executable} exited with code {exit_code}",
            retryable=True,
            details={"executable": executable, "exit_code": exit_code},
        )

    @classmethod
    def session_conflict(cls, session_id: str, stderr: str) -> "AssistantError":
        return cls(
            code=ErrorCode.SESSION_CONFLICT,
            message=f"Session {session_id} is already in use: {stderr.strip()}",
            retryable=True,
            details={"session_id": session_id},
        )


class PromptError(EditPilotError):
    """Prompt template errors."""

    @classmethod
    def bad_template(cls, path: str, placeholder: str, count: int) -> "PromptError":
        return cls(
            code=ErrorCode.PROMPT_BAD_TEMPLATE,
            message=(
                f"Prompt template {path} must contain {placeholder} exactly once "
                f"(found {count})"
            ),
            details={"path": path, "placeholder": placeholder, "count": count},
        )


# Substrings that mark an error as something the user has to fix first.
_NOT_INSTALLED_MARKERS = ("enoent", "command not found", "not found. install")


def can_retry_error(message: str) -> bool:
    """Advisory check whether a bare retry could plausibly succeed.

    Used only to decide whether to offer a retry affordance; it never
    prevents the user from retrying.
    """
    lowered = message.lower()
    return not any(marker in lowered for marker in _NOT_INSTALLED_MARKERS)
