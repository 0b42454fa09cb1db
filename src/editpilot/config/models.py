"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (EDITPILOT__SECTION__KEY)
3. Workspace YAML (<workspace>/.editpilot/config.yaml)
4. Global YAML (~/.config/editpilot/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    EDITPILOT__<SECTION>__<KEY>=<VALUE>

Examples:
    EDITPILOT__LOGGING__LEVEL=DEBUG
    EDITPILOT__QUERY__DEBOUNCE_DELAY_MS=1500
    EDITPILOT__ASSISTANT__EXECUTABLE=/opt/bin/claude
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_ALLOWED_TOOLS: tuple[str, ...] = ("Read", "Grep", "Glob", "LS")
DEFAULT_DEBOUNCE_DELAY_MS = 2000


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        EDITPILOT__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. INFO shows one line per query; DEBUG is verbose.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class AssistantConfig(BaseModel):
    """Assistant CLI invocation.

    Env vars:
        EDITPILOT__ASSISTANT__EXECUTABLE: Assistant executable name or path
        EDITPILOT__ASSISTANT__LOGIN_SHELL: Run through $SHELL -l -c
        EDITPILOT__ASSISTANT__KILL_ON_CANCEL: Kill the child process on cancel
    """

    executable: str = Field(
        default="claude",
        description="Assistant CLI executable, looked up on PATH unless absolute.",
    )
    allowed_tools: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_TOOLS),
        description="Capabilities the assistant may use. Defaults are read-only. "
        "RISK: adding write or shell tools lets the assistant modify the workspace.",
    )
    login_shell: bool = Field(
        default=False,
        description="Launch through the user's login shell so its PATH applies. "
        "Useful when the host was started from a GUI without a full environment.",
    )
    kill_on_cancel: bool = Field(
        default=False,
        description="Terminate an in-flight assistant process when queries are cancelled. "
        "Off by default: the process finishes and its result is discarded.",
    )

    @field_validator("executable")
    @classmethod
    def validate_executable(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("executable must not be empty")
        return v.strip()

    @field_validator("allowed_tools")
    @classmethod
    def validate_allowed_tools(cls, v: list[str]) -> list[str]:
        tools = [t.strip() for t in v if t.strip()]
        for tool in tools:
            if "," in tool:
                raise ValueError(f"Tool names cannot contain commas: {tool!r}")
        return tools


class QueryConfig(BaseModel):
    """Query scheduling.

    Env vars:
        EDITPILOT__QUERY__DEBOUNCE_DELAY_MS: Quiet period before a query fires
    """

    debounce_delay_ms: int = Field(
        default=DEFAULT_DEBOUNCE_DELAY_MS,
        ge=1,
        description="Quiet period (ms) after the last edit before querying. "
        "TRADEOFF: lower values give faster feedback but launch more assistant runs.",
    )
    context_lines_before: int = Field(
        default=2,
        ge=0,
        description="Lines before the cursor line included in follow-up prompts.",
    )


class PromptConfig(BaseModel):
    """Prompt template location.

    Env vars:
        EDITPILOT__PROMPT__TEMPLATE_PATH: Template file, relative to the workspace
    """

    template_path: str = Field(
        default=".editpilot/prompt.md",
        description="Bootstrap prompt template. Must contain {{doc}} exactly once.",
    )

    def resolve(self, workspace: Path) -> Path:
        path = Path(self.template_path).expanduser()
        return path if path.is_absolute() else workspace / path


class EditPilotConfig(BaseModel):
    """Root configuration for EditPilot.

    All settings can be configured via:
    1. Environment variables: EDITPILOT__SECTION__KEY
    2. YAML config files (workspace or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
