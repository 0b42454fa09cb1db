"""Config module exports."""

from editpilot.config.loader import load_config, workspace_config_path
from editpilot.config.models import (
    AssistantConfig,
    EditPilotConfig,
    LoggingConfig,
    PromptConfig,
    QueryConfig,
)

__all__ = [
    "load_config",
    "workspace_config_path",
    "EditPilotConfig",
    "AssistantConfig",
    "LoggingConfig",
    "PromptConfig",
    "QueryConfig",
]
