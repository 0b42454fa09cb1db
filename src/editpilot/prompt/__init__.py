"""Prompt construction: cursor formatting, strategy selection and templates."""

from editpilot.prompt.builder import (
    EditSnapshot,
    build_bootstrap_prompt,
    build_follow_up_prompt,
    build_prompt,
)
from editpilot.prompt.cursor import (
    CURSOR_MARKER,
    context_window,
    insert_cursor_marker,
    line_number_at,
)
from editpilot.prompt.template import (
    DEFAULT_TEMPLATE,
    DOC_PLACEHOLDER,
    PromptTemplateStore,
    validate_template,
)

__all__ = [
    "CURSOR_MARKER",
    "DEFAULT_TEMPLATE",
    "DOC_PLACEHOLDER",
    "EditSnapshot",
    "PromptTemplateStore",
    "build_bootstrap_prompt",
    "build_follow_up_prompt",
    "build_prompt",
    "context_window",
    "insert_cursor_marker",
    "line_number_at",
    "validate_template",
]
