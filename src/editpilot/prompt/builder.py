"""Prompt selection for bootstrap and follow-up queries.

A new assistant session has no idea what the document looks like, so the
first query sends the whole thing through the template. Once the session
exists the assistant keeps that context, and later queries only carry the
lines around the cursor.
"""

from __future__ import annotations

from dataclasses import dataclass

from editpilot.prompt.cursor import context_window, insert_cursor_marker, line_number_at
from editpilot.prompt.template import DOC_PLACEHOLDER, validate_template

DEFAULT_CONTEXT_LINES_BEFORE = 2

FOLLOW_UP_HINT = "(Use Read tool if you need more context)"


@dataclass(frozen=True, slots=True)
class EditSnapshot:
    """One edit event: document text, cursor offset and the file it came from."""

    content: str
    cursor_position: int
    file_path: str


def build_bootstrap_prompt(content: str, cursor_position: int, template: str) -> str:
    """Full document with the cursor marked, substituted into ``template``."""
    validate_template(template)
    document = insert_cursor_marker(content, cursor_position)
    return template.replace(DOC_PLACEHOLDER, document, 1)


def build_follow_up_prompt(
    content: str,
    cursor_position: int,
    file_path: str,
    lines_before: int = DEFAULT_CONTEXT_LINES_BEFORE,
) -> str:
    """Short nudge with the file, cursor line and a few lines of context."""
    cursor_line = line_number_at(content, cursor_position)
    context = context_window(content.split("\n"), cursor_line, lines_before)
    return (
        f"File: {file_path}\n"
        f"Cursor at line: {cursor_line + 1}\n"
        f"Context:\n"
        f"{context}\n"
        f"\n"
        f"{FOLLOW_UP_HINT}"
    )


def build_prompt(
    snapshot: EditSnapshot,
    *,
    is_new_session: bool,
    template: str,
    lines_before: int = DEFAULT_CONTEXT_LINES_BEFORE,
) -> str:
    if is_new_session:
        return build_bootstrap_prompt(snapshot.content, snapshot.cursor_position, template)
    return build_follow_up_prompt(
        snapshot.content,
        snapshot.cursor_position,
        snapshot.file_path,
        lines_before=lines_before,
    )
