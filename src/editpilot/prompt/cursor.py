"""Text-position helpers for cursor-annotated prompts."""

from __future__ import annotations

from collections.abc import Sequence

CURSOR_MARKER = "<|cursor|>"


def insert_cursor_marker(content: str, position: int) -> str:
    """Insert CURSOR_MARKER at character offset ``position``.

    Offsets outside ``[0, len(content)]`` leave the content untouched.
    """
    if position < 0 or position > len(content):
        return content
    return content[:position] + CURSOR_MARKER + content[position:]


def line_number_at(content: str, position: int) -> int:
    """0-based index of the line containing ``position``."""
    if position <= 0:
        return 0
    return content.count("\n", 0, position)


def context_window(lines: Sequence[str], cursor_line: int, lines_before: int) -> str:
    """Render ``lines_before`` lines above ``cursor_line`` plus the cursor line.

    Each line is prefixed with its 1-based number. The window is clamped at
    the top of the document.
    """
    start = max(0, cursor_line - lines_before)
    return "\n".join(
        f"{start + offset + 1}: {line}"
        for offset, line in enumerate(lines[start : cursor_line + 1])
    )
