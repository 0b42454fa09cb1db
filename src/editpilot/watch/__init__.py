"""File-backed edit event source."""

from editpilot.watch.source import FileEditSource, display_path, infer_cursor

__all__ = ["FileEditSource", "display_path", "infer_cursor"]
