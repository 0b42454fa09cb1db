"""Edit events from a file on disk.

Stands in for an editor: watches one file with watchfiles and reports each
saved version as an edit event. The cursor is inferred as the end of the
changed region, which is where the author was typing for ordinary
insertions and deletions.

The parent directory is watched rather than the file itself, since many
editors save by writing a temp file and renaming it over the original.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from watchfiles import Change, awatch

logger = structlog.get_logger()

EditCallback = Callable[[str, int, str], None]


def infer_cursor(previous: str, current: str) -> int:
    """Offset just past the region where ``current`` differs from ``previous``."""
    limit = min(len(previous), len(current))
    prefix = 0
    while prefix < limit and previous[prefix] == current[prefix]:
        prefix += 1

    suffix = 0
    max_suffix = limit - prefix
    while suffix < max_suffix and previous[-1 - suffix] == current[-1 - suffix]:
        suffix += 1

    return len(current) - suffix


def display_path(path: Path, workspace: Path) -> str:
    """Workspace-relative path when possible, for prompts the assistant can Read."""
    try:
        return path.relative_to(workspace).as_posix()
    except ValueError:
        return str(path)


@dataclass
class FileEditSource:
    """
    Watches ``path`` and calls ``on_edit(content, cursor, file_path)``.

    The first read after start is reported too (cursor at end of text) when
    ``emit_initial`` is set, so a query runs for the document as opened.
    """

    path: Path
    on_edit: EditCallback
    file_label: str | None = None
    emit_initial: bool = True

    _last_content: str | None = field(default=None, init=False)
    _watch_task: asyncio.Task[None] | None = field(default=None, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)

    def __post_init__(self) -> None:
        self.path = self.path.resolve()
        if self.file_label is None:
            self.file_label = self.path.name

    async def start(self) -> None:
        """Start watching for edits."""
        if self._watch_task is not None:
            return

        self._stop_event.clear()
        content = self._read()
        if content is not None:
            self._last_content = content
            if self.emit_initial:
                self._emit(content, len(content))

        self._watch_task = asyncio.create_task(self._watch_loop())
        logger.info("edit_source_started", path=str(self.path))

    async def stop(self) -> None:
        """Stop watching for edits."""
        self._stop_event.set()
        if self._watch_task is not None:
            self._watch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._watch_task, timeout=2.0)
            self._watch_task = None
        logger.info("edit_source_stopped", path=str(self.path))

    def handle_change(self) -> bool:
        """Re-read the file and emit an edit if its text changed.

        Returns True if an edit was emitted.
        """
        content = self._read()
        if content is None or content == self._last_content:
            return False

        cursor = infer_cursor(self._last_content or "", content)
        self._last_content = content
        self._emit(content, cursor)
        return True

    def _emit(self, content: str, cursor: int) -> None:
        logger.debug("edit_detected", path=str(self.path), length=len(content), cursor=cursor)
        self.on_edit(content, cursor, self.file_label or self.path.name)

    def _read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            # Mid-rename during an atomic save; the next event has the new file
            logger.debug("edit_source_missing", path=str(self.path))
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("edit_source_read_failed", path=str(self.path), error=str(e))
            return None

    def _is_target(self, change: Change, path_str: str) -> bool:
        return change != Change.deleted and Path(path_str).resolve() == self.path

    async def _watch_loop(self) -> None:
        try:
            async for _changes in awatch(
                self.path.parent,
                watch_filter=self._is_target,
                recursive=False,
                stop_event=self._stop_event,
                ignore_permission_denied=True,
            ):
                self.handle_change()
        except asyncio.CancelledError:
            pass
