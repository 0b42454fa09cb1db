"""Debounced query dispatcher.

Turns a stream of edit events into assistant queries:
- Each edit replaces the pending snapshot and restarts the quiet-period
  timer, so only the last edit of a burst becomes a query
- At most one current query runs at a time; a timer that elapses while it
  is still running leaves its snapshot pending until that run completes
- Every launched query gets a sequence number, and its result is applied
  only if it is still the current query and the state is still QUERYING
- Cancellation drops the timer, resets QUERYING to IDLE and detaches the
  running query. A detached query no longer holds back new launches; its
  process finishes (or is killed with kill_on_cancel) and the result is
  dropped by the sequence check
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, Field, ValidationError

from editpilot.assistant.client import AssistantClient
from editpilot.assistant.session import SessionRegistry
from editpilot.config.models import (
    DEFAULT_ALLOWED_TOOLS,
    DEFAULT_DEBOUNCE_DELAY_MS,
    EditPilotConfig,
)
from editpilot.core.errors import ConfigError, EditPilotError, can_retry_error
from editpilot.core.logging import clear_query_id, set_query_id
from editpilot.dispatch.state import QueryState, QueryStatus
from editpilot.prompt.builder import DEFAULT_CONTEXT_LINES_BEFORE, EditSnapshot, build_prompt
from editpilot.prompt.template import DEFAULT_TEMPLATE, PromptTemplateStore

logger = structlog.get_logger()


class FeedbackClient(Protocol):
    def is_new_session(self, workspace: str | None = None) -> bool: ...

    async def get_feedback(
        self, prompt: str, *, allowed_tools: Sequence[str] | None = None
    ) -> str: ...


class DispatchSettings(BaseModel):
    """Settings the host may change at any time."""

    debounce_delay_ms: int = Field(default=DEFAULT_DEBOUNCE_DELAY_MS, ge=1)
    allowed_tools: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_TOOLS))

    @classmethod
    def from_config(cls, config: EditPilotConfig) -> DispatchSettings:
        return cls(
            debounce_delay_ms=config.query.debounce_delay_ms,
            allowed_tools=list(config.assistant.allowed_tools),
        )


def _default_template() -> str:
    return DEFAULT_TEMPLATE


@dataclass
class QueryDispatcher:
    """
    Debounces edit events into assistant queries and tracks QueryState.

    All methods must be called from the event loop thread.
    """

    client: FeedbackClient
    load_template: Callable[[], str] = _default_template
    settings: DispatchSettings = field(default_factory=DispatchSettings)
    context_lines_before: int = DEFAULT_CONTEXT_LINES_BEFORE
    kill_on_cancel: bool = False
    on_state_change: Callable[[QueryState], None] | None = None

    _state: QueryState = field(default_factory=QueryState.idle, init=False)
    _pending: EditSnapshot | None = field(default=None, init=False)
    _debounce_task: asyncio.Task[None] | None = field(default=None, init=False)
    _query_task: asyncio.Task[None] | None = field(default=None, init=False)
    _detached: set[asyncio.Task[None]] = field(default_factory=set, init=False)
    _sequence: int = field(default=0, init=False)
    _last_successful_feedback: str | None = field(default=None, init=False)

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def last_successful_feedback(self) -> str | None:
        return self._last_successful_feedback

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def on_editor_content_changed(self, content: str, cursor_position: int, file_path: str) -> None:
        """Replace the pending snapshot and restart the quiet-period timer."""
        self._pending = EditSnapshot(content, cursor_position, file_path)

        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()

        delay_ms = self.settings.debounce_delay_ms
        loop = asyncio.get_running_loop()
        self._debounce_task = loop.create_task(self._debounced_launch(delay_ms / 1000))
        logger.debug("query_scheduled", file_path=file_path, delay_ms=delay_ms)

    def cancel_pending_queries(self) -> None:
        """Drop the pending snapshot and reset an in-flight query to IDLE."""
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None
        self._pending = None

        if self._state.is_querying:
            # Invalidate the in-flight result
            self._sequence += 1
            self._set_state(QueryState.idle())
            task, self._query_task = self._query_task, None
            if task is not None and not task.done():
                self._detached.add(task)
                task.add_done_callback(self._detached.discard)
                if self.kill_on_cancel:
                    task.cancel()
            logger.info("query_cancelled", kill=self.kill_on_cancel)

    def update_settings(
        self,
        *,
        debounce_delay_ms: int | None = None,
        allowed_tools: Sequence[str] | None = None,
    ) -> None:
        """Apply a partial settings update.

        A new delay applies to edits scheduled afterwards, not to a timer
        that is already running.
        """
        updates = self.settings.model_dump()
        if debounce_delay_ms is not None:
            updates["debounce_delay_ms"] = debounce_delay_ms
        if allowed_tools is not None:
            updates["allowed_tools"] = list(allowed_tools)
        try:
            self.settings = DispatchSettings.model_validate(updates)
        except ValidationError as e:
            err = e.errors()[0]
            name = ".".join(str(loc) for loc in err["loc"])
            raise ConfigError.invalid_value(name, err.get("input"), err["msg"]) from e
        logger.debug("settings_updated", **self.settings.model_dump())

    def acknowledge_error(self) -> None:
        """Move ERROR back to IDLE. Nothing is resubmitted; the next edit queries again."""
        if self._state.status is QueryStatus.ERROR:
            self._set_state(QueryState.idle())

    async def stop(self) -> None:
        """Cancel everything, detached queries included, and wait for them to finish."""
        self.cancel_pending_queries()
        tasks = [t for t in (self._query_task, *self._detached) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._query_task = None
        logger.debug("dispatcher_stopped", cancelled=len(tasks))

    async def _debounced_launch(self, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return
        self._debounce_task = None
        self._launch_pending()

    def _launch_pending(self) -> None:
        if self._pending is None:
            return
        if self._query_task is not None and not self._query_task.done():
            # Picked up when the current query completes
            logger.debug("query_deferred", sequence=self._sequence)
            return

        snapshot, self._pending = self._pending, None
        self._sequence += 1
        sequence = self._sequence
        self._set_state(QueryState.querying())
        loop = asyncio.get_running_loop()
        self._query_task = loop.create_task(self._run_query(sequence, snapshot))

    async def _run_query(self, sequence: int, snapshot: EditSnapshot) -> None:
        set_query_id()
        try:
            is_new = self.client.is_new_session()
            template = self.load_template() if is_new else ""
            prompt = build_prompt(
                snapshot,
                is_new_session=is_new,
                template=template,
                lines_before=self.context_lines_before,
            )
            logger.info(
                "query_started",
                sequence=sequence,
                file_path=snapshot.file_path,
                new_session=is_new,
                prompt_length=len(prompt),
            )
            feedback = await self.client.get_feedback(
                prompt, allowed_tools=list(self.settings.allowed_tools)
            )
        except EditPilotError as e:
            logger.info("query_failed", sequence=sequence, error=e.error_name)
            self._complete(sequence, QueryState.failed(e.message, retryable=e.retryable))
        except Exception as e:
            message = str(e) or "Unknown error occurred"
            logger.exception("query_failed", sequence=sequence)
            self._complete(
                sequence, QueryState.failed(message, retryable=can_retry_error(message))
            )
        else:
            logger.info("query_succeeded", sequence=sequence, feedback_length=len(feedback))
            self._complete(sequence, QueryState.success(feedback))
        finally:
            clear_query_id()
            # Detached queries leave the current one alone
            if self._query_task is asyncio.current_task():
                self._query_task = None
                if self._pending is not None and self._debounce_task is None:
                    self._launch_pending()

    def _complete(self, sequence: int, state: QueryState) -> None:
        if sequence != self._sequence or not self._state.is_querying:
            logger.debug(
                "query_result_dropped",
                sequence=sequence,
                current=self._sequence,
                status=self._state.status.value,
            )
            return
        if state.status is QueryStatus.SUCCESS:
            self._last_successful_feedback = state.feedback
        self._set_state(state)

    def _set_state(self, state: QueryState) -> None:
        self._state = state
        if self.on_state_change is not None:
            self.on_state_change(state)


def create_dispatcher(
    workspace: Path,
    config: EditPilotConfig,
    *,
    registry: SessionRegistry | None = None,
    on_state_change: Callable[[QueryState], None] | None = None,
) -> QueryDispatcher:
    """Wire a dispatcher, assistant client and template store for ``workspace``."""
    client = AssistantClient(workspace, config.assistant, registry)
    store = PromptTemplateStore(config.prompt.resolve(workspace))
    return QueryDispatcher(
        client=client,
        load_template=store.load,
        settings=DispatchSettings.from_config(config),
        context_lines_before=config.query.context_lines_before,
        kill_on_cancel=config.assistant.kill_on_cancel,
        on_state_change=on_state_change,
    )
