"""Query state consumed by the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class QueryStatus(Enum):
    """Dispatcher query state."""

    IDLE = "idle"
    QUERYING = "querying"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class QueryState:
    """Tagged query state. Build instances with the classmethods.

    ``feedback`` is set only for SUCCESS; ``error``, ``occurred_at`` and
    ``retryable`` only for ERROR.
    """

    status: QueryStatus
    feedback: str | None = None
    error: str | None = None
    occurred_at: datetime | None = None
    retryable: bool = False

    @classmethod
    def idle(cls) -> QueryState:
        return cls(status=QueryStatus.IDLE)

    @classmethod
    def querying(cls) -> QueryState:
        return cls(status=QueryStatus.QUERYING)

    @classmethod
    def success(cls, feedback: str) -> QueryState:
        return cls(status=QueryStatus.SUCCESS, feedback=feedback)

    @classmethod
    def failed(
        cls,
        error: str,
        *,
        retryable: bool,
        occurred_at: datetime | None = None,
    ) -> QueryState:
        return cls(
            status=QueryStatus.ERROR,
            error=error,
            occurred_at=occurred_at or datetime.now(timezone.utc),
            retryable=retryable,
        )

    @property
    def is_querying(self) -> bool:
        return self.status is QueryStatus.QUERYING
