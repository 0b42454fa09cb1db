"""Debounced query dispatching and query state."""

from editpilot.dispatch.dispatcher import (
    DispatchSettings,
    FeedbackClient,
    QueryDispatcher,
    create_dispatcher,
)
from editpilot.dispatch.state import QueryState, QueryStatus

__all__ = [
    "DispatchSettings",
    "FeedbackClient",
    "QueryDispatcher",
    "QueryState",
    "QueryStatus",
    "create_dispatcher",
]
