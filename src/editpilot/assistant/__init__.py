"""Assistant CLI client and session bookkeeping."""

from editpilot.assistant.client import CONFLICT_MARKER, NO_RESPONSE, AssistantClient, ProcessResult
from editpilot.assistant.session import SessionRegistry, session_id_for

__all__ = [
    "AssistantClient",
    "CONFLICT_MARKER",
    "NO_RESPONSE",
    "ProcessResult",
    "SessionRegistry",
    "session_id_for",
]
