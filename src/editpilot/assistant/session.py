"""Deterministic conversation sessions per workspace.

The assistant CLI keeps its own on-disk session store, so the same
workspace must always map to the same session id, including across
restarts of this process. The id is an MD5 digest of the workspace path
formatted as a UUID.
"""

from __future__ import annotations

import hashlib
import uuid

SESSION_NAMESPACE = "editpilot"


def session_id_for(workspace: str) -> str:
    """Stable 128-bit session id for ``workspace`` in 8-4-4-4-12 form."""
    digest = hashlib.md5(
        f"{SESSION_NAMESPACE}:{workspace}".encode(),
        usedforsecurity=False,
    ).digest()
    return str(uuid.UUID(bytes=digest))


class SessionRegistry:
    """Session ids this client instance has started or resumed.

    Not persisted. A fresh process starts empty and relies on the
    conflict-recovery path to pick up sessions the CLI already knows.
    """

    def __init__(self) -> None:
        self._known: set[str] = set()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._known

    def add(self, session_id: str) -> None:
        self._known.add(session_id)
