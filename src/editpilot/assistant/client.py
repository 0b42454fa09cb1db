"""Session-aware client for the assistant CLI.

Each workspace talks to one conversation. The first query of a client's
lifetime asks the CLI to create the session under its deterministic id;
later queries resume it. If the CLI already has that session from an
earlier run it refuses the create with an "already in use" error, and the
client retries once in resume mode with the same prompt.

The CLI contract has no structured error for the conflict, so detection is
a substring match on stderr (CONFLICT_MARKER).
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import shlex
import shutil
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from editpilot.assistant.session import SessionRegistry, session_id_for
from editpilot.config.models import AssistantConfig
from editpilot.core.errors import AssistantError, ErrorCode

logger = structlog.get_logger()

CONFLICT_MARKER = "already in use"
NO_RESPONSE = "No response from assistant."

# Exit status a POSIX shell uses for "command not found".
_SHELL_NOT_FOUND_EXIT = 127


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Captured outcome of one assistant run."""

    exit_code: int | None
    stdout: str
    stderr: str


class AssistantClient:
    """Runs the assistant CLI in ``workspace`` and manages its session.

    The registry is owned by the caller so several clients (or tests) can
    run side by side without sharing state. At most one ``get_feedback``
    call per client is expected to be in flight; the dispatcher enforces it.
    """

    def __init__(
        self,
        workspace: str | Path,
        config: AssistantConfig | None = None,
        registry: SessionRegistry | None = None,
    ) -> None:
        self.workspace = str(workspace)
        self.config = config or AssistantConfig()
        self.registry = registry if registry is not None else SessionRegistry()

    @property
    def session_id(self) -> str:
        return session_id_for(self.workspace)

    def is_new_session(self, workspace: str | None = None) -> bool:
        """True until a query for ``workspace`` (default: ours) has succeeded."""
        return session_id_for(workspace or self.workspace) not in self.registry

    def build_args(
        self,
        session_id: str,
        *,
        resume: bool,
        allowed_tools: Sequence[str] | None = None,
    ) -> list[str]:
        tools = self.config.allowed_tools if allowed_tools is None else allowed_tools
        return [
            "--resume" if resume else "--session-id",
            session_id,
            "-p",
            "--allowedTools",
            ",".join(tools),
        ]

    async def get_feedback(
        self,
        prompt: str,
        *,
        allowed_tools: Sequence[str] | None = None,
    ) -> str:
        """Send ``prompt`` to the workspace session and return the reply text.

        Raises:
            AssistantError: TOOL_NOT_INSTALLED when the executable is missing,
                TOOL_FAILED for any other failed run.
        """
        session_id = self.session_id
        is_new = session_id not in self.registry
        args = self.build_args(session_id, resume=not is_new, allowed_tools=allowed_tools)

        try:
            output = await self._invoke(args, prompt, session_id=session_id, creating=is_new)
        except AssistantError as e:
            if e.code != ErrorCode.SESSION_CONFLICT:
                raise
            logger.info("assistant_session_conflict", session_id=session_id)
            self.registry.add(session_id)
            args = self.build_args(session_id, resume=True, allowed_tools=allowed_tools)
            output = await self._invoke(args, prompt, session_id=session_id, creating=False)

        self.registry.add(session_id)
        return output

    async def _invoke(
        self,
        args: list[str],
        prompt: str,
        *,
        session_id: str,
        creating: bool,
    ) -> str:
        logger.info(
            "assistant_invoked",
            session_id=session_id,
            mode="create" if creating else "resume",
            prompt_length=len(prompt),
        )
        result = await self._run(args, prompt)

        if result.exit_code == 0:
            return result.stdout.strip() or NO_RESPONSE

        if self.config.login_shell and result.exit_code == _SHELL_NOT_FOUND_EXIT:
            raise AssistantError.tool_not_installed(self.config.executable)
        if creating and CONFLICT_MARKER in result.stderr.lower():
            raise AssistantError.session_conflict(session_id, result.stderr)

        logger.warning(
            "assistant_failed",
            session_id=session_id,
            exit_code=result.exit_code,
            stderr=result.stderr.strip()[:500],
        )
        raise AssistantError.tool_failed(self.config.executable, result.exit_code, result.stderr)

    def _command(self, args: list[str]) -> list[str]:
        if self.config.login_shell:
            shell = os.environ.get("SHELL") or "/bin/sh"
            return [shell, "-l", "-c", shlex.join([self.config.executable, *args])]

        executable = shutil.which(self.config.executable)
        if executable is None:
            raise AssistantError.tool_not_installed(self.config.executable)
        return [executable, *args]

    async def _run(self, args: list[str], prompt: str) -> ProcessResult:
        """Launch the CLI, feed ``prompt`` on stdin and drain both streams."""
        if not Path(self.workspace).is_dir():
            raise AssistantError.tool_failed(
                self.config.executable, None, f"Workspace directory not found: {self.workspace}"
            )

        command = self._command(args)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.workspace,
            )
        except FileNotFoundError as e:
            raise AssistantError.tool_not_installed(self.config.executable) from e
        except OSError as e:
            raise AssistantError.tool_failed(self.config.executable, None, str(e)) from e

        try:
            stdout_bytes, stderr_bytes = await proc.communicate(prompt.encode())
        except asyncio.CancelledError:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
                logger.info("assistant_killed", pid=proc.pid)
            raise

        return ProcessResult(
            exit_code=proc.returncode,
            stdout=stdout_bytes.decode(errors="replace"),
            stderr=stderr_bytes.decode(errors="replace"),
        )
