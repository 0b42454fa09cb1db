"""Tests for the session-aware assistant client."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from editpilot.assistant.client import NO_RESPONSE, AssistantClient
from editpilot.assistant.session import SessionRegistry, session_id_for
from editpilot.config.models import AssistantConfig
from editpilot.core.errors import AssistantError, ErrorCode

EXEC = "editpilot.assistant.client.asyncio.create_subprocess_exec"
WHICH = "editpilot.assistant.client.shutil.which"


def _proc(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.pid = 4242
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


def _argv(exec_mock: AsyncMock, call: int = 0) -> list[str]:
    return list(exec_mock.await_args_list[call].args)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()
    return vault


@pytest.fixture
def client(workspace: Path) -> AssistantClient:
    return AssistantClient(workspace)


class TestSessionTracking:
    """is_new_session behaviour."""

    def test_given_fresh_client_then_new_session(self, client: AssistantClient) -> None:
        assert client.is_new_session() is True

    @pytest.mark.asyncio
    async def test_given_successful_query_then_session_known(
        self, client: AssistantClient
    ) -> None:
        # Given
        with patch(WHICH, return_value="/usr/bin/claude"), patch(
            EXEC, new=AsyncMock(return_value=_proc(stdout=b"ok"))
        ):
            # When
            await client.get_feedback("prompt")

        # Then
        assert client.is_new_session() is False
        assert client.is_new_session() is False
        assert client.session_id in client.registry

    def test_given_explicit_workspace_when_checked_then_uses_that_id(
        self, client: AssistantClient
    ) -> None:
        client.registry.add(session_id_for("/elsewhere"))

        assert client.is_new_session("/elsewhere") is False
        assert client.is_new_session() is True

    def test_given_shared_registry_then_clients_see_each_other(self, workspace: Path) -> None:
        registry = SessionRegistry()
        first = AssistantClient(workspace, registry=registry)
        second = AssistantClient(workspace, registry=registry)

        registry.add(first.session_id)

        assert second.is_new_session() is False


class TestInvocation:
    """Process arguments, stdin and output handling."""

    @pytest.mark.asyncio
    async def test_given_new_session_when_query_then_create_args(
        self, client: AssistantClient, workspace: Path
    ) -> None:
        # Given
        proc = _proc(stdout=b"  looks good  \n")
        exec_mock = AsyncMock(return_value=proc)

        # When
        with patch(WHICH, return_value="/usr/bin/claude"), patch(EXEC, new=exec_mock):
            result = await client.get_feedback("the prompt")

        # Then
        assert result == "looks good"
        assert _argv(exec_mock) == [
            "/usr/bin/claude",
            "--session-id",
            client.session_id,
            "-p",
            "--allowedTools",
            "Read,Grep,Glob,LS",
        ]
        assert exec_mock.await_args.kwargs["cwd"] == str(workspace)
        proc.communicate.assert_awaited_once_with(b"the prompt")

    @pytest.mark.asyncio
    async def test_given_known_session_when_query_then_resume_args(
        self, client: AssistantClient
    ) -> None:
        client.registry.add(client.session_id)
        exec_mock = AsyncMock(return_value=_proc(stdout=b"ok"))

        with patch(WHICH, return_value="/usr/bin/claude"), patch(EXEC, new=exec_mock):
            await client.get_feedback("p")

        assert _argv(exec_mock)[1:3] == ["--resume", client.session_id]

    @pytest.mark.asyncio
    async def test_given_tool_override_when_query_then_joined(
        self, client: AssistantClient
    ) -> None:
        exec_mock = AsyncMock(return_value=_proc(stdout=b"ok"))

        with patch(WHICH, return_value="/usr/bin/claude"), patch(EXEC, new=exec_mock):
            await client.get_feedback("p", allowed_tools=["Read", "WebSearch"])

        assert _argv(exec_mock)[-1] == "Read,WebSearch"

    @pytest.mark.asyncio
    async def test_given_empty_output_when_query_then_fallback_text(
        self, client: AssistantClient
    ) -> None:
        with patch(WHICH, return_value="/usr/bin/claude"), patch(
            EXEC, new=AsyncMock(return_value=_proc(stdout=b"\n\n"))
        ):
            result = await client.get_feedback("p")

        assert result == NO_RESPONSE

    @pytest.mark.asyncio
    async def test_given_login_shell_when_query_then_runs_through_shell(
        self, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Given
        monkeypatch.setenv("SHELL", "/bin/zsh")
        client = AssistantClient(workspace, AssistantConfig(login_shell=True))
        exec_mock = AsyncMock(return_value=_proc(stdout=b"ok"))

        # When
        with patch(EXEC, new=exec_mock):
            await client.get_feedback("p")

        # Then
        argv = _argv(exec_mock)
        assert argv[:3] == ["/bin/zsh", "-l", "-c"]
        assert argv[3] == (
            f"claude --session-id {client.session_id} -p --allowedTools Read,Grep,Glob,LS"
        )


class TestFailures:
    """Failure classification."""

    @pytest.mark.asyncio
    async def test_given_missing_executable_when_query_then_not_installed(
        self, client: AssistantClient
    ) -> None:
        exec_mock = AsyncMock()

        with patch(WHICH, return_value=None), patch(EXEC, new=exec_mock):
            with pytest.raises(AssistantError) as exc_info:
                await client.get_feedback("p")

        assert exc_info.value.code == ErrorCode.TOOL_NOT_INSTALLED
        assert exc_info.value.retryable is False
        assert "PATH" in exc_info.value.message
        exec_mock.assert_not_awaited()
        assert client.is_new_session() is True

    @pytest.mark.asyncio
    async def test_given_exec_file_not_found_when_query_then_not_installed(
        self, client: AssistantClient
    ) -> None:
        with patch(WHICH, return_value="/usr/bin/claude"), patch(
            EXEC, new=AsyncMock(side_effect=FileNotFoundError(2, "No such file"))
        ):
            with pytest.raises(AssistantError) as exc_info:
                await client.get_feedback("p")

        assert exc_info.value.code == ErrorCode.TOOL_NOT_INSTALLED

    @pytest.mark.asyncio
    async def test_given_login_shell_exit_127_when_query_then_not_installed(
        self, workspace: Path
    ) -> None:
        client = AssistantClient(workspace, AssistantConfig(login_shell=True))

        with patch(
            EXEC, new=AsyncMock(return_value=_proc(127, stderr=b"zsh: command not found: claude"))
        ):
            with pytest.raises(AssistantError) as exc_info:
                await client.get_feedback("p")

        assert exc_info.value.code == ErrorCode.TOOL_NOT_INSTALLED

    @pytest.mark.asyncio
    async def test_given_nonzero_exit_when_query_then_tool_failed_with_stderr(
        self, client: AssistantClient
    ) -> None:
        with patch(WHICH, return_value="/usr/bin/claude"), patch(
            EXEC, new=AsyncMock(return_value=_proc(1, stderr=b"rate limited\n"))
        ):
            with pytest.raises(AssistantError) as exc_info:
                await client.get_feedback("p")

        assert exc_info.value.code == ErrorCode.TOOL_FAILED
        assert exc_info.value.message == "rate limited"
        assert exc_info.value.retryable is True
        assert client.is_new_session() is True

    @pytest.mark.asyncio
    async def test_given_nonzero_exit_without_stderr_then_exit_code_in_message(
        self, client: AssistantClient
    ) -> None:
        with patch(WHICH, return_value="/usr/bin/claude"), patch(
            EXEC, new=AsyncMock(return_value=_proc(2))
        ):
            with pytest.raises(AssistantError) as exc_info:
                await client.get_feedback("p")

        assert exc_info.value.message == "claude exited with code 2"

    @pytest.mark.asyncio
    async def test_given_missing_workspace_when_query_then_tool_failed(
        self, tmp_path: Path
    ) -> None:
        client = AssistantClient(tmp_path / "gone")
        exec_mock = AsyncMock()

        with patch(WHICH, return_value="/usr/bin/claude"), patch(EXEC, new=exec_mock):
            with pytest.raises(AssistantError) as exc_info:
                await client.get_feedback("p")

        assert exc_info.value.code == ErrorCode.TOOL_FAILED
        assert "Workspace directory not found" in exc_info.value.message
        exec_mock.assert_not_awaited()


class TestSessionConflict:
    """One-shot resume retry when the session already exists."""

    @pytest.mark.asyncio
    async def test_given_conflict_on_create_when_query_then_single_resume_retry(
        self, client: AssistantClient
    ) -> None:
        # Given
        conflict = _proc(1, stderr=b"Error: Session ID is already in use.\n")
        resumed = _proc(0, stdout=b"welcome back")
        exec_mock = AsyncMock(side_effect=[conflict, resumed])

        # When
        with patch(WHICH, return_value="/usr/bin/claude"), patch(EXEC, new=exec_mock):
            result = await client.get_feedback("same prompt")

        # Then
        assert result == "welcome back"
        assert exec_mock.await_count == 2
        assert _argv(exec_mock, 0)[1] == "--session-id"
        assert _argv(exec_mock, 1)[1:3] == ["--resume", client.session_id]
        conflict.communicate.assert_awaited_once_with(b"same prompt")
        resumed.communicate.assert_awaited_once_with(b"same prompt")
        assert client.is_new_session() is False

    @pytest.mark.asyncio
    async def test_given_conflict_then_retry_fails_when_query_then_retry_error_surfaces(
        self, client: AssistantClient
    ) -> None:
        exec_mock = AsyncMock(
            side_effect=[
                _proc(1, stderr=b"Session already in use"),
                _proc(1, stderr=b"resume failed"),
            ]
        )

        with patch(WHICH, return_value="/usr/bin/claude"), patch(EXEC, new=exec_mock):
            with pytest.raises(AssistantError) as exc_info:
                await client.get_feedback("p")

        assert exc_info.value.code == ErrorCode.TOOL_FAILED
        assert exc_info.value.message == "resume failed"
        assert exec_mock.await_count == 2

    @pytest.mark.asyncio
    async def test_given_conflict_text_on_resume_when_query_then_no_retry(
        self, client: AssistantClient
    ) -> None:
        """Only create attempts are retried."""
        client.registry.add(client.session_id)
        exec_mock = AsyncMock(return_value=_proc(1, stderr=b"already in use"))

        with patch(WHICH, return_value="/usr/bin/claude"), patch(EXEC, new=exec_mock):
            with pytest.raises(AssistantError) as exc_info:
                await client.get_feedback("p")

        assert exc_info.value.code == ErrorCode.TOOL_FAILED
        assert exec_mock.await_count == 1

    @pytest.mark.asyncio
    async def test_given_other_failure_on_create_when_query_then_no_retry(
        self, client: AssistantClient
    ) -> None:
        exec_mock = AsyncMock(return_value=_proc(1, stderr=b"invalid api key"))

        with patch(WHICH, return_value="/usr/bin/claude"), patch(EXEC, new=exec_mock):
            with pytest.raises(AssistantError):
                await client.get_feedback("p")

        assert exec_mock.await_count == 1


class TestCancellation:
    """Cancelling get_feedback kills the child."""

    @pytest.mark.asyncio
    async def test_given_running_process_when_cancelled_then_killed(
        self, client: AssistantClient
    ) -> None:
        # Given
        proc = _proc()
        proc.returncode = None
        started = asyncio.Event()

        async def _hang(_input: bytes) -> tuple[bytes, bytes]:
            started.set()
            await asyncio.Event().wait()
            return b"", b""

        proc.communicate = AsyncMock(side_effect=_hang)

        with patch(WHICH, return_value="/usr/bin/claude"), patch(
            EXEC, new=AsyncMock(return_value=proc)
        ):
            task = asyncio.create_task(client.get_feedback("p"))
            await started.wait()

            # When
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        # Then
        proc.kill.assert_called_once()
        proc.wait.assert_awaited_once()
        assert client.is_new_session() is True
