from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from tool_runtime.tools.concurrency import CancellationToken


Command = str | Sequence[str]

_POLL_INTERVAL_SECONDS = 0.05


@dataclass(frozen=True)
class CommandResult:
    output: str
    success: bool
    error: str | None = None
    exit_code: int | None = None

    def as_dict(self) -> dict[str, object]:
        return {"output": self.output, "success": self.success, "error": self.error}


@runtime_checkable
class CommandRunner(Protocol):
    """Process-execution collaborator used by the shell and search tools."""

    def run(
        self,
        command: Command,
        timeout_ms: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> CommandResult: ...


def describe_command(command: Command) -> str:
    if isinstance(command, str):
        return command
    return " ".join(command)


class SubprocessCommandRunner:
    """Run commands as local child processes.

    An argument vector is executed directly. A plain string is handed to
    ``bash -c`` and is only produced by the shell tools, whose whole purpose is
    running a caller-written command line.
    """

    def __init__(self, cwd: str | Path | None = None, default_timeout_ms: int = 120_000) -> None:
        self.cwd = Path(cwd) if cwd is not None else None
        self.default_timeout_ms = default_timeout_ms

    def _argv(self, command: Command) -> list[str]:
        if isinstance(command, str):
            return ["bash", "-c", command]
        return [str(part) for part in command]

    def run(
        self,
        command: Command,
        timeout_ms: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> CommandResult:
        argv = self._argv(command)
        effective_timeout_ms = timeout_ms if timeout_ms is not None else self.default_timeout_ms
        deadline = time.monotonic() + effective_timeout_ms / 1000.0

        process = subprocess.Popen(
            argv,
            cwd=str(self.cwd) if self.cwd is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                process.kill()
                stdout, _ = process.communicate()
                return CommandResult(
                    output=stdout or "",
                    success=False,
                    error=f"Command timed out after {effective_timeout_ms} ms: {describe_command(command)}",
                )
            if cancel_token is not None and cancel_token.cancelled:
                process.kill()
                stdout, _ = process.communicate()
                return CommandResult(
                    output=stdout or "",
                    success=False,
                    error=f"Command cancelled: {describe_command(command)}",
                )
            try:
                stdout, stderr = process.communicate(timeout=min(remaining, _POLL_INTERVAL_SECONDS))
                break
            except subprocess.TimeoutExpired:
                continue

        if process.returncode == 0:
            return CommandResult(output=stdout, success=True, error=None, exit_code=0)

        message = stderr.strip() or f"Command exited with status {process.returncode}"
        return CommandResult(output=stdout, success=False, error=message, exit_code=process.returncode)
