from __future__ import annotations

import posixpath
import shlex
from typing import Any

from pydantic import BaseModel, Field

from tool_runtime.tools.executor import ToolContext
from tool_runtime.tools.registry import PermissionTier, ToolDefinition, ToolRegistry


MAX_TIMEOUT_MS = 600_000

READ_ONLY_PROGRAMS = (
    "ls", "cat", "head", "tail", "grep", "find", "wc", "sort",
    "uniq", "du", "df", "ps", "which", "whereis",
)
EDIT_PROGRAMS = ("mkdir", "rm", "rmdir", "mv", "cp", "touch", "chmod", "chown", "ln", "git")
CHAINING_TOKENS = (";", "&", "|", "`", "$(", ">", "<", "\n")

# find actions that delete, run programs or write files
FIND_WRITE_ACTIONS = ("-delete", "-exec", "-execdir", "-ok", "-okdir", "-fprint", "-fprint0", "-fprintf", "-fls")
UNIQ_VALUE_OPTIONS = ("-f", "-s", "-w")


def read_only_violation(program: str, args: list[str]) -> str | None:
    """Return the argument that would let a read-only program write or execute, if any."""
    if program == "find":
        for arg in args:
            if arg in FIND_WRITE_ACTIONS:
                return arg
    elif program == "sort":
        for arg in args:
            if arg.startswith(("--output", "--compress-program")):
                return arg
            if arg.startswith("-") and not arg.startswith("--") and "o" in arg[1:]:
                return arg
    elif program == "uniq":
        # uniq writes to its second operand
        operands: list[str] = []
        skip_next = False
        for arg in args:
            if skip_next:
                skip_next = False
            elif arg in UNIQ_VALUE_OPTIONS:
                skip_next = True
            elif arg == "-" or not arg.startswith("-"):
                operands.append(arg)
        if len(operands) > 1:
            return operands[1]
    return None


class BashInput(BaseModel):
    command: str = Field(min_length=1, description="Command to execute")
    description: str | None = Field(default=None, description="What the command does (5-10 words)")
    timeout: int | None = Field(default=None, ge=1, le=MAX_TIMEOUT_MS, description="Timeout in milliseconds")


def _failure(message: str) -> dict[str, Any]:
    return {"output": "", "success": False, "error": message}


def split_command(command: str) -> list[str]:
    try:
        return shlex.split(command)
    except ValueError:
        return command.split()


def program_name(command: str) -> str:
    words = split_command(command)
    return posixpath.basename(words[0]) if words else ""


def _run_command(context: ToolContext, payload: BashInput) -> dict[str, Any]:
    timeout = payload.timeout
    if timeout is None:
        timeout = context.settings.DEFAULT_COMMAND_TIMEOUT_MS
    timeout = min(timeout, context.settings.MAX_COMMAND_TIMEOUT_MS)

    try:
        result = context.command_runner.run(
            payload.command,
            timeout_ms=timeout,
            cancel_token=context.cancel_token,
        )
    except Exception as exc:
        return _failure(f"Command failed to run: {payload.command}: {exc}")
    return result.as_dict()


def run_bash(context: ToolContext, payload: BashInput) -> dict[str, Any]:
    return _run_command(context, payload)


def _run_restricted(
    context: ToolContext,
    payload: BashInput,
    allowed: tuple[str, ...],
    mode: str,
) -> dict[str, Any]:
    if any(token in payload.command for token in CHAINING_TOKENS):
        return _failure(
            f"Command chaining, redirection and substitution are not allowed in {mode} mode: {payload.command}"
        )
    program = program_name(payload.command)
    if program not in allowed:
        return _failure(
            f"Command '{program}' is not allowed in {mode} mode. "
            f"Only {', '.join(allowed)} commands are permitted."
        )
    return _run_command(context, payload)


def run_bash_read(context: ToolContext, payload: BashInput) -> dict[str, Any]:
    words = split_command(payload.command)
    if words:
        flagged = read_only_violation(posixpath.basename(words[0]), words[1:])
        if flagged is not None:
            return _failure(f"Argument '{flagged}' is not allowed in read-only mode: {payload.command}")
    return _run_restricted(context, payload, READ_ONLY_PROGRAMS, "read-only")


def run_bash_edit(context: ToolContext, payload: BashInput) -> dict[str, Any]:
    return _run_restricted(context, payload, EDIT_PROGRAMS, "edit")


def build_shell_tool_dispatch_map() -> dict[str, Any]:
    return {
        "bash": run_bash,
        "bash_read": run_bash_read,
        "bash_edit": run_bash_edit,
    }


def register_shell_tools(registry: ToolRegistry) -> None:
    registry.register(
        ToolDefinition(
            name="bash",
            description="Execute a shell command in the workspace",
            permission_tier=PermissionTier.SYSTEM,
            input_model=BashInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="bash_read",
            description="Execute read-only shell commands",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=BashInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="bash_edit",
            description="Execute file modification commands",
            permission_tier=PermissionTier.WRITE_SAFE,
            input_model=BashInput,
        )
    )
