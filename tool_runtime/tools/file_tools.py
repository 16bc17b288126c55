from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field

from tool_runtime.tools.errors import Ambiguous, NotFound, WriteFailed
from tool_runtime.tools.executor import ToolContext
from tool_runtime.tools.registry import PermissionTier, ToolDefinition, ToolRegistry
from tool_runtime.tools.sandbox import Sandbox


class ReadInput(BaseModel):
    file_path: str = Field(min_length=1, description="Absolute path to file")
    offset: int | None = Field(default=None, ge=0, description="Number of lines to skip")
    limit: int | None = Field(default=None, ge=0, description="Number of lines to read")


class EditOp(BaseModel):
    old_string: str = Field(min_length=1, description="Text to replace")
    new_string: str = Field(description="Replacement text")
    replace_all: bool = Field(default=False, description="Replace all occurrences")


class EditInput(EditOp):
    file_path: str = Field(min_length=1, description="Absolute path to file")


class MultiEditInput(BaseModel):
    file_path: str = Field(min_length=1, description="Absolute path to file")
    edits: list[EditOp] = Field(min_length=1, description="Edits applied in order")


class WriteInput(BaseModel):
    file_path: str = Field(min_length=1, description="Absolute path to file")
    content: str = Field(description="File content")


class LsInput(BaseModel):
    path: str = Field(min_length=1, description="Absolute path to list")
    ignore: list[str] | None = Field(default=None, description="Glob patterns to ignore")


def load_text(sandbox: Sandbox, path: str, action: str = "read file") -> str:
    """Return the text content of ``path`` or raise :class:`NotFound`."""
    file = sandbox.read_file(path)
    if file is None or file.kind != "text" or not isinstance(file.content, str):
        raise NotFound(f"Cannot {action} {path}: file not found or not text", path=path)
    return file.content


def store_text(sandbox: Sandbox, path: str, content: str, action: str = "write file") -> None:
    if not sandbox.write_file(path, content):
        raise WriteFailed(f"Cannot {action} {path}: sandbox rejected the write", path=path)


def apply_edit(content: str, op: EditOp, path: str) -> str:
    """Apply one exact-string replacement, enforcing the uniqueness rule."""
    occurrences = content.count(op.old_string)
    if occurrences == 0:
        raise NotFound(f"String not found in file {path}: {op.old_string!r}", path=path)
    if occurrences > 1 and not op.replace_all:
        raise Ambiguous(
            f"Multiple occurrences ({occurrences}) of {op.old_string!r} found in {path}. "
            "Use replace_all=true or provide more context.",
            path=path,
            occurrences=occurrences,
        )
    if op.replace_all:
        return content.replace(op.old_string, op.new_string)
    return content.replace(op.old_string, op.new_string, 1)


def number_lines(lines: list[str], start: int = 0) -> str:
    return "\n".join(f"{start + index + 1}→{line}" for index, line in enumerate(lines))


def run_read(context: ToolContext, payload: ReadInput) -> str:
    content = load_text(context.sandbox, payload.file_path)
    lines = content.split("\n")

    if payload.offset or payload.limit:
        start = min(payload.offset or 0, len(lines))
        end = start + payload.limit if payload.limit else len(lines)
        return number_lines(lines[start:end], start)

    return number_lines(lines)


def run_edit(context: ToolContext, payload: EditInput) -> str:
    path = payload.file_path
    with context.path_locks.hold(path):
        content = load_text(context.sandbox, path, action="edit file")
        updated = apply_edit(content, payload, path)
        context.check_cancelled(f"edit {path}")
        store_text(context.sandbox, path, updated, action="edit file")
    return f"File {path} edited successfully"


def run_multi_edit(context: ToolContext, payload: MultiEditInput) -> str:
    path = payload.file_path
    with context.path_locks.hold(path):
        content = load_text(context.sandbox, path, action="multi-edit file")
        for index, op in enumerate(payload.edits, start=1):
            try:
                content = apply_edit(content, op, path)
            except (NotFound, Ambiguous) as exc:
                message = f"Edit {index} of {len(payload.edits)} failed, file left unchanged: {exc.message}"
                raise type(exc)(message, edit_index=index, **exc.details) from exc
        context.check_cancelled(f"multi_edit {path}")
        store_text(context.sandbox, path, content, action="multi-edit file")
    return f"File {path} edited with {len(payload.edits)} changes"


def run_write(context: ToolContext, payload: WriteInput) -> str:
    path = payload.file_path
    with context.path_locks.hold(path):
        context.check_cancelled(f"write {path}")
        store_text(context.sandbox, path, payload.content)
    return f"File {path} written successfully"


def ignore_pattern_to_regex(pattern: str) -> re.Pattern[str]:
    return re.compile(re.escape(pattern).replace(r"\*", ".*"))


def run_ls(context: ToolContext, payload: LsInput) -> list[dict[str, Any]]:
    entries = context.sandbox.read_dir(payload.path)
    if entries is None:
        raise NotFound(f"Cannot list directory {payload.path}", path=payload.path)

    ignore = [ignore_pattern_to_regex(pattern) for pattern in payload.ignore or []]
    return [
        {"path": entry.path, "type": entry.kind}
        for entry in entries
        if not any(regex.search(entry.path) for regex in ignore)
    ]


def build_file_tool_dispatch_map() -> dict[str, Any]:
    return {
        "read": run_read,
        "edit": run_edit,
        "multi_edit": run_multi_edit,
        "write": run_write,
        "ls": run_ls,
    }


def register_core_file_tools(registry: ToolRegistry) -> None:
    registry.register(
        ToolDefinition(
            name="read",
            description="Read file contents with 1-based line numbers",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=ReadInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="edit",
            description="Make an exact string replacement in a file",
            permission_tier=PermissionTier.WRITE_SAFE,
            input_model=EditInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="multi_edit",
            description="Apply several exact string replacements to one file atomically",
            permission_tier=PermissionTier.WRITE_SAFE,
            input_model=MultiEditInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="write",
            description="Write or overwrite file contents",
            permission_tier=PermissionTier.WRITE_SAFE,
            input_model=WriteInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="ls",
            description="List files and directories",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=LsInput,
        )
    )
