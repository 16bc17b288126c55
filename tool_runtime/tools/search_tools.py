from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from tool_runtime.tools.executor import ToolContext
from tool_runtime.tools.registry import PermissionTier, ToolDefinition, ToolRegistry
from tool_runtime.tools.sandbox import LocalSandbox, workspace_relative


DEFAULT_EXCLUDED_DIRS = (
    "node_modules",
    ".next",
    ".git",
    "dist",
    "build",
    ".cache",
    "coverage",
    ".nyc_output",
    "tmp",
    "temp",
    ".temp",
    ".tmp",
    "logs",
)

GrepOutputMode = Literal["content", "files_with_matches", "count"]


class GlobInput(BaseModel):
    pattern: str = Field(min_length=1, description='Glob pattern like "**/*.js"')
    path: str | None = Field(default=None, description="Directory to search (defaults to workspace root)")


class GrepInput(BaseModel):
    pattern: str = Field(min_length=1, description="Regex pattern to search")
    path: str | None = Field(default=None, description="File or directory to search")
    glob: str | None = Field(default=None, description="Filter files with glob pattern")
    type: str | None = Field(default=None, description="File type filter (js, py, rust, etc.)")
    output_mode: GrepOutputMode = "files_with_matches"
    case_insensitive: bool = False
    show_line_numbers: bool = False
    context_after: int | None = Field(default=None, ge=0)
    context_before: int | None = Field(default=None, ge=0)
    context_around: int | None = Field(default=None, ge=0)
    multiline: bool = False
    head_limit: int | None = Field(default=None, ge=1, description="Limit output lines")


def _find_match_args(pattern: str) -> list[str]:
    cleaned = pattern[2:] if pattern.startswith("./") else pattern
    if cleaned.startswith("**/") and "/" not in cleaned[3:]:
        cleaned = cleaned[3:]
    if "/" not in cleaned:
        return ["-name", cleaned]
    # find's "*" already spans directory separators
    return ["-path", "*/" + cleaned.replace("**/", "*").replace("**", "*")]


def build_glob_argv(pattern: str, target: str = ".") -> list[str]:
    argv = ["find", target, "-mindepth", "1", "("]
    for index, name in enumerate(DEFAULT_EXCLUDED_DIRS):
        if index:
            argv.append("-o")
        argv.extend(["-name", name])
    argv.extend([")", "-prune", "-o", "-type", "f"])
    argv.extend(_find_match_args(pattern))
    argv.append("-print")
    return argv


def build_grep_argv(payload: GrepInput, target: str = ".") -> list[str]:
    argv = ["rg", "--color", "never"]
    if payload.case_insensitive:
        argv.append("-i")
    if payload.show_line_numbers:
        argv.append("-n")
    if payload.context_after is not None:
        argv.extend(["-A", str(payload.context_after)])
    if payload.context_before is not None:
        argv.extend(["-B", str(payload.context_before)])
    if payload.context_around is not None:
        argv.extend(["-C", str(payload.context_around)])
    if payload.multiline:
        argv.extend(["-U", "--multiline-dotall"])
    if payload.glob:
        argv.extend(["-g", payload.glob])
    if payload.type:
        argv.extend(["-t", payload.type])

    if payload.output_mode == "files_with_matches":
        argv.append("-l")
    elif payload.output_mode == "count":
        argv.append("-c")

    argv.extend(["-e", payload.pattern, "--", target])
    return argv


def _non_empty_lines(output: str) -> list[str]:
    return [line for line in output.strip().split("\n") if line.strip()]


def resolve_search_target(context: ToolContext, path: str | None) -> str | None:
    """Root-relative ``./`` target for ``find``/``rg``, or None if ``path`` leaves the workspace.

    The command runner works from the workspace root, so workspace paths such as
    ``/src`` are handed over as ``./src``. The ``./`` prefix also keeps a path
    from ever being read as an option.
    """
    target = workspace_relative(path)
    if target is None:
        return None
    if isinstance(context.sandbox, LocalSandbox):
        ok, _ = context.sandbox.resolve_in_sandbox(target)
        if not ok:
            return None
    return target


def run_glob(context: ToolContext, payload: GlobInput) -> list[str]:
    """Never raises: an unusable search degrades to an empty list."""
    target = resolve_search_target(context, payload.path)
    if target is None:
        return []

    try:
        result = context.command_runner.run(
            build_glob_argv(payload.pattern, target),
            cancel_token=context.cancel_token,
        )
    except Exception:
        return []

    if not result.success or not result.output.strip():
        return []
    return _non_empty_lines(result.output)[: context.settings.GLOB_MAX_RESULTS]


def _grep_failure(payload: GrepInput, reason: object) -> dict[str, Any]:
    return {
        "matches": [],
        "mode": payload.output_mode,
        "error": f"grep for {payload.pattern!r} in {payload.path or '.'} failed: {reason}",
    }


def run_grep(context: ToolContext, payload: GrepInput) -> dict[str, Any]:
    target = resolve_search_target(context, payload.path)
    if target is None:
        return _grep_failure(payload, "path is outside the workspace root")

    try:
        result = context.command_runner.run(build_grep_argv(payload, target), cancel_token=context.cancel_token)
    except Exception as exc:
        return _grep_failure(payload, exc)

    if result.success:
        lines = _non_empty_lines(result.output)
    elif result.exit_code == 1 and not result.output.strip():
        # ripgrep reports "no matches" with status 1
        lines = []
    else:
        return _grep_failure(payload, result.error)

    if payload.head_limit is not None:
        lines = lines[: payload.head_limit]
    return {"matches": lines, "mode": payload.output_mode, "count": len(lines)}


def build_search_tool_dispatch_map() -> dict[str, Any]:
    return {
        "glob": run_glob,
        "grep": run_grep,
    }


def register_search_tools(registry: ToolRegistry) -> None:
    registry.register(
        ToolDefinition(
            name="glob",
            description="Fast file pattern matching",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=GlobInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="grep",
            description="Search file contents using ripgrep",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=GrepInput,
        )
    )
