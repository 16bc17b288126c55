from .registry import (
    PermissionTier,
    ToolDefinition,
    ToolRegistry,
)
from .errors import (
    Ambiguous,
    CellRequired,
    ExecutionError,
    HttpError,
    InvalidDocument,
    NotFound,
    PermissionDenied,
    ToolCancelled,
    ToolError,
    ToolErrorCode,
    ToolNotImplemented,
    ToolValidationException,
    UnknownTool,
    WriteFailed,
)
from .sandbox import DirEntry, InMemorySandbox, LocalSandbox, Sandbox, SandboxConfig, SandboxFile
from .command_runner import CommandResult, CommandRunner, SubprocessCommandRunner
from .concurrency import CancellationToken, PathLockArena
from .executor import ToolContext, ToolDispatcher, ToolExecutionRequest
from .catalog import (
    PLAN_MODE_TIERS,
    build_default_dispatch_map,
    build_default_registry,
    build_dispatcher,
    build_local_dispatcher,
)

__all__ = [
    "Ambiguous",
    "CancellationToken",
    "CellRequired",
    "CommandResult",
    "CommandRunner",
    "DirEntry",
    "ExecutionError",
    "HttpError",
    "InMemorySandbox",
    "InvalidDocument",
    "LocalSandbox",
    "NotFound",
    "PLAN_MODE_TIERS",
    "PathLockArena",
    "PermissionDenied",
    "PermissionTier",
    "Sandbox",
    "SandboxConfig",
    "SandboxFile",
    "SubprocessCommandRunner",
    "ToolCancelled",
    "ToolContext",
    "ToolDefinition",
    "ToolDispatcher",
    "ToolError",
    "ToolErrorCode",
    "ToolExecutionRequest",
    "ToolNotImplemented",
    "ToolRegistry",
    "ToolValidationException",
    "UnknownTool",
    "WriteFailed",
    "build_default_dispatch_map",
    "build_default_registry",
    "build_dispatcher",
    "build_local_dispatcher",
]
