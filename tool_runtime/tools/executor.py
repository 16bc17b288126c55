from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from tool_runtime.config.settings import Settings
from tool_runtime.security.audit_logger import ToolAuditLogger
from tool_runtime.tools.command_runner import CommandRunner
from tool_runtime.tools.concurrency import CancellationToken, PathLockArena
from tool_runtime.tools.errors import (
    ExecutionError,
    PermissionDenied,
    ToolCancelled,
    ToolError,
    ToolNotImplemented,
    ToolValidationException,
    UnknownTool,
)
from tool_runtime.tools.registry import PermissionTier, ToolRegistry
from tool_runtime.tools.sandbox import Sandbox


@dataclass(frozen=True)
class ToolContext:
    """Collaborators handed to every tool handler."""

    sandbox: Sandbox
    command_runner: CommandRunner
    settings: Settings = field(default_factory=Settings)
    audit_logger: ToolAuditLogger | None = None
    path_locks: PathLockArena = field(default_factory=PathLockArena)
    http_transport: httpx.BaseTransport | None = None
    cancel_token: CancellationToken | None = None

    def check_cancelled(self, operation: str) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(operation)


ToolResult = str | dict[str, Any] | list[Any]
ToolDispatchHandler = Callable[[ToolContext, Any], ToolResult]


class ToolExecutionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tool_name: str = Field(min_length=1, validation_alias=AliasChoices("tool_name", "tool", "name"))
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("arguments", "payload"),
    )


ALL_TIERS = frozenset(PermissionTier)


class ToolDispatcher:
    """Route tool calls to handlers and normalize their failures.

    ``dispatch`` raises :class:`ToolError` subclasses with the handler's message
    intact; ``execute`` folds the same outcome into an ``(ok, payload)`` pair.
    Nothing is retried and no result is cached.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        dispatch_map: dict[str, ToolDispatchHandler],
        context: ToolContext,
        allowed_tiers: frozenset[PermissionTier] = ALL_TIERS,
    ) -> None:
        self.registry = registry
        self.dispatch_map = dispatch_map
        self.context = context
        self.allowed_tiers = frozenset(allowed_tiers)

    def dispatch(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ToolResult:
        arguments = arguments if arguments is not None else {}
        try:
            return self._run(name, arguments, cancel_token)
        except ToolError as exc:
            if exc.tool_name is None:
                exc.tool_name = name
            self._log_failure(name, exc, arguments)
            raise
        except Exception as exc:
            wrapped = ExecutionError(str(exc) or exc.__class__.__name__, tool_name=name)
            self._log_failure(name, wrapped, arguments)
            raise wrapped from exc

    def execute(
        self,
        request: ToolExecutionRequest,
        cancel_token: CancellationToken | None = None,
    ) -> tuple[bool, dict[str, Any]]:
        try:
            result = self.dispatch(request.tool_name, request.arguments, cancel_token=cancel_token)
        except ToolError as exc:
            return False, exc.to_payload()
        return True, {"tool_name": request.tool_name, "result": result}

    def _run(
        self,
        name: str,
        arguments: dict[str, Any],
        cancel_token: CancellationToken | None,
    ) -> ToolResult:
        tool = self.registry.get(name)
        if tool is None:
            raise UnknownTool(f"Tool not found: {name}")

        if tool.permission_tier not in self.allowed_tiers:
            reason = f"{tool.permission_tier.value} permission is not enabled"
            if self.context.audit_logger is not None:
                self.context.audit_logger.log_permission_denied(name, reason)
            raise PermissionDenied(
                f"Tool {name} denied: {reason}",
                required_permission=tool.permission_tier.value,
            )

        validated_ok, payload_or_error = self.registry.validate_input(name, arguments)
        if not validated_ok:
            raise ToolValidationException(
                payload_or_error["message"],
                errors=payload_or_error["errors"],
            )

        handler = self.dispatch_map.get(name)
        if handler is None:
            raise ToolNotImplemented(f"Tool handler not implemented: {name}")

        if cancel_token is not None and cancel_token.cancelled:
            raise ToolCancelled(f"Cancelled before start: {name}")

        context = self.context
        if cancel_token is not None:
            context = dataclasses.replace(context, cancel_token=cancel_token)

        result = handler(context, payload_or_error)
        if not isinstance(result, (str, dict, list)):
            raise ExecutionError(f"Tool {name} returned invalid result shape: {type(result).__name__}")
        return result

    def _log_failure(self, name: str, exc: ToolError, arguments: dict[str, Any]) -> None:
        if self.context.audit_logger is None:
            return
        self.context.audit_logger.log_tool_failure(
            tool_name=name,
            code=exc.code.value,
            message=exc.message,
            arguments=arguments,
        )
