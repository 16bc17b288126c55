from __future__ import annotations

from pathlib import Path
from typing import Any

from tool_runtime.config.settings import Settings
from tool_runtime.security.audit_logger import ToolAuditLogger
from tool_runtime.tools.bookkeeping_tools import build_bookkeeping_tool_dispatch_map, register_bookkeeping_tools
from tool_runtime.tools.command_runner import SubprocessCommandRunner
from tool_runtime.tools.executor import ALL_TIERS, ToolContext, ToolDispatcher
from tool_runtime.tools.file_tools import build_file_tool_dispatch_map, register_core_file_tools
from tool_runtime.tools.notebook_tools import build_notebook_tool_dispatch_map, register_notebook_tools
from tool_runtime.tools.registry import PermissionTier, ToolRegistry
from tool_runtime.tools.sandbox import LocalSandbox, SandboxConfig
from tool_runtime.tools.search_tools import build_search_tool_dispatch_map, register_search_tools
from tool_runtime.tools.shell_tools import build_shell_tool_dispatch_map, register_shell_tools
from tool_runtime.tools.web_tools import build_web_tool_dispatch_map, register_web_tools


PLAN_MODE_TIERS = frozenset({PermissionTier.READ_ONLY})


def build_default_registry() -> ToolRegistry:
    registry = ToolRegistry()
    register_core_file_tools(registry)
    register_search_tools(registry)
    register_shell_tools(registry)
    register_notebook_tools(registry)
    register_web_tools(registry)
    register_bookkeeping_tools(registry)
    return registry


def build_default_dispatch_map() -> dict[str, Any]:
    dispatch_map: dict[str, Any] = {}
    dispatch_map.update(build_file_tool_dispatch_map())
    dispatch_map.update(build_search_tool_dispatch_map())
    dispatch_map.update(build_shell_tool_dispatch_map())
    dispatch_map.update(build_notebook_tool_dispatch_map())
    dispatch_map.update(build_web_tool_dispatch_map())
    dispatch_map.update(build_bookkeeping_tool_dispatch_map())
    return dispatch_map


def build_dispatcher(
    context: ToolContext,
    allowed_tiers: frozenset[PermissionTier] = ALL_TIERS,
) -> ToolDispatcher:
    return ToolDispatcher(
        registry=build_default_registry(),
        dispatch_map=build_default_dispatch_map(),
        context=context,
        allowed_tiers=allowed_tiers,
    )


def build_local_dispatcher(
    settings: Settings | None = None,
    audit_logger: ToolAuditLogger | None = None,
) -> ToolDispatcher:
    """Dispatcher over ``WORKSPACE_ROOT`` on local disk with a subprocess runner."""
    active_settings = settings or Settings()
    root = Path(active_settings.WORKSPACE_ROOT)
    root.mkdir(parents=True, exist_ok=True)

    sandbox = LocalSandbox(
        SandboxConfig(
            root=root,
            max_read_bytes=active_settings.MAX_READ_BYTES,
            max_write_bytes=active_settings.MAX_WRITE_BYTES,
            allow_write=active_settings.ALLOW_WRITE,
        )
    )
    runner = SubprocessCommandRunner(
        cwd=sandbox.root,
        default_timeout_ms=active_settings.DEFAULT_COMMAND_TIMEOUT_MS,
    )
    context = ToolContext(
        sandbox=sandbox,
        command_runner=runner,
        settings=active_settings,
        audit_logger=audit_logger,
    )
    return build_dispatcher(context)
