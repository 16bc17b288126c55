from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ValidationError


class PermissionTier(str, Enum):
    READ_ONLY = "read_only"
    WRITE_SAFE = "write_safe"
    SYSTEM = "system"


class ToolDefinition(BaseModel):
    name: str
    description: str
    permission_tier: PermissionTier
    input_model: type[BaseModel]


class ToolRegistry:
    """Named tool definitions, their input models and permission tiers.

    Handlers live elsewhere; the registry only knows what a call must look like.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self, tiers: Iterable[PermissionTier] | None = None) -> list[ToolDefinition]:
        """Tools sorted by name, optionally restricted to the given permission tiers."""
        allowed = None if tiers is None else frozenset(tiers)
        return [
            self._tools[name]
            for name in sorted(self._tools.keys())
            if allowed is None or self._tools[name].permission_tier in allowed
        ]

    def validate_input(self, tool_name: str, payload: dict[str, Any]) -> tuple[bool, BaseModel | dict[str, Any]]:
        """Validate ``payload`` against the tool's input model.

        Returns ``(True, model_instance)`` or ``(False, error_payload)``.
        """
        tool = self.get(tool_name)
        if tool is None:
            return False, {
                "code": "tool_not_found",
                "tool_name": tool_name,
                "message": f"Tool not found: {tool_name}",
                "errors": [],
            }

        try:
            return True, tool.input_model.model_validate(payload)
        except ValidationError as exc:
            return False, {
                "code": "validation_error",
                "tool_name": tool_name,
                "message": f"Input validation failed for {tool_name}: {exc.error_count()} error(s)",
                "errors": exc.errors(include_url=False, include_context=False),
            }

    def export_tool_schema(self, tool_name: str) -> dict[str, Any]:
        tool = self.get(tool_name)
        if tool is None:
            raise KeyError(f"Tool not found: {tool_name}")

        return {
            "name": tool.name,
            "description": tool.description,
            "permission_tier": tool.permission_tier.value,
            "input_schema": tool.input_model.model_json_schema(),
        }

    def export_all_schemas(self, tiers: Iterable[PermissionTier] | None = None) -> list[dict[str, Any]]:
        return [self.export_tool_schema(tool.name) for tool in self.list_tools(tiers)]
