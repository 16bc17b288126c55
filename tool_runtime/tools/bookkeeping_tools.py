from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from tool_runtime.tools.executor import ToolContext
from tool_runtime.tools.registry import PermissionTier, ToolDefinition, ToolRegistry


class TaskInput(BaseModel):
    description: str = Field(min_length=3, max_length=50, description="Short task description (3-5 words)")
    prompt: str = Field(description="Detailed task for the agent")
    subagent_type: Literal["general-purpose"] = "general-purpose"


class TodoItem(BaseModel):
    content: str = Field(min_length=1)
    status: Literal["pending", "in_progress", "completed"]
    priority: Literal["high", "medium", "low"]
    id: str = Field(min_length=1)


class TodoWriteInput(BaseModel):
    todos: list[TodoItem]

    @field_validator("todos")
    @classmethod
    def require_unique_ids(cls, todos: list[TodoItem]) -> list[TodoItem]:
        seen: set[str] = set()
        for todo in todos:
            if todo.id in seen:
                raise ValueError(f"duplicate todo id: {todo.id}")
            seen.add(todo.id)
        return todos


class ExitPlanModeInput(BaseModel):
    plan: str = Field(description="Implementation plan in markdown")


def run_task(context: ToolContext, payload: TaskInput) -> str:
    if context.audit_logger is not None:
        context.audit_logger.log_task_delegated(payload.subagent_type, payload.description, payload.prompt)
    return f"Launched {payload.subagent_type} agent to analyze: {payload.description}"


def run_todo_write(context: ToolContext, payload: TodoWriteInput) -> str:
    if context.audit_logger is not None:
        context.audit_logger.log_todos_updated([todo.model_dump() for todo in payload.todos])
    return f"Todo list updated with {len(payload.todos)} items"


def run_exit_plan_mode(context: ToolContext, payload: ExitPlanModeInput) -> str:
    if context.audit_logger is not None:
        context.audit_logger.log_plan_submitted(payload.plan)
    return "Exited plan mode, ready to implement"


def build_bookkeeping_tool_dispatch_map() -> dict[str, Any]:
    return {
        "task": run_task,
        "todo_write": run_todo_write,
        "exit_plan_mode": run_exit_plan_mode,
    }


def register_bookkeeping_tools(registry: ToolRegistry) -> None:
    registry.register(
        ToolDefinition(
            name="task",
            description="Launch a sub-agent for an analysis task",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=TaskInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="todo_write",
            description="Create and manage task lists",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=TodoWriteInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="exit_plan_mode",
            description="Exit planning mode when ready to code",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=ExitPlanModeInput,
        )
    )
