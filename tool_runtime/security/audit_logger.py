"""
Tool audit logger - record dispatch failures and agent bookkeeping as JSONL.
"""
from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from tool_runtime.config.settings import Settings


SUMMARY_LIMIT = 200


class ToolEventType(str, Enum):
    """Types of tool events."""

    TOOL_FAILED = "tool_failed"
    PERMISSION_DENIED = "permission_denied"
    TASK_DELEGATED = "task_delegated"
    TODOS_UPDATED = "todos_updated"
    PLAN_SUBMITTED = "plan_submitted"
    WEB_SEARCH_REQUESTED = "web_search_requested"


@dataclass
class ToolAuditEvent:
    """A tool event record."""

    event_type: ToolEventType
    timestamp: str
    context: dict[str, Any]
    severity: str  # "info", "warning", "error"
    tool_name: str | None = None


def summarize_arguments(arguments: Any, limit: int = SUMMARY_LIMIT) -> str:
    """Compact JSON rendering of tool arguments, cut to ``limit`` characters."""
    try:
        text = json.dumps(arguments, sort_keys=True, ensure_ascii=True, default=str)
    except (TypeError, ValueError):
        text = repr(arguments)
    return text[:limit] + "..." if len(text) > limit else text


class ToolAuditLogger:
    """Log tool events to file."""

    def __init__(self, log_path: str | Path) -> None:
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log_event(self, event: ToolAuditEvent) -> None:
        """Append one tool event to the JSONL log file."""
        line = json.dumps(asdict(event), ensure_ascii=True, default=str) + "\n"
        with self._lock:
            with open(self.log_path, "a", encoding="utf-8", newline="\n") as handle:
                handle.write(line)
                handle.flush()

    def _record(
        self,
        event_type: ToolEventType,
        tool_name: str | None,
        context: dict[str, Any],
        severity: str = "info",
    ) -> None:
        self.log_event(
            ToolAuditEvent(
                event_type=event_type,
                timestamp=datetime.now(timezone.utc).isoformat(),
                context=context,
                severity=severity,
                tool_name=tool_name,
            )
        )

    def log_tool_failure(
        self,
        tool_name: str,
        code: str,
        message: str,
        arguments: Any,
    ) -> None:
        """Log a tool call that raised."""
        self._record(
            ToolEventType.TOOL_FAILED,
            tool_name,
            {
                "code": code,
                "message": message,
                "arguments": summarize_arguments(arguments),
            },
            severity="error",
        )

    def log_permission_denied(self, tool_name: str, reason: str) -> None:
        self._record(ToolEventType.PERMISSION_DENIED, tool_name, {"reason": reason}, severity="warning")

    def log_task_delegated(self, subagent_type: str, description: str, prompt: str) -> None:
        self._record(
            ToolEventType.TASK_DELEGATED,
            "task",
            {
                "subagent_type": subagent_type,
                "description": description,
                "prompt": summarize_arguments(prompt),
            },
        )

    def log_todos_updated(self, todos: list[dict[str, Any]]) -> None:
        self._record(
            ToolEventType.TODOS_UPDATED,
            "todo_write",
            {
                "count": len(todos),
                "items": [
                    f"[{todo['status'].upper()}] {todo['content']} ({todo['priority']})"
                    for todo in todos
                ],
            },
        )

    def log_plan_submitted(self, plan: str) -> None:
        self._record(ToolEventType.PLAN_SUBMITTED, "exit_plan_mode", {"plan": plan})

    def log_web_search(
        self,
        query: str,
        allowed_domains: list[str] | None,
        blocked_domains: list[str] | None,
    ) -> None:
        self._record(
            ToolEventType.WEB_SEARCH_REQUESTED,
            "web_search",
            {
                "query": query,
                "allowed_domains": allowed_domains or [],
                "blocked_domains": blocked_domains or [],
            },
        )

    def read_events(
        self,
        event_type: ToolEventType | None = None,
        since: datetime | None = None,
    ) -> list[ToolAuditEvent]:
        """Read events from log file with optional filtering."""
        if not self.log_path.exists():
            return []

        normalized_since = since
        if normalized_since is not None and normalized_since.tzinfo is None:
            normalized_since = normalized_since.replace(tzinfo=timezone.utc)

        events: list[ToolAuditEvent] = []
        with open(self.log_path, "r", encoding="utf-8") as handle:
            for line in handle:
                if not line.strip():
                    continue

                event_dict = json.loads(line)
                event = ToolAuditEvent(
                    event_type=ToolEventType(event_dict["event_type"]),
                    timestamp=event_dict["timestamp"],
                    context=event_dict["context"],
                    severity=event_dict["severity"],
                    tool_name=event_dict.get("tool_name"),
                )

                if event_type is not None and event.event_type != event_type:
                    continue

                if normalized_since is not None:
                    event_time = datetime.fromisoformat(event.timestamp)
                    if event_time.tzinfo is None:
                        event_time = event_time.replace(tzinfo=timezone.utc)
                    if event_time < normalized_since:
                        continue

                events.append(event)

        return events


def create_default_audit_logger() -> ToolAuditLogger:
    """Create audit logger at the configured path."""
    return ToolAuditLogger(Settings().AUDIT_LOG_PATH)
