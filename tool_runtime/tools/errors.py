from __future__ import annotations

from enum import Enum
from typing import Any


class ToolErrorCode(str, Enum):
    TOOL_NOT_FOUND = "tool_not_found"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    EXECUTION_ERROR = "execution_error"
    HTTP_ERROR = "http_error"
    WRITE_FAILED = "write_failed"
    CELL_REQUIRED = "cell_required"
    INVALID_DOCUMENT = "invalid_document"
    PERMISSION_DENIED = "permission_denied"
    TOOL_NOT_IMPLEMENTED = "tool_not_implemented"
    CANCELLED = "cancelled"


class ToolError(Exception):
    """Base class for failures surfaced to the agent."""

    code: ToolErrorCode = ToolErrorCode.EXECUTION_ERROR

    def __init__(self, message: str, *, tool_name: str | None = None, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.tool_name = tool_name
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code.value,
            "tool_name": self.tool_name,
            "message": self.message,
        }
        payload.update(self.details)
        return payload


class UnknownTool(ToolError):
    code = ToolErrorCode.TOOL_NOT_FOUND


class ToolValidationException(ToolError):
    code = ToolErrorCode.VALIDATION_ERROR


class NotFound(ToolError):
    code = ToolErrorCode.NOT_FOUND


class Ambiguous(ToolError):
    code = ToolErrorCode.AMBIGUOUS


class ExecutionError(ToolError):
    code = ToolErrorCode.EXECUTION_ERROR


class HttpError(ToolError):
    code = ToolErrorCode.HTTP_ERROR


class WriteFailed(ToolError):
    code = ToolErrorCode.WRITE_FAILED


class CellRequired(ToolError):
    code = ToolErrorCode.CELL_REQUIRED


class InvalidDocument(ToolError):
    code = ToolErrorCode.INVALID_DOCUMENT


class PermissionDenied(ToolError):
    code = ToolErrorCode.PERMISSION_DENIED


class ToolNotImplemented(ToolError):
    code = ToolErrorCode.TOOL_NOT_IMPLEMENTED


class ToolCancelled(ToolError):
    code = ToolErrorCode.CANCELLED
