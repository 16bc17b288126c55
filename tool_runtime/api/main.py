from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from tool_runtime.config.settings import Settings
from tool_runtime.security.audit_logger import ToolAuditLogger
from tool_runtime.tools.catalog import build_local_dispatcher
from tool_runtime.tools.errors import ToolErrorCode
from tool_runtime.tools.executor import ToolDispatcher, ToolExecutionRequest


app = FastAPI(title="Tool Runtime")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class ToolCallRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    tool: str = Field(..., min_length=1, validation_alias=AliasChoices("tool", "name"))
    arguments: dict[str, Any] = Field(default_factory=dict)


_STATUS_BY_CODE = {
    ToolErrorCode.TOOL_NOT_FOUND.value: 404,
    ToolErrorCode.VALIDATION_ERROR.value: 422,
    ToolErrorCode.PERMISSION_DENIED.value: 403,
}


@lru_cache(maxsize=1)
def get_dispatcher() -> ToolDispatcher:
    settings = Settings()
    return build_local_dispatcher(settings, audit_logger=ToolAuditLogger(settings.AUDIT_LOG_PATH))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "service": "tool-runtime"}


@app.get("/tools")
def list_tools(dispatcher: ToolDispatcher = Depends(get_dispatcher)) -> list[dict[str, Any]]:
    return dispatcher.registry.export_all_schemas(dispatcher.allowed_tiers)


@app.post("/tools/call")
def call_tool(
    request: ToolCallRequest,
    dispatcher: ToolDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    ok, envelope = dispatcher.execute(
        ToolExecutionRequest(tool_name=request.tool, arguments=request.arguments)
    )
    if ok:
        return JSONResponse({"result": envelope["result"]})
    status_code = _STATUS_BY_CODE.get(envelope["code"], 200)
    return JSONResponse({"error": envelope}, status_code=status_code)
