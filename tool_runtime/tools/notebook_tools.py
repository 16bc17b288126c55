from __future__ import annotations

import json
import uuid
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tool_runtime.tools.errors import CellRequired, InvalidDocument, NotFound
from tool_runtime.tools.executor import ToolContext
from tool_runtime.tools.file_tools import load_text, store_text
from tool_runtime.tools.registry import PermissionTier, ToolDefinition, ToolRegistry


CellType = Literal["code", "markdown", "raw"]


def split_source(source: str) -> list[str]:
    """Split cell text into nbformat source lines, keeping line endings."""
    return source.splitlines(keepends=True)


class NotebookCell(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    cell_type: CellType = "code"
    source: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("source", mode="before")
    @classmethod
    def normalize_source(cls, value: object) -> object:
        if isinstance(value, str):
            return split_source(value)
        return value

    def as_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        # cells written before nbformat 4.5 carry no id
        if data.get("id") is None:
            data.pop("id", None)
        return data


class NotebookDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    cells: list[NotebookCell] = Field(default_factory=list)

    def index_of(self, cell_id: str) -> int | None:
        for index, cell in enumerate(self.cells):
            if cell.id == cell_id:
                return index
        return None

    def to_json(self) -> str:
        data = self.model_dump()
        data["cells"] = [cell.as_dict() for cell in self.cells]
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


class NotebookReadInput(BaseModel):
    notebook_path: str = Field(min_length=1, description="Absolute path to .ipynb file")
    cell_id: str | None = Field(default=None, description="Cell ID to read")


class NotebookEditInput(BaseModel):
    notebook_path: str = Field(min_length=1, description="Absolute path to .ipynb file")
    new_source: str = Field(description="Cell content")
    cell_id: str | None = Field(default=None, description="Cell ID to edit, or anchor for insert")
    cell_type: Literal["code", "markdown"] | None = Field(default=None, description="Cell type")
    edit_mode: Literal["replace", "insert", "delete"] = "replace"


def load_notebook(context: ToolContext, path: str) -> NotebookDocument:
    content = load_text(context.sandbox, path, action="read notebook")
    try:
        return NotebookDocument.model_validate_json(content)
    except ValidationError as exc:
        raise InvalidDocument(
            f"Cannot parse notebook {path}: {exc.error_count()} validation error(s)",
            path=path,
        ) from exc


def _require_cell(notebook: NotebookDocument, cell_id: str | None, path: str, operation: str) -> int:
    if not cell_id:
        raise CellRequired(f"Cell ID required for {operation} operation on {path}", path=path)
    index = notebook.index_of(cell_id)
    if index is None:
        raise NotFound(f"Cell with ID {cell_id} not found in {path}", path=path, cell_id=cell_id)
    return index


def new_cell(source: str, cell_type: str | None) -> NotebookCell:
    kind = cell_type or "code"
    extra: dict[str, Any] = {}
    if kind == "code":
        extra = {"outputs": [], "execution_count": None}
    return NotebookCell(
        id=f"cell-{uuid.uuid4().hex[:12]}",
        cell_type=kind,
        source=split_source(source),
        metadata={},
        **extra,
    )


def run_notebook_read(context: ToolContext, payload: NotebookReadInput) -> dict[str, Any] | list[dict[str, Any]]:
    notebook = load_notebook(context, payload.notebook_path)
    if payload.cell_id is None:
        return [cell.as_dict() for cell in notebook.cells]

    index = notebook.index_of(payload.cell_id)
    if index is None:
        raise NotFound(
            f"Cell with ID {payload.cell_id} not found in {payload.notebook_path}",
            path=payload.notebook_path,
            cell_id=payload.cell_id,
        )
    return notebook.cells[index].as_dict()


def apply_notebook_edit(notebook: NotebookDocument, payload: NotebookEditInput) -> NotebookDocument:
    path = payload.notebook_path
    cells = list(notebook.cells)

    if payload.edit_mode == "delete":
        index = _require_cell(notebook, payload.cell_id, path, "delete")
        del cells[index]
    elif payload.edit_mode == "insert":
        cell = new_cell(payload.new_source, payload.cell_type)
        if payload.cell_id:
            anchor = notebook.index_of(payload.cell_id)
            if anchor is None:
                raise NotFound(
                    f"Anchor cell with ID {payload.cell_id} not found in {path}",
                    path=path,
                    cell_id=payload.cell_id,
                )
            cells.insert(anchor + 1, cell)
        else:
            cells.append(cell)
    else:
        index = _require_cell(notebook, payload.cell_id, path, "replace")
        updates: dict[str, Any] = {"source": split_source(payload.new_source)}
        if payload.cell_type:
            updates["cell_type"] = payload.cell_type
        cells[index] = cells[index].model_copy(update=updates)

    return notebook.model_copy(update={"cells": cells})


def run_notebook_edit(context: ToolContext, payload: NotebookEditInput) -> str:
    path = payload.notebook_path
    with context.path_locks.hold(path):
        notebook = apply_notebook_edit(load_notebook(context, path), payload)
        context.check_cancelled(f"notebook_edit {path}")
        store_text(context.sandbox, path, notebook.to_json(), action="write notebook")
    return f"Notebook {path} edited successfully"


def build_notebook_tool_dispatch_map() -> dict[str, Any]:
    return {
        "notebook_read": run_notebook_read,
        "notebook_edit": run_notebook_edit,
    }


def register_notebook_tools(registry: ToolRegistry) -> None:
    registry.register(
        ToolDefinition(
            name="notebook_read",
            description="Read Jupyter notebook cells",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=NotebookReadInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="notebook_edit",
            description="Replace, insert or delete Jupyter notebook cells",
            permission_tier=PermissionTier.WRITE_SAFE,
            input_model=NotebookEditInput,
        )
    )
