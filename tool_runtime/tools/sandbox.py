from __future__ import annotations

import posixpath
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Protocol, runtime_checkable


FileKind = Literal["text", "binary"]
EntryKind = Literal["file", "directory"]


@dataclass(frozen=True)
class SandboxFile:
    path: str
    kind: FileKind
    content: str | bytes


@dataclass(frozen=True)
class DirEntry:
    path: str
    kind: EntryKind


@runtime_checkable
class Sandbox(Protocol):
    """File-tree collaborator every file and notebook tool goes through."""

    def read_file(self, path: str) -> SandboxFile | None: ...

    def write_file(self, path: str, content: str) -> bool: ...

    def read_dir(self, path: str) -> list[DirEntry] | None: ...


def normalize_path(path: str) -> str:
    """Map a workspace path onto its canonical absolute form (``/src/a.txt``)."""
    cleaned = str(path).replace("\\", "/").strip()
    normalized = posixpath.normpath("/" + cleaned)
    # normpath keeps a leading double slash
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def workspace_relative(path: str | None) -> str | None:
    """Root-relative ``./`` form of a workspace path for child processes run at the root.

    Returns None when ``..`` segments climb above the workspace root.
    """
    cleaned = str(path or "/").replace("\\", "/").strip()
    depth = 0
    for segment in cleaned.split("/"):
        if segment == "..":
            depth -= 1
            if depth < 0:
                return None
        elif segment and segment != ".":
            depth += 1

    normalized = normalize_path(cleaned)
    if normalized == "/":
        return "."
    return "." + normalized


def _decode(path: str, data: bytes) -> SandboxFile:
    if b"\x00" in data:
        return SandboxFile(path=path, kind="binary", content=data)
    try:
        return SandboxFile(path=path, kind="text", content=data.decode("utf-8"))
    except UnicodeDecodeError:
        return SandboxFile(path=path, kind="binary", content=data)


@dataclass(frozen=True)
class SandboxConfig:
    root: Path
    max_read_bytes: int = 5_000_000
    max_write_bytes: int = 5_000_000
    allow_write: bool = True
    max_list_entries: int = 5_000


class SandboxErrorCode(str, Enum):
    INVALID_PATH = "invalid_path"
    PATH_OUTSIDE_ROOT = "path_outside_root"


class LocalSandbox:
    """Sandbox backed by a directory on disk; workspace paths are relative to ``root``."""

    def __init__(self, config: SandboxConfig) -> None:
        self.config = SandboxConfig(
            root=Path(config.root).resolve(),
            max_read_bytes=config.max_read_bytes,
            max_write_bytes=config.max_write_bytes,
            allow_write=config.allow_write,
            max_list_entries=config.max_list_entries,
        )

    @property
    def root(self) -> Path:
        return self.config.root

    def _error(self, code: SandboxErrorCode, message: str, **extra: Any) -> tuple[bool, dict[str, Any]]:
        payload: dict[str, Any] = {"code": code.value, "message": message}
        payload.update(extra)
        return False, payload

    def resolve_in_sandbox(self, path: str) -> tuple[bool, dict[str, Any]]:
        try:
            relative = normalize_path(path).lstrip("/")
        except TypeError:
            return self._error(SandboxErrorCode.INVALID_PATH, "Invalid path type")

        candidate = (self.root / relative).resolve(strict=False)
        try:
            candidate.relative_to(self.root)
        except ValueError:
            return self._error(
                SandboxErrorCode.PATH_OUTSIDE_ROOT,
                "Resolved path is outside the workspace root",
                path=str(path),
            )
        return True, {"code": "ok", "path": str(candidate)}

    def _resolve(self, path: str) -> Path | None:
        ok, resolved_or_error = self.resolve_in_sandbox(path)
        if not ok:
            return None
        return Path(resolved_or_error["path"])

    def read_file(self, path: str) -> SandboxFile | None:
        resolved = self._resolve(path)
        if resolved is None or not resolved.is_file():
            return None
        try:
            if resolved.stat().st_size > self.config.max_read_bytes:
                return None
            data = resolved.read_bytes()
        except OSError:
            return None
        return _decode(normalize_path(path), data)

    def write_file(self, path: str, content: str) -> bool:
        if not self.config.allow_write:
            return False

        data = content.encode("utf-8")
        if len(data) > self.config.max_write_bytes:
            return False

        resolved = self._resolve(path)
        if resolved is None or resolved == self.root or resolved.is_dir():
            return False
        try:
            resolved.parent.mkdir(parents=True, exist_ok=True)
            resolved.write_bytes(data)
        except OSError:
            return False
        return True

    def read_dir(self, path: str) -> list[DirEntry] | None:
        resolved = self._resolve(path)
        if resolved is None or not resolved.is_dir():
            return None
        try:
            children = sorted(resolved.iterdir(), key=lambda item: item.name)
        except OSError:
            return None
        return [
            DirEntry(path=item.name, kind="directory" if item.is_dir() else "file")
            for item in children[: self.config.max_list_entries]
        ]


class InMemorySandbox:
    """Virtual file tree; directories exist implicitly as prefixes of file paths."""

    def __init__(self, files: dict[str, str | bytes] | None = None, *, read_only: bool = False) -> None:
        self.read_only = read_only
        self._lock = threading.Lock()
        self._files: dict[str, SandboxFile] = {}
        for path, content in (files or {}).items():
            self._store(path, content)

    def _store(self, path: str, content: str | bytes) -> None:
        normalized = normalize_path(path)
        if isinstance(content, bytes):
            self._files[normalized] = _decode(normalized, content)
        else:
            self._files[normalized] = SandboxFile(path=normalized, kind="text", content=content)

    def _is_dir(self, normalized: str) -> bool:
        if normalized == "/":
            return True
        prefix = normalized + "/"
        return any(name.startswith(prefix) for name in self._files)

    def paths(self) -> list[str]:
        with self._lock:
            return sorted(self._files)

    def read_file(self, path: str) -> SandboxFile | None:
        with self._lock:
            return self._files.get(normalize_path(path))

    def write_file(self, path: str, content: str) -> bool:
        normalized = normalize_path(path)
        with self._lock:
            if self.read_only or normalized == "/" or self._is_dir(normalized):
                return False
            self._store(normalized, content)
        return True

    def read_dir(self, path: str) -> list[DirEntry] | None:
        normalized = normalize_path(path)
        with self._lock:
            if not self._is_dir(normalized):
                return None
            prefix = normalized.rstrip("/") + "/"
            kinds: dict[str, EntryKind] = {}
            for name in self._files:
                if not name.startswith(prefix):
                    continue
                head, _, rest = name[len(prefix):].partition("/")
                kinds[head] = "directory" if rest else kinds.get(head, "file")
        return [DirEntry(path=name, kind=kinds[name]) for name in sorted(kinds)]
