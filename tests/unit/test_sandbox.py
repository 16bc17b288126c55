from pathlib import Path

from tool_runtime.tools.sandbox import (
    DirEntry,
    InMemorySandbox,
    LocalSandbox,
    Sandbox,
    SandboxConfig,
    normalize_path,
)


def _make_sandbox(root: Path, **kwargs) -> LocalSandbox:
    return LocalSandbox(SandboxConfig(root=root, **kwargs))


def test_normalize_path_collapses_relative_segments() -> None:
    assert normalize_path("src/a.txt") == "/src/a.txt"
    assert normalize_path("/src/../a.txt") == "/a.txt"
    assert normalize_path("//src//a.txt") == "/src/a.txt"
    assert normalize_path("..\\..\\etc\\passwd") == "/etc/passwd"
    assert normalize_path("/") == "/"


def test_both_implementations_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(_make_sandbox(tmp_path), Sandbox)
    assert isinstance(InMemorySandbox(), Sandbox)


def test_resolve_keeps_traversal_inside_root(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    sandbox = _make_sandbox(root)

    ok, result = sandbox.resolve_in_sandbox("/../outside.txt")
    assert ok is True
    assert result["path"] == str((root / "outside.txt").resolve())


def test_resolve_blocks_symlink_escaping_root(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    outside = tmp_path / "outside.txt"
    outside.write_text("secret", encoding="utf-8")
    (root / "link.txt").symlink_to(outside)
    sandbox = _make_sandbox(root)

    ok, result = sandbox.resolve_in_sandbox("/link.txt")
    assert ok is False
    assert result["code"] == "path_outside_root"
    assert sandbox.read_file("/link.txt") is None


def test_read_file_text_and_binary(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    (root / "a.txt").write_text("hello\r\nworld", encoding="utf-8")
    (root / "img.bin").write_bytes(b"\x89PNG\x00\x01")
    sandbox = _make_sandbox(root)

    text = sandbox.read_file("/a.txt")
    assert text is not None
    assert text.kind == "text"
    assert text.content == "hello\r\nworld"
    assert text.path == "/a.txt"

    binary = sandbox.read_file("img.bin")
    assert binary is not None
    assert binary.kind == "binary"

    assert sandbox.read_file("/missing.txt") is None


def test_read_limit_enforced(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    (root / "large.txt").write_text("abcd", encoding="utf-8")
    sandbox = _make_sandbox(root, max_read_bytes=3)

    assert sandbox.read_file("/large.txt") is None


def test_write_creates_parents_and_respects_toggles(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    sandbox = _make_sandbox(root)

    assert sandbox.write_file("/src/deep/a.txt", "abc") is True
    assert (root / "src" / "deep" / "a.txt").read_text(encoding="utf-8") == "abc"

    assert sandbox.write_file("/src", "not a file") is False

    read_only = _make_sandbox(root, allow_write=False)
    assert read_only.write_file("/b.txt", "abc") is False

    small = _make_sandbox(root, max_write_bytes=3)
    assert small.write_file("/c.txt", "abcd") is False
    assert not (root / "c.txt").exists()


def test_read_dir_lists_sorted_entries(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    (root / "b.txt").write_text("b", encoding="utf-8")
    (root / "a.txt").write_text("a", encoding="utf-8")
    (root / "src").mkdir()
    sandbox = _make_sandbox(root)

    assert sandbox.read_dir("/") == [
        DirEntry(path="a.txt", kind="file"),
        DirEntry(path="b.txt", kind="file"),
        DirEntry(path="src", kind="directory"),
    ]
    assert sandbox.read_dir("/a.txt") is None
    assert sandbox.read_dir("/missing") is None


def test_in_memory_sandbox_round_trip_and_directories() -> None:
    sandbox = InMemorySandbox({"/src/app.py": "print(1)", "README.md": "# hi"})

    assert sandbox.write_file("/src/lib/util.py", "x = 1") is True
    assert sandbox.read_file("src/app.py").content == "print(1)"
    assert sandbox.paths() == ["/README.md", "/src/app.py", "/src/lib/util.py"]

    assert sandbox.read_dir("/") == [
        DirEntry(path="README.md", kind="file"),
        DirEntry(path="src", kind="directory"),
    ]
    assert sandbox.read_dir("/src") == [
        DirEntry(path="app.py", kind="file"),
        DirEntry(path="lib", kind="directory"),
    ]
    assert sandbox.read_dir("/nope") is None
    assert sandbox.write_file("/src", "clobber") is False


def test_in_memory_sandbox_binary_and_read_only() -> None:
    sandbox = InMemorySandbox({"/logo.png": b"\x89PNG\x00"}, read_only=True)

    assert sandbox.read_file("/logo.png").kind == "binary"
    assert sandbox.write_file("/a.txt", "x") is False
    assert sandbox.read_file("/a.txt") is None
