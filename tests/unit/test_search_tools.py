from pathlib import Path
from typing import Any

from tool_runtime.tools.catalog import PLAN_MODE_TIERS, build_dispatcher
from tool_runtime.tools.command_runner import CommandResult, SubprocessCommandRunner
from tool_runtime.tools.executor import ToolContext
from tool_runtime.tools.sandbox import InMemorySandbox, LocalSandbox, SandboxConfig, workspace_relative
from tool_runtime.tools.search_tools import (
    GlobInput,
    GrepInput,
    build_glob_argv,
    build_grep_argv,
    run_glob,
    run_grep,
)


class _RecordingRunner:
    def __init__(self, result: CommandResult | None = None, exc: Exception | None = None) -> None:
        self.result = result or CommandResult(output="", success=True, exit_code=0)
        self.exc = exc
        self.calls: list[Any] = []

    def run(self, command, timeout_ms=None, cancel_token=None) -> CommandResult:
        self.calls.append(command)
        if self.exc is not None:
            raise self.exc
        return self.result


def _make_context(runner: _RecordingRunner) -> ToolContext:
    return ToolContext(sandbox=InMemorySandbox(), command_runner=runner)


def test_glob_argv_is_a_vector_with_pruned_dirs() -> None:
    argv = build_glob_argv("*.tsx", "./src")

    assert argv[:4] == ["find", "./src", "-mindepth", "1"]
    assert "node_modules" in argv
    assert argv[-3:] == ["-name", "*.tsx", "-print"]


def test_glob_argv_handles_recursive_and_path_patterns() -> None:
    assert build_glob_argv("**/*.js")[-3:] == ["-name", "*.js", "-print"]
    assert build_glob_argv("src/**/*.ts")[-3:] == ["-path", "*/src/*.ts", "-print"]
    assert build_glob_argv("*.py")[1] == "."


def test_glob_pattern_with_shell_metacharacters_stays_one_argument() -> None:
    runner = _RecordingRunner()
    run_glob(_make_context(runner), GlobInput(pattern='*.js"; touch pwned #'))

    argv = runner.calls[0]
    assert isinstance(argv, list)
    assert '*.js"; touch pwned #' in argv


def test_glob_returns_matching_paths() -> None:
    runner = _RecordingRunner(CommandResult(output="./a.py\n./src/b.py\n", success=True, exit_code=0))

    assert run_glob(_make_context(runner), GlobInput(pattern="*.py")) == ["./a.py", "./src/b.py"]


def test_glob_caps_results_at_one_hundred() -> None:
    output = "\n".join(f"./file{index}.txt" for index in range(500))
    runner = _RecordingRunner(CommandResult(output=output, success=True, exit_code=0))

    result = run_glob(_make_context(runner), GlobInput(pattern="*.txt"))

    assert len(result) == 100
    assert result[0] == "./file0.txt"


def test_glob_degrades_to_empty_list() -> None:
    failed = _RecordingRunner(CommandResult(output="", success=False, error="find: boom", exit_code=1))
    raising = _RecordingRunner(exc=OSError("find not installed"))

    assert run_glob(_make_context(failed), GlobInput(pattern="*.py")) == []
    assert run_glob(_make_context(raising), GlobInput(pattern="*.py")) == []


def test_grep_argv_translates_every_option() -> None:
    payload = GrepInput(
        pattern="-v",
        path="src",
        glob="*.ts",
        type="ts",
        output_mode="content",
        case_insensitive=True,
        show_line_numbers=True,
        context_after=1,
        context_before=2,
        context_around=3,
        multiline=True,
    )

    argv = build_grep_argv(payload, "./src")

    assert argv[0] == "rg"
    for flag in ("-i", "-n", "-U", "--multiline-dotall"):
        assert flag in argv
    assert argv[argv.index("-A") + 1] == "1"
    assert argv[argv.index("-B") + 1] == "2"
    assert argv[argv.index("-C") + 1] == "3"
    assert argv[argv.index("-g") + 1] == "*.ts"
    assert argv[argv.index("-t") + 1] == "ts"
    assert "-l" not in argv and "-c" not in argv
    assert argv[-4:] == ["-e", "-v", "--", "./src"]


def test_grep_argv_output_modes() -> None:
    assert "-l" in build_grep_argv(GrepInput(pattern="x"))
    assert "-c" in build_grep_argv(GrepInput(pattern="x", output_mode="count"))


def test_grep_success_shape_and_head_limit() -> None:
    runner = _RecordingRunner(CommandResult(output="a.ts\nb.ts\nc.ts\n", success=True, exit_code=0))

    result = run_grep(_make_context(runner), GrepInput(pattern="useState", head_limit=2))

    assert result == {"matches": ["a.ts", "b.ts"], "mode": "files_with_matches", "count": 2}


def test_grep_no_matches_is_not_an_error() -> None:
    runner = _RecordingRunner(
        CommandResult(output="", success=False, error="Command exited with status 1", exit_code=1)
    )

    result = run_grep(_make_context(runner), GrepInput(pattern="absent", output_mode="count"))

    assert result == {"matches": [], "mode": "count", "count": 0}


def test_grep_runner_failure_is_soft() -> None:
    runner = _RecordingRunner(
        CommandResult(output="", success=False, error="regex parse error", exit_code=2)
    )

    result = run_grep(_make_context(runner), GrepInput(pattern="(", path="src"))

    assert result["matches"] == []
    assert result["mode"] == "files_with_matches"
    assert "regex parse error" in result["error"]
    assert "src" in result["error"]


def test_grep_runner_exception_is_soft() -> None:
    runner = _RecordingRunner(exc=RuntimeError("runner unavailable"))

    result = run_grep(_make_context(runner), GrepInput(pattern="todo"))

    assert result["matches"] == []
    assert "runner unavailable" in result["error"]
    assert "count" not in result


def _make_local_context(root: Path) -> ToolContext:
    return ToolContext(
        sandbox=LocalSandbox(SandboxConfig(root=root)),
        command_runner=SubprocessCommandRunner(cwd=root),
    )


def test_workspace_relative_paths() -> None:
    assert workspace_relative(None) == "."
    assert workspace_relative("/") == "."
    assert workspace_relative("/src") == "./src"
    assert workspace_relative("src/lib/..") == "./src"
    assert workspace_relative("-delete") == "./-delete"
    assert workspace_relative("..") is None
    assert workspace_relative("/src/../../etc") is None


def test_search_paths_are_passed_root_relative() -> None:
    runner = _RecordingRunner()
    context = _make_context(runner)

    run_glob(context, GlobInput(pattern="*.py", path="/src"))
    run_grep(context, GrepInput(pattern="todo", path="-rf"))

    assert runner.calls[0][1] == "./src"
    assert runner.calls[1][-1] == "./-rf"


def test_search_outside_workspace_soft_fails_without_running() -> None:
    runner = _RecordingRunner()
    context = _make_context(runner)

    assert run_glob(context, GlobInput(pattern="passwd", path="..")) == []
    result = run_grep(context, GrepInput(pattern="root", path="../../etc"))

    assert result["matches"] == []
    assert "outside the workspace root" in result["error"]
    assert "../../etc" in result["error"]
    assert runner.calls == []


def test_glob_on_disk_resolves_workspace_absolute_path(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.py").write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "top.py").write_text("", encoding="utf-8")
    dispatcher = build_dispatcher(_make_local_context(tmp_path), allowed_tiers=PLAN_MODE_TIERS)

    assert dispatcher.dispatch("ls", {"path": "/src"}) == [{"path": "a.py", "type": "file"}]
    assert dispatcher.dispatch("glob", {"pattern": "*.py", "path": "/src"}) == ["./src/a.py"]


def test_glob_on_disk_cannot_leave_workspace(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    (tmp_path / "secret.txt").write_text("s", encoding="utf-8")
    (root / "escape").symlink_to(tmp_path)
    dispatcher = build_dispatcher(_make_local_context(root), allowed_tiers=PLAN_MODE_TIERS)

    assert dispatcher.dispatch("glob", {"pattern": "passwd", "path": "/etc"}) == []
    assert dispatcher.dispatch("glob", {"pattern": "*.txt", "path": ".."}) == []
    assert dispatcher.dispatch("glob", {"pattern": "*.txt", "path": "/escape"}) == []
    grep_result = dispatcher.dispatch("grep", {"pattern": "s", "path": "/escape"})
    assert grep_result["matches"] == []
    assert "outside the workspace root" in grep_result["error"]


def test_glob_on_disk_dash_prefixed_directory_is_a_path(tmp_path: Path) -> None:
    (tmp_path / "-delete").mkdir()
    (tmp_path / "-delete" / "keep.py").write_text("", encoding="utf-8")
    context = _make_local_context(tmp_path)

    assert run_glob(context, GlobInput(pattern="*.py", path="-delete")) == ["./-delete/keep.py"]
    assert (tmp_path / "-delete" / "keep.py").exists()


def test_glob_on_disk_caps_real_results(tmp_path: Path) -> None:
    for index in range(500):
        (tmp_path / f"file{index}.txt").write_text("", encoding="utf-8")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "dep.txt").write_text("", encoding="utf-8")

    result = run_glob(_make_local_context(tmp_path), GlobInput(pattern="*.txt"))

    assert len(result) == 100
    assert all(path.startswith("./file") for path in result)
