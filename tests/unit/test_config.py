import pytest

from tool_runtime.config.settings import Settings


def test_settings_defaults_app_name() -> None:
    settings = Settings()
    assert settings.APP_NAME == "tool-runtime"


def test_settings_defaults_limits() -> None:
    settings = Settings()
    assert settings.DEFAULT_COMMAND_TIMEOUT_MS == 120_000
    assert settings.MAX_COMMAND_TIMEOUT_MS == 600_000
    assert settings.GLOB_MAX_RESULTS == 100


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("yes", True), ("Debug", True), ("0", False), ("production", False), (True, True)],
)
def test_settings_normalizes_debug(raw: object, expected: bool) -> None:
    assert Settings(DEBUG=raw).DEBUG is expected


def test_settings_rejects_unknown_debug_value() -> None:
    with pytest.raises(ValueError, match="Invalid DEBUG value"):
        Settings(DEBUG="maybe")


def test_settings_rejects_non_positive_limits() -> None:
    with pytest.raises(ValueError):
        Settings(GLOB_MAX_RESULTS=0)


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKSPACE_ROOT", "/srv/agent")

    assert Settings().WORKSPACE_ROOT == "/srv/agent"
