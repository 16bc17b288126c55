from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource


class Settings(BaseSettings):
    APP_NAME: str = "tool-runtime"
    DEBUG: bool = False
    WORKSPACE_ROOT: str = "workspace/"
    AUDIT_LOG_PATH: str = "data/logs/tool_audit.jsonl"
    DEFAULT_COMMAND_TIMEOUT_MS: int = 120_000
    MAX_COMMAND_TIMEOUT_MS: int = 600_000
    GLOB_MAX_RESULTS: int = 100
    FETCH_TIMEOUT_SECONDS: float = 30.0
    MAX_READ_BYTES: int = 5_000_000
    MAX_WRITE_BYTES: int = 5_000_000
    ALLOW_WRITE: bool = True

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("DEBUG", mode="before")
    @classmethod
    def normalize_debug(cls, value: object) -> bool:
        if isinstance(value, bool):
            return value

        if isinstance(value, str):
            normalized = value.strip().lower()

            true_values = {"1", "true", "yes", "on", "dev", "debug", "development"}
            false_values = {"0", "false", "no", "off", "release", "prod", "production"}

            if normalized in true_values:
                return True
            if normalized in false_values:
                return False

            accepted = sorted(true_values | false_values)
            raise ValueError(
                "Invalid DEBUG value. Accepted values: "
                + ", ".join(accepted)
            )

        raise ValueError("Invalid DEBUG value type. Expected bool or string.")

    @field_validator("DEFAULT_COMMAND_TIMEOUT_MS", "MAX_COMMAND_TIMEOUT_MS", "GLOB_MAX_RESULTS")
    @classmethod
    def require_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be positive")
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # init kwargs > .env file > OS environment > file secrets
        return (
            init_settings,
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )
