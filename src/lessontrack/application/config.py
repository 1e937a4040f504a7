from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lessontrack.domain.constants import (
    DWELL_BONUS_MS,
    FLUSH_DELAY_MS,
    LESSON_CACHE_SIZE,
    MAX_EVENTS,
    TICK_INTERVAL_MS,
)


class AppConfig(BaseSettings):
    """
    Configuration model for lessontrack.
    Supports loading from:
    1. Environment variables (LESSONTRACK_*)
    2. Config file (~/.config/lessontrack/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="LESSONTRACK_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/lessontrack")
    store_path: Path | None = None
    lessons_dir: Path | None = None
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/lessontrack/logs")

    # Remote endpoints
    content_url: str | None = None
    analytics_url: str | None = None

    # Identity
    user_id: int | None = None

    # Timing (milliseconds)
    tick_interval_ms: int = Field(default=TICK_INTERVAL_MS, gt=0)
    dwell_bonus_ms: int = Field(default=DWELL_BONUS_MS, gt=0)
    flush_delay_ms: int = Field(default=FLUSH_DELAY_MS, ge=0)

    # Bounds
    max_events: int = Field(default=MAX_EVENTS, ge=1)
    lesson_cache_size: int = Field(default=LESSON_CACHE_SIZE, ge=1)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Recomputed here so tests that swap HOME see their own files
        toml_files = [
            Path.home() / ".config/lessontrack/config.toml",
            Path.home() / ".lessontrack.toml",
        ]
        toml_file = next((f for f in toml_files if f.exists()), None)

        # Init (CLI overrides) wins over env, env wins over the file
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def expand_dir(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @field_validator("store_path", "lessons_dir", mode="before")
    @classmethod
    def resolve_optional_path(cls, v: Any) -> Path | None:
        if v in (None, ""):
            return None
        return Path(v).expanduser().resolve()

    @property
    def resolved_store_path(self) -> Path:
        return self.store_path or self.data_dir / "progress.sqlite3"


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lessontrack/config.toml (if exists)
    3. Environment variables (LESSONTRACK_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
