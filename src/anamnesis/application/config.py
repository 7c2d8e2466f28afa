from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from anamnesis.domain.constants import DEFAULT_LOG_RETENTION

CONFIG_FILES = [
    Path.home() / ".config/anamnesis/config.toml",
    Path.home() / ".anamnesis.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for anamnesis.
    Supports loading from:
    1. Environment variables (ANAMNESIS_*)
    2. Config file (~/.config/anamnesis/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="ANAMNESIS_",
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/anamnesis")

    # Review history
    log_retention: int = Field(default=DEFAULT_LOG_RETENTION, ge=1)

    # Grading
    accept_alternatives: bool = False

    verbose: int = 1

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

        # Overrides first: init (CLI) > env > toml
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_data_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/anamnesis/config.toml (if exists)
    3. Environment variables (ANAMNESIS_*)
    4. cli_overrides (passed from Typer), None values are ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
