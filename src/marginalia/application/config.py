from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from marginalia.domain.constants import (
    DEFAULT_MAXIMUM_INTERVAL,
    DEFAULT_REQUEST_RETENTION,
    DEFAULT_WEIGHTS,
    LEARNING_STEPS_MINUTES,
    NEW_CARD_STEPS_MINUTES,
    RELEARNING_STEP_MINUTES,
    WEIGHT_COUNT,
)


def config_files() -> tuple[Path, ...]:
    return (
        Path.home() / ".config/marginalia/config.toml",
        Path.home() / ".marginalia.toml",
    )


class SchedulerSettings(BaseSettings):
    """
    Tuning parameters for the FSRS scheduler.
    Supports loading from:
    1. Manual overrides (constructor kwargs)
    2. Environment variables (MARGINALIA_*)
    3. Config file (~/.config/marginalia/config.toml)
    """

    model_config = SettingsConfigDict(
        env_prefix="MARGINALIA_",
        extra="ignore",
        frozen=True,
    )

    # Retention target and interval cap
    request_retention: float = Field(default=DEFAULT_REQUEST_RETENTION, gt=0.0, lt=1.0)
    maximum_interval: int = Field(default=DEFAULT_MAXIMUM_INTERVAL, ge=1)
    enable_fuzz: bool = True

    # FSRS-5 parameter vector
    weights: tuple[float, ...] = DEFAULT_WEIGHTS

    # Sub-day steps (minutes)
    new_card_steps_minutes: tuple[int, int, int] = NEW_CARD_STEPS_MINUTES
    learning_steps_minutes: tuple[int, int] = LEARNING_STEPS_MINUTES
    relearning_step_minutes: int = Field(default=RELEARNING_STEP_MINUTES, ge=1)

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

        # First existing file wins
        toml_file = next((f for f in config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("weights")
    @classmethod
    def check_weight_count(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        if len(v) != WEIGHT_COUNT:
            raise ValueError(f"expected {WEIGHT_COUNT} weights, got {len(v)}")
        return v

    @field_validator("new_card_steps_minutes", "learning_steps_minutes")
    @classmethod
    def check_steps_positive(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if any(step < 1 for step in v):
            raise ValueError("learning steps must be at least one minute")
        return v


def resolve_config(overrides: dict[str, Any] | None = None) -> SchedulerSettings:
    """
    Multi-layered configuration resolution.
    1. Defaults in SchedulerSettings
    2. ~/.config/marginalia/config.toml (if exists)
    3. Environment variables (MARGINALIA_*)
    4. overrides (None values are ignored)
    """
    explicit = {k: v for k, v in (overrides or {}).items() if v is not None}
    return SchedulerSettings(**explicit)
