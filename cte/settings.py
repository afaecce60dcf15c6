"""Settings resolution with named profile support."""

import logging
import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Literal

import tomlkit
import typer
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "cte" / "config.toml"

DEFAULT_STATUSES = ("stakeholder check", "in progress", "accepted")


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing. No request is made."""


class CteSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CTE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_profile: str | None = None

    # ClickUp
    clickup_api_token: SecretStr | None = None
    clickup_team_id: str | None = None  # workspace id, needed for --flat
    list_ids: list[str] = []

    # Fetch options
    include_subtasks: bool = False
    include_closed: bool = False
    status_filter_in_query: bool = False  # send statuses[] instead of filtering locally only
    assignee_ids: list[str] = []

    # Selection
    filter_mode: Literal["status", "status_and_tag"] = "status"
    allowed_statuses: list[str] = list(DEFAULT_STATUSES)
    tag_field: str = "team"
    tag_value: str | None = None
    tag_field_id: str | None = None  # lets the tag predicate go server-side as well
    max_tasks_per_list: int = Field(default=15, ge=0)

    # Normalization
    team_list_marker: str = "other teams"

    # Timeouts (seconds)
    request_timeout: float = 30.0
    source_timeout: float | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # init kwargs carry the TOML profile, which env vars and .env override
        return env_settings, dotenv_settings, init_settings, file_secret_settings


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/cte/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(profile: str | None = None) -> CteSettings:
    """Resolve the active profile and return a fully populated CteSettings.

    Precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. CTE_DEFAULT_PROFILE env var
    3. default_profile key in ~/.config/cte/config.toml
    4. First profile defined in ~/.config/cte/config.toml
    """
    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("CTE_DEFAULT_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = toml_config[active].unwrap()
        elif active not in toml_config:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    settings = CteSettings(**profile_defaults)
    logger.debug("Resolved profile %s", active or "(none)")

    if not settings.clickup_api_token:
        typer.echo(
            "Missing ClickUp credentials. Set CTE_CLICKUP_API_TOKEN or "
            f"clickup_api_token in the [{active or 'profile'}] section of {CONFIG_PATH}"
        )
        raise typer.Exit(1)

    return settings
