"""Settings resolution with named profile support."""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from bbs_platform.models import GitUrlOption, HostCredential

CONFIG_PATH = Path.home() / ".config" / "bbs-platform" / "config.toml"


class BbsSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BBS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_profile: str | None = None

    # Server
    endpoint: str = "http://localhost:7990"
    username: str | None = None
    password: SecretStr | None = None  # password or HTTP access token
    timeout: float = 30.0

    # Behaviour
    git_url: GitUrlOption | None = None  # None auto-detects from clone links
    page_limit: int = 100

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # init kwargs carry the profile block, which env vars and .env override
        return env_settings, dotenv_settings, init_settings, file_secret_settings


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/bbs-platform/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(profile: str | None = None) -> BbsSettings:
    """Resolve the active profile and return a fully populated BbsSettings.

    Precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. BBS_DEFAULT_PROFILE env var
    3. default_profile key in ~/.config/bbs-platform/config.toml
    4. First profile defined in ~/.config/bbs-platform/config.toml
    """
    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("BBS_DEFAULT_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        else:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    # env vars + .env always override profile defaults
    return BbsSettings(**profile_defaults)


def host_credential(settings: BbsSettings) -> HostCredential:
    """Return the basic-auth pair for the configured server, exiting if it is incomplete."""
    if not settings.username or not settings.password:
        typer.echo(
            "Missing Bitbucket Server credentials. Set BBS_USERNAME and BBS_PASSWORD or "
            f"username/password in your profile section of {CONFIG_PATH}"
        )
        raise typer.Exit(1)
    return HostCredential(username=settings.username, password=settings.password)
