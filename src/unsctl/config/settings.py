"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``UNSCTL_*`` prefix (``UNSCTL_PRIVATE_KEY`` for RPC signing)
  3. TOML file    — ``unsctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the ``find_config`` walk-up discovery from
:mod:`unsctl.config.discovery`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from unsctl.config.discovery import find_config
from unsctl.config.models import (
    LOCAL_NETWORK,
    ArtifactsConfig,
    DeployerConfig,
    NetworkProfile,
    UriConfig,
    default_networks,
)
from unsctl.errors import UnsError


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``unsctl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class UnsSettings(BaseSettings):
    """Unified settings for the unsctl CLI and deployer.

    Attributes:
        project_root: Directory relative paths resolve against (parent of
            ``unsctl.toml``, or CWD if no config found).
        config_path: The TOML file that was loaded, if any.
        network: Name of the active ``[networks.<name>]`` profile.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "UNSCTL_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    network: str = LOCAL_NETWORK

    private_key: SecretStr | None = None

    # --- TOML sections ---
    deployer: DeployerConfig = Field(default_factory=DeployerConfig)
    artifacts: ArtifactsConfig = Field(default_factory=ArtifactsConfig)
    uri: UriConfig = Field(default_factory=UriConfig)
    networks: dict[str, NetworkProfile] = Field(default_factory=default_networks)

    @field_validator("networks")
    @classmethod
    def _keep_local_network(cls, value: dict[str, NetworkProfile]) -> dict[str, NetworkProfile]:
        """TOML that defines other networks does not drop the ``local`` profile."""
        if LOCAL_NETWORK in value:
            return value
        return {**default_networks(), **value}

    @property
    def network_profile(self) -> NetworkProfile:
        """Profile for the active network.

        Raises:
            UnsError: No ``[networks.<name>]`` entry matches :attr:`network`.
        """
        try:
            return self.networks[self.network]
        except KeyError:
            known = ", ".join(sorted(self.networks))
            msg = f"Unknown network {self.network!r} (configured: {known})"
            raise UnsError(msg) from None

    @property
    def base_path(self) -> Path:
        """Directory holding ``<chain_id>.json`` deployment records."""
        return self.project_root / self.deployer.base_path

    @property
    def artifacts_path(self) -> Path:
        return self.project_root / self.artifacts.path

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> UnsSettings:
        """Construct settings from CLI invocation.

        Discovers ``unsctl.toml`` via walk-up (or explicit *config_path*),
        resolves *project_root* from the config file's parent directory,
        and merges CLI flags as highest-priority overrides. Flags passed
        as None are dropped so they do not mask TOML or env values.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(project_root)

        resolved_root = project_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        flags = {key: value for key, value in cli_flags.items() if value is not None}

        _tls.toml_path = toml_path
        try:
            return cls(
                project_root=resolved_root,
                config_path=toml_path,
                **flags,
            )
        finally:
            _tls.toml_path = None
