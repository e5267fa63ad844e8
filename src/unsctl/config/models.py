"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, unsctl.toml only contains
overrides. A fresh project needs no file at all to deploy to ``local``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

LOCAL_NETWORK = "local"
LOCAL_CHAIN_ID = 1337


class DeployerConfig(BaseModel):
    """[deployer] section."""

    model_config = {"frozen": True}

    base_path: str = ".deployer"


class ArtifactsConfig(BaseModel):
    """[artifacts] section — compiled ``<Name>.json`` files for RPC networks."""

    model_config = {"frozen": True}

    path: str = "artifacts"


class UriConfig(BaseModel):
    """[uri] section."""

    model_config = {"frozen": True}

    prefix: str = "https://metadata.unstoppabledomains.com/metadata/"


class NetworkProfile(BaseModel):
    """[networks.<name>] section.

    A profile without ``url`` targets the in-process ledger.
    """

    model_config = {"frozen": True}

    chain_id: int
    url: str | None = None
    minters: list[str] = Field(default_factory=list)
    link_token: str | None = None

    @property
    def is_local(self) -> bool:
        return self.url is None


def default_networks() -> dict[str, NetworkProfile]:
    return {LOCAL_NETWORK: NetworkProfile(chain_id=LOCAL_CHAIN_ID)}
