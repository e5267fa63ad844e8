"""Shared pytest fixtures and test helpers for unsctl tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from unsctl.deployer.session import Accounts, DeploymentSession
from unsctl.infrastructure.local import LocalBackend
from unsctl.ledger.chain import LocalChain


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of settings resolution."""
    for name in ("UNSCTL_CONFIG", "UNSCTL_NETWORK", "UNSCTL_PRIVATE_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def chain() -> LocalChain:
    """Fresh in-process ledger."""
    return LocalChain()


@pytest.fixture
def backend(chain: LocalChain) -> LocalBackend:
    return LocalBackend(chain)


@pytest.fixture
def owner(backend: LocalBackend) -> str:
    """The session signer (first local account)."""
    return backend.signer


@pytest.fixture
def make_session(backend: LocalBackend, tmp_path: Path) -> Callable[..., DeploymentSession]:
    """Factory for sessions on the shared chain; keyword args override defaults."""

    def _make(**kwargs: Any) -> DeploymentSession:
        kwargs.setdefault("base_path", tmp_path / ".deployer")
        return DeploymentSession(
            network_name="local",
            chain_id=backend.chain_id,
            artifacts=backend.factories(),
            accounts=Accounts(owner=backend.signer),
            **kwargs,
        )

    return _make


@pytest.fixture
def session(make_session: Callable[..., DeploymentSession]) -> DeploymentSession:
    return make_session()


@pytest.fixture
def deployed(session: DeploymentSession) -> DeploymentSession:
    """Session after a ``full`` run: CNS, UNS, and CNS configuration."""
    session.execute(["full"])
    return session


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp project so the CLI writes records under it."""
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def contract_addresses(session: DeploymentSession) -> dict[str, str]:
    """Name -> address for every recorded contract of *session*'s network."""
    contracts = session.get_network_config()["networks"][str(session.chain_id)]["contracts"]
    return {name: record["address"] for name, record in contracts.items()}
