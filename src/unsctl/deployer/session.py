"""DeploymentSession — one deployer run against one network.

A session binds together everything a task needs: the network identity,
the single signing account, the program factories, the configured
minters and LINK token, and the network's :class:`NetworkConfigStore`.

INVARIANT: every transaction in a session is sent by ``accounts.owner``.
One signer keeps the nonce sequence, and therefore transaction order,
consistent across tasks.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from unsctl.config.logging import bind_deployment
from unsctl.deployer.graph import normalize_tags
from unsctl.deployer.store import NetworkConfigStore
from unsctl.deployer.tasks import default_task_graph

if TYPE_CHECKING:
    from unsctl.config.settings import UnsSettings
    from unsctl.deployer.artifacts import Backend, Program, ProgramFactory
    from unsctl.deployer.graph import TaskGraph


@dataclass(frozen=True)
class Accounts:
    """Signing identities available to the session."""

    owner: str


class DeploymentSession:
    """Executes tagged deployment tasks and renders the resulting network config."""

    def __init__(
        self,
        *,
        network_name: str,
        chain_id: int,
        base_path: Path,
        artifacts: Mapping[str, ProgramFactory],
        accounts: Accounts,
        minters: Sequence[str] = (),
        link_token: str | None = None,
        token_uri_prefix: str = "",
        graph: TaskGraph | None = None,
    ) -> None:
        self.network_name = network_name
        self.chain_id = chain_id
        self.artifacts = dict(artifacts)
        self.accounts = accounts
        self.minters: tuple[str, ...] = tuple(minters)
        self.link_token = link_token
        self.token_uri_prefix = token_uri_prefix
        self.graph = graph or default_task_graph()
        self.store = NetworkConfigStore(base_path, chain_id)
        self.store.ensure_base_path()

        bind_deployment(network_name, chain_id)
        self.log = structlog.get_logger(__name__)
        self.log.info(
            "Initialized deployer",
            base_path=str(base_path),
            artifacts=sorted(self.artifacts),
            accounts=[accounts.owner],
            minters=list(self.minters),
            link_token=link_token,
        )

    @classmethod
    def create(cls, settings: UnsSettings, backend: Backend | None = None) -> DeploymentSession:
        """Build a session from settings.

        Without an explicit *backend*, a profile with a ``url`` gets a
        JSON-RPC backend and a profile without one gets a fresh
        in-process ledger. The in-process ledger lives only as long as
        the process, so its network record is reset first.
        """
        profile = settings.network_profile
        fresh_local = backend is None and profile.is_local
        if backend is None:
            backend = _backend_for(settings)
        session = cls(
            network_name=settings.network,
            chain_id=backend.chain_id,
            base_path=settings.base_path,
            artifacts=backend.factories(),
            accounts=Accounts(owner=backend.signer),
            minters=profile.minters,
            link_token=profile.link_token,
            token_uri_prefix=settings.uri.prefix,
        )
        if fresh_local and session.store.reset():
            # Records from an earlier process point at a ledger that no longer exists.
            session.log.info("Discarded stale local records", path=str(session.store.path))
        return session

    def execute(
        self,
        tags: str | Iterable[str] | None = None,
        config: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Run the tasks matching *tags*, then return :meth:`get_network_config`."""
        tags = normalize_tags(tags)
        self.log.info("Execution started", tags=tags)
        executed = self.graph.execute(self, tags, config)
        network_config = self.get_network_config()
        self.log.info("Execution completed", tasks=executed, config=network_config)
        return network_config

    # --- store delegation ---

    def get_deploy_config(self) -> dict[str, Any]:
        return self.store.get_deploy_config()

    def get_network_config(self) -> dict[str, Any]:
        return self.store.get_network_config()

    def save_contract_config(
        self, name: str, program: Program, implementation: str | None = None
    ) -> None:
        self.store.save_contract_config(name, program, implementation)


def _backend_for(settings: UnsSettings) -> Backend:
    profile = settings.network_profile
    if profile.is_local:
        from unsctl.infrastructure.local import LocalBackend
        from unsctl.ledger.chain import LocalChain

        return LocalBackend(LocalChain(profile.chain_id), network_name=settings.network)

    from unsctl.infrastructure.rpc import RpcBackend

    return RpcBackend.connect(settings)
