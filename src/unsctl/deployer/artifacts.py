"""Program backend contract consumed by the deployment tasks.

A backend supplies one :class:`ProgramFactory` per deployable program
name. Tasks only talk to these protocols, so the same task code deploys
to the in-process :class:`~unsctl.ledger.chain.LocalChain` and to a
JSON-RPC node.

Method names passed to :meth:`Program.transact` / :meth:`Program.call`
are snake_case (``add_controller``); RPC backends map them onto the ABI.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

#: Deployable programs, in the order the deployer registers them.
PROGRAM_NAMES: tuple[str, ...] = (
    "CNSRegistry",
    "SignatureController",
    "MintingController",
    "URIPrefixController",
    "WhitelistedMinter",
    "Resolver",
    "UNSRegistry",
    "MintingManager",
    "ProxyReader",
    "TwitterValidationOperator",
)


class Program(Protocol):
    """Handle to a deployed program, bound to the session's signer."""

    address: str
    receipt: Mapping[str, Any] | None

    def transact(self, method: str, *args: Any) -> Mapping[str, Any]:
        """Send a transaction and wait for its receipt."""
        ...

    def call(self, method: str, *args: Any) -> Any:
        """Read-only call."""
        ...


class ProgramFactory(Protocol):
    """Deploys, attaches to, and upgrades one kind of program."""

    name: str

    def deploy(self, *args: Any) -> Program: ...

    def attach(self, address: str) -> Program: ...

    def deploy_proxy(self, *args: Any, initializer: str | None = "initialize") -> Program: ...

    def upgrade_proxy(self, proxy: str) -> Program: ...

    def implementation_address(self, proxy: str) -> str | None: ...


class Backend(Protocol):
    """Network identity, signer, and factories for one deployment target."""

    chain_id: int
    network_name: str
    signer: str

    def factories(self) -> dict[str, ProgramFactory]: ...
