"""LocalBackend — program factories over an in-process :class:`LocalChain`."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from unsctl.errors import UnsError
from unsctl.ledger import programs

if TYPE_CHECKING:
    from unsctl.ledger.chain import LocalChain
    from unsctl.ledger.programs.base import Program as LedgerProgram

#: Program name -> ledger model, in deployer registration order.
LOCAL_PROGRAMS: dict[str, type[LedgerProgram]] = {
    "CNSRegistry": programs.CNSRegistry,
    "SignatureController": programs.SignatureController,
    "MintingController": programs.MintingController,
    "URIPrefixController": programs.URIPrefixController,
    "WhitelistedMinter": programs.WhitelistedMinter,
    "Resolver": programs.Resolver,
    "UNSRegistry": programs.UNSRegistry,
    "MintingManager": programs.MintingManager,
    "ProxyReader": programs.ProxyReader,
    "TwitterValidationOperator": programs.TwitterValidationOperator,
}


class LocalProgram:
    """Handle to a program on the local chain, bound to one sender."""

    def __init__(
        self,
        chain: LocalChain,
        address: str,
        sender: str,
        receipt: Mapping[str, Any] | None = None,
    ) -> None:
        self._chain = chain
        self._sender = sender
        self.address = address
        self.receipt = receipt

    def transact(self, method: str, *args: Any) -> Mapping[str, Any]:
        return self._chain.transact(self.address, method, *args, sender=self._sender)

    def call(self, method: str, *args: Any) -> Any:
        return self._chain.call(self.address, method, *args)

    def __repr__(self) -> str:
        return f"LocalProgram({self.address})"


class LocalProgramFactory:
    """Deploys one ledger model class as *sender*."""

    def __init__(
        self, chain: LocalChain, name: str, program_cls: type[LedgerProgram], sender: str
    ) -> None:
        self._chain = chain
        self._program_cls = program_cls
        self._sender = sender
        self.name = name

    def deploy(self, *args: Any) -> LocalProgram:
        receipt = self._chain.deploy(self._program_cls, *args, sender=self._sender)
        return LocalProgram(self._chain, receipt["contractAddress"], self._sender, receipt)

    def attach(self, address: str) -> LocalProgram:
        if not self._chain.is_program(address):
            msg = f"No program at {address} on the local ledger"
            raise UnsError(msg)
        return LocalProgram(self._chain, address, self._sender)

    def deploy_proxy(self, *args: Any, initializer: str | None = "initialize") -> LocalProgram:
        receipt = self._chain.deploy_proxy(
            self._program_cls, *args, sender=self._sender, initializer=initializer
        )
        return LocalProgram(self._chain, receipt["contractAddress"], self._sender, receipt)

    def upgrade_proxy(self, proxy: str) -> LocalProgram:
        """Upgrade in place. The handle carries no receipt: the proxy was not redeployed."""
        self._chain.upgrade_proxy(proxy, self._program_cls, sender=self._sender)
        return LocalProgram(self._chain, proxy, self._sender)

    def implementation_address(self, proxy: str) -> str | None:
        return self._chain.implementation_of(proxy)


class LocalBackend:
    """Backend for the ``local`` network: first chain account signs everything."""

    def __init__(self, chain: LocalChain, *, network_name: str = "local") -> None:
        self.chain = chain
        self.chain_id = chain.chain_id
        self.network_name = network_name
        self.signer = chain.accounts[0].address

    def factories(self) -> dict[str, LocalProgramFactory]:
        return {
            name: LocalProgramFactory(self.chain, name, program_cls, self.signer)
            for name, program_cls in LOCAL_PROGRAMS.items()
        }
