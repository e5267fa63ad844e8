"""LocalChain — a single-process, auto-mining ledger.

Every transaction is executed immediately and, on success, mined into its
own block. Reverts surface as :class:`~unsctl.errors.TransactionError` and
leave the block height unchanged.

INVARIANT: there is no state rollback. Program entry points validate
before they mutate, so a reverted call leaves no trace, but a sequence of
calls is never undone as a unit.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any

from eth_account import Account
from web3 import Web3

from unsctl.errors import TransactionError, ValidationError

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

    from unsctl.ledger.programs.base import Program

logger = logging.getLogger(__name__)

DEFAULT_CHAIN_ID = 1337
DEFAULT_ACCOUNT_COUNT = 10


def _derive_address(*parts: object) -> str:
    digest = Web3.keccak(text=":".join(str(p) for p in parts))
    return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())


def local_account(index: int) -> LocalAccount:
    """Deterministic development account number *index*."""
    key = Web3.keccak(text=f"unsctl-local-account-{index}")
    return Account.from_key(key)


class LocalChain:
    """Auto-mining in-process ledger.

    Attributes:
        chain_id: Network chain id reported to the deployer.
        accounts: Deterministic funded accounts (``eth_account`` locals).
        block_number: Height of the latest mined block.
    """

    def __init__(
        self,
        chain_id: int = DEFAULT_CHAIN_ID,
        *,
        account_count: int = DEFAULT_ACCOUNT_COUNT,
    ) -> None:
        self.chain_id = chain_id
        self.accounts: list[LocalAccount] = [local_account(i) for i in range(account_count)]
        self.block_number = 0
        self._programs: dict[str, Program] = {}
        self._implementations: dict[str, str] = {}
        self._nonces: dict[str, int] = {}
        self._tx_counter = itertools.count(1)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def program_at(self, address: str) -> Program:
        """Return the program deployed at *address*.

        Raises:
            KeyError: No program lives at *address*.
        """
        return self._programs[Web3.to_checksum_address(address)]

    def is_program(self, address: str) -> bool:
        return Web3.to_checksum_address(address) in self._programs

    def implementation_of(self, proxy: str) -> str | None:
        """Implementation address behind a proxy, or None for plain programs."""
        return self._implementations.get(Web3.to_checksum_address(proxy))

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def deploy(self, program_cls: type[Program], *args: Any, sender: str) -> dict[str, Any]:
        """Construct *program_cls* at a fresh address and mine the deployment."""
        address = self._next_address(sender)
        try:
            program = program_cls(self, address, *args, sender=sender)
        except ValidationError as exc:
            raise TransactionError("deploy", exc.reason) from exc
        self._programs[address] = program
        logger.debug("Deployed %s at %s", program_cls.__name__, address)
        return self._mine(sender, to=None, contract_address=address)

    def deploy_proxy(
        self,
        program_cls: type[Program],
        *args: Any,
        sender: str,
        initializer: str | None = "initialize",
    ) -> dict[str, Any]:
        """Deploy *program_cls* behind a transparent proxy.

        The implementation and the proxy get separate addresses; storage
        lives at the proxy. When *initializer* is given it is called with
        *args* as part of the same deployment.
        """
        implementation = self._next_address(sender)
        address = self._next_address(sender)
        program = program_cls(self, address, sender=sender)
        self._programs[address] = program
        self._implementations[address] = implementation
        if initializer:
            try:
                getattr(program, initializer)(*args, sender=sender)
            except ValidationError as exc:
                del self._programs[address]
                del self._implementations[address]
                raise TransactionError(initializer, exc.reason) from exc
        logger.debug("Deployed %s proxy at %s", program_cls.__name__, address)
        return self._mine(sender, to=None, contract_address=address)

    def upgrade_proxy(
        self, proxy: str, program_cls: type[Program], *, sender: str
    ) -> dict[str, Any]:
        """Swap the code behind *proxy* for *program_cls*, keeping its storage."""
        proxy = Web3.to_checksum_address(proxy)
        if proxy not in self._implementations:
            raise TransactionError("upgrade", "address is not a proxy")
        current = self._programs[proxy]
        upgraded = program_cls.__new__(program_cls)
        upgraded.__dict__.update(current.__dict__)
        self._programs[proxy] = upgraded
        self._implementations[proxy] = self._next_address(sender)
        return self._mine(sender, to=proxy, contract_address=None)

    def transact(self, address: str, method: str, *args: Any, sender: str) -> dict[str, Any]:
        """Call *method* on the program at *address* as *sender* and mine it."""
        program = self.program_at(address)
        try:
            getattr(program, method)(*args, sender=sender)
        except ValidationError as exc:
            raise TransactionError(method, exc.reason) from exc
        return self._mine(sender, to=program.address, contract_address=None)

    def call(self, address: str, method: str, *args: Any) -> Any:
        """Read-only call; nothing is mined."""
        return getattr(self.program_at(address), method)(*args)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_address(self, sender: str) -> str:
        nonce = self._nonces.get(sender, 0)
        self._nonces[sender] = nonce + 1
        return _derive_address(self.chain_id, sender, nonce)

    def _mine(self, sender: str, *, to: str | None, contract_address: str | None) -> dict[str, Any]:
        self.block_number += 1
        tx_hash = Web3.keccak(text=f"{self.chain_id}:tx:{next(self._tx_counter)}")
        return {
            "transactionHash": "0x" + bytes(tx_hash).hex(),
            "blockNumber": self.block_number,
            "from": sender,
            "to": to,
            "contractAddress": contract_address,
            "status": 1,
        }
