"""Shared program machinery: address context, ownership, one-time init, tokens."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from web3 import Web3

from unsctl.domain.namehash import ZERO_ADDRESS
from unsctl.errors import ValidationError

if TYPE_CHECKING:
    from unsctl.ledger.chain import LocalChain

#: Value a receiving program must return from ``on_erc721_received``.
ERC721_RECEIVED = bytes(Web3.keccak(text="onERC721Received(address,address,uint256,bytes)")[:4])


class Program:
    """Base for every program deployed on a :class:`LocalChain`."""

    NAME: ClassVar[str] = "Program"

    def __init__(self, chain: LocalChain, address: str, *, sender: str) -> None:
        self._chain = chain
        self.address = address
        self.deployer = sender

    def _require(self, condition: bool, reason: str) -> None:
        if not condition:
            raise ValidationError(reason, program=self.NAME)

    def _program(self, address: str) -> Any:
        return self._chain.program_at(address)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


class Ownable(Program):
    """Single-owner access control; the deployer is the first owner."""

    def __init__(self, chain: LocalChain, address: str, *, sender: str) -> None:
        super().__init__(chain, address, sender=sender)
        self.owner = Web3.to_checksum_address(sender)

    def _only_owner(self, sender: str) -> None:
        self._require(
            Web3.to_checksum_address(sender) == self.owner, "caller is not the owner"
        )

    def transfer_ownership(self, new_owner: str, *, sender: str) -> None:
        self._only_owner(sender)
        self._require(new_owner != ZERO_ADDRESS, "new owner is the zero address")
        self.owner = Web3.to_checksum_address(new_owner)


class Initializable:
    """Two-phase construction guard for programs deployed behind a proxy."""

    initialized: bool = False

    def _initialize_once(self) -> None:
        if self.initialized:
            raise ValidationError("already initialized", program=getattr(self, "NAME", None))
        self.initialized = True


class TokenLedger(Program):
    """ERC721-style ownership with per-token key/value records."""

    def __init__(self, chain: LocalChain, address: str, *, sender: str) -> None:
        super().__init__(chain, address, sender=sender)
        self._owners: dict[int, str] = {}
        self._records: dict[int, dict[str, str]] = {}

    def exists(self, token_id: int) -> bool:
        return token_id in self._owners

    def owner_of(self, token_id: int) -> str:
        self._require(self.exists(token_id), "owner query for nonexistent token")
        return self._owners[token_id]

    def get(self, key: str, token_id: int) -> str:
        return self._records.get(token_id, {}).get(key, "")

    def get_many(self, keys: Sequence[str], token_id: int) -> list[str]:
        return [self.get(key, token_id) for key in keys]

    def _check_mint(self, to: str, token_id: int) -> None:
        self._require(to != ZERO_ADDRESS, "mint to the zero address")
        self._require(not self.exists(token_id), "token already minted")

    def _check_records(self, keys: Sequence[str], values: Sequence[str]) -> None:
        self._require(len(keys) == len(values), "keys and values length mismatch")

    def _check_receiver(self, to: str, token_id: int, data: bytes, operator: str) -> None:
        """Transfer-safety check: programs must accept the token explicitly."""
        if not self._chain.is_program(to):
            return
        receiver = self._program(to)
        hook = getattr(receiver, "on_erc721_received", None)
        accepted = (
            hook is not None and hook(operator, ZERO_ADDRESS, token_id, data) == ERC721_RECEIVED
        )
        self._require(accepted, "transfer to non ERC721Receiver implementer")

    def _mint(self, to: str, token_id: int) -> None:
        self._owners[token_id] = Web3.to_checksum_address(to)

    def _set_many(self, keys: Sequence[str], values: Sequence[str], token_id: int) -> None:
        records = self._records.setdefault(token_id, {})
        for key, value in zip(keys, values, strict=True):
            records[key] = value
