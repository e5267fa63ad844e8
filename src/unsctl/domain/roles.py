"""Capability sets for role-gated ledger programs.

Roles are explicit sets of addresses with add/remove/check operations.
Address comparison is case-insensitive; members are stored checksummed.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import StrEnum

from web3 import Web3


class Role(StrEnum):
    """Roles recognised by the ledger programs."""

    MINTER = "minter"
    CONTROLLER = "controller"
    WHITELISTED = "whitelisted"
    VALIDATOR = "validator"


class RoleSet:
    """Set of addresses holding one role."""

    def __init__(self, role: Role, members: Iterable[str] = ()) -> None:
        self.role = role
        self._members: set[str] = set()
        for member in members:
            self.add(member)

    def add(self, address: str) -> bool:
        """Grant the role. Returns False if *address* already held it."""
        checksummed = Web3.to_checksum_address(address)
        if checksummed in self._members:
            return False
        self._members.add(checksummed)
        return True

    def remove(self, address: str) -> bool:
        """Revoke the role. Returns False if *address* did not hold it."""
        checksummed = Web3.to_checksum_address(address)
        if checksummed not in self._members:
            return False
        self._members.remove(checksummed)
        return True

    def has(self, address: str | None) -> bool:
        if not address:
            return False
        return Web3.to_checksum_address(address) in self._members

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self.has(address)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._members))

    def __len__(self) -> int:
        return len(self._members)

    def __repr__(self) -> str:
        return f"RoleSet({self.role.value!r}, members={len(self)})"
