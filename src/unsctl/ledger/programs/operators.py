"""Validation operators paid in LINK."""

from __future__ import annotations

from typing import TYPE_CHECKING

from web3 import Web3

from unsctl.domain.roles import Role, RoleSet
from unsctl.ledger.programs.base import Ownable

if TYPE_CHECKING:
    from unsctl.ledger.chain import LocalChain


class TwitterValidationOperator(Ownable):
    """Writes validated Twitter handles to UNS records on behalf of validators."""

    NAME = "TwitterValidationOperator"

    def __init__(
        self,
        chain: LocalChain,
        address: str,
        registry: str,
        link_token: str,
        *,
        sender: str,
    ) -> None:
        super().__init__(chain, address, sender=sender)
        self.registry = Web3.to_checksum_address(registry)
        self.link_token = Web3.to_checksum_address(link_token)
        self.validators = RoleSet(Role.VALIDATOR)
        self.payment_per_validation = 0

    def add_validator(self, account: str, *, sender: str) -> None:
        self._only_owner(sender)
        self.validators.add(account)

    def is_validator(self, account: str) -> bool:
        return self.validators.has(account)

    def set_payment_per_validation(self, amount: int, *, sender: str) -> None:
        self._only_owner(sender)
        self._require(amount >= 0, "payment must be non-negative")
        self.payment_per_validation = amount
