"""CNS — the legacy registry and the controllers deployed around it.

CNS mints children of a single root (``crypto``) through controllers.
Its minting entry points take a label, not an id, and do not accept
records; records go to a :class:`Resolver` in a separate call.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from web3 import Web3

from unsctl.domain.namehash import BURN_ADDRESS, LEGACY_TLD_LABEL, ROOT_ID, canonical_hash
from unsctl.domain.roles import Role, RoleSet
from unsctl.ledger.programs.base import Program, TokenLedger

if TYPE_CHECKING:
    from unsctl.ledger.chain import LocalChain


class CNSRegistry(TokenLedger):
    """Legacy registry; the deployer is the first controller."""

    NAME = "CNSRegistry"

    def __init__(self, chain: LocalChain, address: str, *, sender: str) -> None:
        super().__init__(chain, address, sender=sender)
        self.controllers = RoleSet(Role.CONTROLLER, [sender])
        self.token_uri_prefix = ""
        self._resolvers: dict[int, str] = {}
        self._root = canonical_hash(ROOT_ID, LEGACY_TLD_LABEL)
        self._mint(BURN_ADDRESS, self._root)

    def root(self) -> int:
        return self._root

    def child_id_of(self, token_id: int, label: str) -> int:
        return canonical_hash(token_id, label)

    def resolver_of(self, token_id: int) -> str | None:
        return self._resolvers.get(token_id)

    def is_controller(self, account: str) -> bool:
        return self.controllers.has(account)

    def token_uri(self, token_id: int) -> str:
        self._require(self.exists(token_id), "URI query for nonexistent token")
        return f"{self.token_uri_prefix}{token_id}"

    def _only_controller(self, sender: str) -> None:
        self._require(self.controllers.has(sender), "sender is not controller")

    def add_controller(self, account: str, *, sender: str) -> None:
        self._only_controller(sender)
        self.controllers.add(account)

    def controlled_mint_child(self, to: str, token_id: int, label: str, *, sender: str) -> None:
        self._only_controller(sender)
        child = self.child_id_of(token_id, label)
        self._check_mint(to, child)
        self._mint(to, child)

    def controlled_safe_mint_child(
        self, to: str, token_id: int, label: str, data: bytes = b"", *, sender: str
    ) -> None:
        self._only_controller(sender)
        child = self.child_id_of(token_id, label)
        self._check_mint(to, child)
        self._check_receiver(to, child, data, sender)
        self._mint(to, child)

    def controlled_resolve_to(self, token_id: int, resolver: str, *, sender: str) -> None:
        self._only_controller(sender)
        self._require(self.exists(token_id), "token does not exist")
        self._resolvers[token_id] = Web3.to_checksum_address(resolver)

    def controlled_set_token_uri_prefix(self, prefix: str, *, sender: str) -> None:
        self._only_controller(sender)
        self.token_uri_prefix = prefix


class SignatureController(Program):
    """Meta-transaction controller for CNS token owners."""

    NAME = "SignatureController"

    def __init__(self, chain: LocalChain, address: str, registry: str, *, sender: str) -> None:
        super().__init__(chain, address, sender=sender)
        self.registry = Web3.to_checksum_address(registry)
        self._nonces: dict[int, int] = {}

    def nonce_of(self, token_id: int) -> int:
        return self._nonces.get(token_id, 0)


class MintingController(Program):
    """Mints ``crypto`` SLDs on the CNS registry for accounts with the minter role."""

    NAME = "MintingController"

    def __init__(self, chain: LocalChain, address: str, registry: str, *, sender: str) -> None:
        super().__init__(chain, address, sender=sender)
        self.registry = Web3.to_checksum_address(registry)
        self.minters = RoleSet(Role.MINTER, [sender])

    def is_minter(self, account: str) -> bool:
        return self.minters.has(account)

    def _only_minter(self, sender: str) -> None:
        self._require(self.minters.has(sender), "caller is not minter")

    def add_minter(self, account: str, *, sender: str) -> None:
        self._only_minter(sender)
        self.minters.add(account)

    def add_minters(self, accounts: Sequence[str], *, sender: str) -> None:
        self._only_minter(sender)
        for account in accounts:
            self.minters.add(account)

    def renounce_minter(self, *, sender: str) -> None:
        self.minters.remove(sender)

    def mint_sld(self, to: str, label: str, *, sender: str) -> None:
        self._only_minter(sender)
        registry = self._program(self.registry)
        registry.controlled_mint_child(to, registry.root(), label, sender=self.address)

    def safe_mint_sld(self, to: str, label: str, data: bytes = b"", *, sender: str) -> None:
        self._only_minter(sender)
        registry = self._program(self.registry)
        registry.controlled_safe_mint_child(
            to, registry.root(), label, data, sender=self.address
        )

    def mint_sld_with_resolver(self, to: str, label: str, resolver: str, *, sender: str) -> None:
        self._only_minter(sender)
        registry = self._program(self.registry)
        registry.controlled_mint_child(to, registry.root(), label, sender=self.address)
        registry.controlled_resolve_to(
            registry.child_id_of(registry.root(), label), resolver, sender=self.address
        )

    def safe_mint_sld_with_resolver(
        self, to: str, label: str, resolver: str, data: bytes = b"", *, sender: str
    ) -> None:
        self._only_minter(sender)
        registry = self._program(self.registry)
        registry.controlled_safe_mint_child(
            to, registry.root(), label, data, sender=self.address
        )
        registry.controlled_resolve_to(
            registry.child_id_of(registry.root(), label), resolver, sender=self.address
        )


class URIPrefixController(Program):
    """Lets whitelisted accounts change the CNS token URI prefix."""

    NAME = "URIPrefixController"

    def __init__(self, chain: LocalChain, address: str, registry: str, *, sender: str) -> None:
        super().__init__(chain, address, sender=sender)
        self.registry = Web3.to_checksum_address(registry)
        self.whitelisted = RoleSet(Role.WHITELISTED, [sender])

    def is_whitelisted(self, account: str) -> bool:
        return self.whitelisted.has(account)

    def add_whitelisted(self, account: str, *, sender: str) -> None:
        self._require(self.whitelisted.has(sender), "caller is not whitelisted")
        self.whitelisted.add(account)

    def set_token_uri_prefix(self, prefix: str, *, sender: str) -> None:
        self._require(self.whitelisted.has(sender), "caller is not whitelisted")
        self._program(self.registry).controlled_set_token_uri_prefix(prefix, sender=self.address)


class WhitelistedMinter(Program):
    """Batch-minting front end that must itself be a minter on the controller."""

    NAME = "WhitelistedMinter"

    def __init__(
        self, chain: LocalChain, address: str, minting_controller: str, *, sender: str
    ) -> None:
        super().__init__(chain, address, sender=sender)
        self.minting_controller = Web3.to_checksum_address(minting_controller)
        self.whitelisted = RoleSet(Role.WHITELISTED, [sender])

    def mint_sld(self, to: str, label: str, *, sender: str) -> None:
        self._require(self.whitelisted.has(sender), "caller is not whitelisted")
        self._program(self.minting_controller).mint_sld(to, label, sender=self.address)

    def bulk_mint_slds(self, to: Sequence[str], labels: Sequence[str], *, sender: str) -> None:
        self._require(len(to) == len(labels), "receivers and labels length mismatch")
        for receiver, label in zip(to, labels, strict=True):
            self.mint_sld(receiver, label, sender=sender)


class Resolver(Program):
    """Record store for CNS tokens.

    Minters of the minting controller may preconfigure records for a
    freshly minted token; afterwards only the token owner may write.
    """

    NAME = "Resolver"

    def __init__(
        self,
        chain: LocalChain,
        address: str,
        registry: str,
        minting_controller: str,
        *,
        sender: str,
    ) -> None:
        super().__init__(chain, address, sender=sender)
        self.registry = Web3.to_checksum_address(registry)
        self.minting_controller = Web3.to_checksum_address(minting_controller)
        self._records: dict[int, dict[str, str]] = {}

    def get(self, key: str, token_id: int) -> str:
        return self._records.get(token_id, {}).get(key, "")

    def get_many(self, keys: Sequence[str], token_id: int) -> list[str]:
        return [self.get(key, token_id) for key in keys]

    def preconfigure(
        self, keys: Sequence[str], values: Sequence[str], token_id: int, *, sender: str
    ) -> None:
        controller = self._program(self.minting_controller)
        self._require(controller.is_minter(sender), "sender is not minter")
        self._require(len(keys) == len(values), "keys and values length mismatch")
        self._write(keys, values, token_id)

    def set(self, key: str, value: str, token_id: int, *, sender: str) -> None:
        registry = self._program(self.registry)
        self._require(
            registry.exists(token_id)
            and registry.owner_of(token_id) == Web3.to_checksum_address(sender),
            "sender is not owner",
        )
        self._write([key], [value], token_id)

    def _write(self, keys: Sequence[str], values: Sequence[str], token_id: int) -> None:
        records = self._records.setdefault(token_id, {})
        for key, value in zip(keys, values, strict=True):
            records[key] = value
