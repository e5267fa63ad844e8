"""UNS registry and the read-only proxy reader over UNS and CNS."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from web3 import Web3

from unsctl.ledger.programs.base import Initializable, Program, TokenLedger

if TYPE_CHECKING:
    from unsctl.ledger.chain import LocalChain


class UNSRegistry(Initializable, TokenLedger):
    """Upgradeable name registry. Only the minting manager may mint."""

    NAME = "UNSRegistry"

    def __init__(self, chain: LocalChain, address: str, *, sender: str) -> None:
        super().__init__(chain, address, sender=sender)
        self.minting_manager: str | None = None
        self.token_uri_prefix = ""
        self._names: dict[int, str] = {}

    def initialize(self, minting_manager: str, *, sender: str) -> None:
        self._initialize_once()
        self.minting_manager = Web3.to_checksum_address(minting_manager)

    def _only_minting_manager(self, sender: str) -> None:
        self._require(
            self.minting_manager is not None
            and Web3.to_checksum_address(sender) == self.minting_manager,
            "sender is not minting manager",
        )

    # --- minting (minting manager only) ---

    def mint(self, to: str, token_id: int, uri: str, *, sender: str) -> None:
        self._only_minting_manager(sender)
        self._check_mint(to, token_id)
        self._register(to, token_id, uri)

    def safe_mint(
        self, to: str, token_id: int, uri: str, data: bytes = b"", *, sender: str
    ) -> None:
        self._only_minting_manager(sender)
        self._check_mint(to, token_id)
        self._check_receiver(to, token_id, data, sender)
        self._register(to, token_id, uri)

    def mint_with_records(
        self,
        to: str,
        token_id: int,
        uri: str,
        keys: Sequence[str],
        values: Sequence[str],
        *,
        sender: str,
    ) -> None:
        self._only_minting_manager(sender)
        self._check_mint(to, token_id)
        self._check_records(keys, values)
        self._register(to, token_id, uri)
        self._set_many(keys, values, token_id)

    def safe_mint_with_records(
        self,
        to: str,
        token_id: int,
        uri: str,
        keys: Sequence[str],
        values: Sequence[str],
        data: bytes = b"",
        *,
        sender: str,
    ) -> None:
        self._only_minting_manager(sender)
        self._check_mint(to, token_id)
        self._check_records(keys, values)
        self._check_receiver(to, token_id, data, sender)
        self._register(to, token_id, uri)
        self._set_many(keys, values, token_id)

    def set_token_uri_prefix(self, prefix: str, *, sender: str) -> None:
        self._only_minting_manager(sender)
        self.token_uri_prefix = prefix

    # --- records (token owner only) ---

    def set(self, key: str, value: str, token_id: int, *, sender: str) -> None:
        self._require(
            self.exists(token_id) and self._owners[token_id] == Web3.to_checksum_address(sender),
            "sender is not approved or owner",
        )
        self._set_many([key], [value], token_id)

    # --- views ---

    def name_of(self, token_id: int) -> str:
        return self._names.get(token_id, "")

    def token_uri(self, token_id: int) -> str:
        self._require(self.exists(token_id), "URI query for nonexistent token")
        return f"{self.token_uri_prefix}{token_id}"

    def _register(self, to: str, token_id: int, uri: str) -> None:
        self._mint(to, token_id)
        self._names[token_id] = uri


class ProxyReader(Program):
    """Read-only view that resolves a token against UNS first, then CNS."""

    NAME = "ProxyReader"

    def __init__(
        self, chain: LocalChain, address: str, registry: str, cns_registry: str, *, sender: str
    ) -> None:
        super().__init__(chain, address, sender=sender)
        self.registry = Web3.to_checksum_address(registry)
        self.cns_registry = Web3.to_checksum_address(cns_registry)

    def exists(self, token_id: int) -> bool:
        return self._program(self.registry).exists(token_id) or self._program(
            self.cns_registry
        ).exists(token_id)

    def owner_of(self, token_id: int) -> str:
        uns = self._program(self.registry)
        if uns.exists(token_id):
            return uns.owner_of(token_id)
        return self._program(self.cns_registry).owner_of(token_id)

    def get(self, key: str, token_id: int) -> str:
        uns = self._program(self.registry)
        if uns.exists(token_id):
            return uns.get(key, token_id)
        cns = self._program(self.cns_registry)
        resolver = cns.resolver_of(token_id)
        if resolver is None:
            return ""
        return self._program(resolver).get(key, token_id)

    def get_many(self, keys: Sequence[str], token_id: int) -> list[str]:
        return [self.get(key, token_id) for key in keys]
