"""MintingManager — the minting authority in front of UNS and CNS.

Every SLD mint goes through here. The manager decides which subsystem is
authoritative for the requested TLD and derives the new name's id:

* ``crypto`` (the legacy TLD) is delegated to the CNS MintingController,
  which mints by label and points the name at the manager's resolver.
* Every other registered TLD is minted directly on the UNS registry with
  ``child_id = canonical_hash(tld, label)``.

Access:
  - ``mint*`` / ``safeMint*`` require the minter role.
  - ``claim*`` is open to anyone but always mints ``udtestdev-<label>``.
  - ``set_resolver`` / ``set_token_uri_prefix`` / minter management require
    the owner.
  - ``relay`` accepts calldata signed by a minter, restricted to the six
    operations in :class:`~unsctl.domain.relay.RelayOperation`.

INVARIANT: a name is minted at most once. Re-minting fails in the
registry ("token already minted").

The CNS path with records is two calls: mint, then ``Resolver.preconfigure``.
They are not atomic. If the second call fails the name stays minted
without its records.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from eth_abi.exceptions import DecodingError
from eth_keys.exceptions import BadSignature
from web3 import Web3

from unsctl.domain.namehash import (
    BURN_ADDRESS,
    DEFAULT_TLD_LABELS,
    LEGACY_TLD_LABEL,
    canonical_hash,
    free_label,
    namehash,
    to_hex_id,
    token_uri,
)
from unsctl.domain.relay import (
    RelayOperation,
    call_selector,
    decode_relay_call,
    recover_relay_signer,
)
from unsctl.domain.roles import Role, RoleSet
from unsctl.ledger.programs.base import Initializable, Ownable

if TYPE_CHECKING:
    from unsctl.ledger.chain import LocalChain

logger = logging.getLogger(__name__)

LEGACY_TLD = namehash(LEGACY_TLD_LABEL)


class MintingManager(Initializable, Ownable):
    """Routes SLD mints to CNS or UNS and authorizes relayed mint calls."""

    NAME = "MintingManager"

    def __init__(self, chain: LocalChain, address: str, *, sender: str) -> None:
        super().__init__(chain, address, sender=sender)
        self.minters = RoleSet(Role.MINTER)
        self.registry: str | None = None
        self.minting_controller: str | None = None
        self.uri_prefix_controller: str | None = None
        self.resolver: str | None = None
        self._tlds: dict[int, str] = {}

    def initialize(
        self,
        registry: str,
        minting_controller: str,
        uri_prefix_controller: str,
        resolver: str,
        *,
        sender: str,
    ) -> None:
        """One-time setup: wire collaborators, grant roles, register TLDs.

        The manager itself becomes a minter so relayed calls, which run
        with the manager as sender, pass the minter check.
        """
        self._initialize_once()
        self.owner = Web3.to_checksum_address(sender)
        self.registry = Web3.to_checksum_address(registry)
        self.minting_controller = Web3.to_checksum_address(minting_controller)
        self.uri_prefix_controller = Web3.to_checksum_address(uri_prefix_controller)
        self.resolver = Web3.to_checksum_address(resolver)
        self.minters.add(sender)
        self.minters.add(self.address)
        for label in DEFAULT_TLD_LABELS:
            self._add_tld(label)

    # ------------------------------------------------------------------
    # TLDs
    # ------------------------------------------------------------------

    def tlds(self) -> dict[int, str]:
        """Registered TLD ids and their labels."""
        return dict(self._tlds)

    def is_tld(self, tld: int) -> bool:
        return tld in self._tlds

    def _add_tld(self, label: str) -> None:
        tld = namehash(label)
        self._tlds[tld] = label
        logger.debug("Registered TLD %s as %s", label, to_hex_id(tld))
        if tld == LEGACY_TLD:
            return
        registry = self._program(self.registry)
        if not registry.exists(tld):
            registry.mint(BURN_ADDRESS, tld, label, sender=self.address)

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def is_minter(self, account: str) -> bool:
        return self.minters.has(account)

    def add_minter(self, account: str, *, sender: str) -> None:
        self._only_owner(sender)
        self.minters.add(account)

    def add_minters(self, accounts: Sequence[str], *, sender: str) -> None:
        self._only_owner(sender)
        for account in accounts:
            self.minters.add(account)

    def remove_minter(self, account: str, *, sender: str) -> None:
        self._only_owner(sender)
        self.minters.remove(account)

    def remove_minters(self, accounts: Sequence[str], *, sender: str) -> None:
        self._only_owner(sender)
        for account in accounts:
            self.minters.remove(account)

    def renounce_minter(self, *, sender: str) -> None:
        self.minters.remove(sender)

    def set_resolver(self, resolver: str, *, sender: str) -> None:
        self._only_owner(sender)
        self.resolver = Web3.to_checksum_address(resolver)

    def set_token_uri_prefix(self, prefix: str, *, sender: str) -> None:
        """Update the URI prefix on both registries.

        The CNS side goes through the URIPrefixController, so the manager
        must be whitelisted there first.
        """
        self._only_owner(sender)
        self._program(self.registry).set_token_uri_prefix(prefix, sender=self.address)
        self._program(self.uri_prefix_controller).set_token_uri_prefix(
            prefix, sender=self.address
        )

    # ------------------------------------------------------------------
    # Minting (minter role)
    # ------------------------------------------------------------------

    def mint_sld(self, to: str, tld: int, label: str, *, sender: str) -> int:
        self._only_minter(sender)
        return self._mint_sld(to, tld, label)

    def safe_mint_sld(
        self, to: str, tld: int, label: str, data: bytes | None = None, *, sender: str
    ) -> int:
        self._only_minter(sender)
        return self._mint_sld(to, tld, label, safe=True, data=data or b"")

    def mint_sld_with_records(
        self,
        to: str,
        tld: int,
        label: str,
        keys: Sequence[str],
        values: Sequence[str],
        *,
        sender: str,
    ) -> int:
        self._only_minter(sender)
        return self._mint_sld(to, tld, label, keys, values)

    def safe_mint_sld_with_records(
        self,
        to: str,
        tld: int,
        label: str,
        keys: Sequence[str],
        values: Sequence[str],
        data: bytes | None = None,
        *,
        sender: str,
    ) -> int:
        self._only_minter(sender)
        return self._mint_sld(to, tld, label, keys, values, safe=True, data=data or b"")

    # ------------------------------------------------------------------
    # Claiming (open, reserved namespace)
    # ------------------------------------------------------------------

    def claim(self, tld: int, label: str, *, sender: str) -> int:
        return self.claim_to(sender, tld, label, sender=sender)

    def claim_to(self, to: str, tld: int, label: str, *, sender: str) -> int:
        self._check_claim(tld, label)
        return self._mint_sld(to, tld, free_label(label))

    def claim_to_with_records(
        self,
        to: str,
        tld: int,
        label: str,
        keys: Sequence[str],
        values: Sequence[str],
        *,
        sender: str,
    ) -> int:
        self._check_claim(tld, label)
        return self._mint_sld(to, tld, free_label(label), keys, values)

    # ------------------------------------------------------------------
    # Relay
    # ------------------------------------------------------------------

    def relay(self, data: bytes, signature: bytes, *, sender: str) -> int:
        """Execute mint calldata signed by a minter.

        The signer must hold the minter role and the selector must be one
        of the six relayable operations. The call then runs with the
        manager as sender.
        """
        try:
            signer = recover_relay_signer(data, self.address, signature)
        except (ValueError, BadSignature):
            signer = None
        self._require(signer is not None and self.minters.has(signer), "signer is not minter")
        operation = RelayOperation.from_selector(call_selector(data))
        self._require(operation is not None, "unsupported relay call")
        try:
            args = decode_relay_call(operation, data)
        except (DecodingError, UnicodeDecodeError):
            args = None
        self._require(args is not None, "unsupported relay call")
        return getattr(self, operation.method)(*args, sender=self.address)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _only_minter(self, sender: str) -> None:
        self._require(self.minters.has(sender), "caller is not minter")

    def _check_claim(self, tld: int, label: str) -> None:
        """Validate the caller-supplied label before it is rewritten."""
        self._require(tld in self._tlds, "TLD not valid")
        self._require(len(label) > 0, "label empty")

    def _child_id(self, tld: int, label: str) -> int:
        self._require(tld in self._tlds, "TLD not valid")
        self._require(len(label) > 0, "label empty")
        return canonical_hash(tld, label)

    def _mint_sld(
        self,
        to: str,
        tld: int,
        label: str,
        keys: Sequence[str] = (),
        values: Sequence[str] = (),
        *,
        safe: bool = False,
        data: bytes = b"",
    ) -> int:
        token_id = self._child_id(tld, label)
        self._require(len(keys) == len(values), "keys and values length mismatch")

        if tld == LEGACY_TLD:
            controller = self._program(self.minting_controller)
            if safe:
                controller.safe_mint_sld_with_resolver(
                    to, label, self.resolver, data, sender=self.address
                )
            else:
                controller.mint_sld_with_resolver(to, label, self.resolver, sender=self.address)
            if keys:
                self._program(self.resolver).preconfigure(
                    list(keys), list(values), token_id, sender=self.address
                )
            return token_id

        registry = self._program(self.registry)
        uri = token_uri(label, self._tlds[tld])
        if keys:
            if safe:
                registry.safe_mint_with_records(
                    to, token_id, uri, list(keys), list(values), data, sender=self.address
                )
            else:
                registry.mint_with_records(
                    to, token_id, uri, list(keys), list(values), sender=self.address
                )
        elif safe:
            registry.safe_mint(to, token_id, uri, data, sender=self.address)
        else:
            registry.mint(to, token_id, uri, sender=self.address)
        return token_id
