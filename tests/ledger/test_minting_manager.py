"""Tests for MintingManager routing, access control, and relay."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from tests.conftest import contract_addresses
from unsctl.deployer.session import DeploymentSession
from unsctl.domain.namehash import (
    BURN_ADDRESS,
    ROOT_ID,
    canonical_hash,
    free_label,
    to_hex_id,
)
from unsctl.domain.relay import RelayOperation, encode_call, encode_relay_call, sign_relay
from unsctl.errors import TransactionError
from unsctl.ledger.chain import LocalChain
from unsctl.ledger.programs import MintingController, MintingManager, Resolver, UNSRegistry

CRYPTO = canonical_hash(ROOT_ID, "crypto")
WALLET = canonical_hash(ROOT_ID, "wallet")
COIN = canonical_hash(ROOT_ID, "coin")


class Deployment:
    """Addresses and program objects of a ``full`` deployment."""

    def __init__(self, session: DeploymentSession, chain: LocalChain) -> None:
        self.chain = chain
        self.owner = session.accounts.owner
        self.addresses = contract_addresses(session)
        self.manager_address = self.addresses["MintingManager"]

    def program(self, name: str) -> Any:
        return self.chain.program_at(self.addresses[name])

    @property
    def manager(self) -> MintingManager:
        return self.program("MintingManager")

    @property
    def registry(self) -> UNSRegistry:
        return self.program("UNSRegistry")

    def transact(self, method: str, *args: Any, sender: str | None = None) -> None:
        self.chain.transact(self.manager_address, method, *args, sender=sender or self.owner)


@pytest.fixture
def uns(deployed: DeploymentSession, chain: LocalChain) -> Deployment:
    return Deployment(deployed, chain)


@pytest.fixture
def receiver(chain: LocalChain) -> str:
    return chain.accounts[1].address


@pytest.fixture
def stranger(chain: LocalChain) -> str:
    return chain.accounts[2].address


class TestInitialize:
    def test_registers_default_tlds(self, uns: Deployment) -> None:
        assert uns.manager.tlds() == {CRYPTO: "crypto", WALLET: "wallet", COIN: "coin"}
        assert uns.manager.is_tld(COIN)

    def test_uns_tlds_owned_by_burn_address(self, uns: Deployment) -> None:
        assert uns.registry.owner_of(WALLET) == BURN_ADDRESS
        assert uns.registry.owner_of(COIN) == BURN_ADDRESS

    def test_legacy_tld_not_minted_on_uns(self, uns: Deployment) -> None:
        assert not uns.registry.exists(CRYPTO)
        assert uns.program("CNSRegistry").exists(CRYPTO)

    def test_owner_and_manager_are_minters(self, uns: Deployment) -> None:
        assert uns.manager.is_minter(uns.owner)
        assert uns.manager.is_minter(uns.manager_address)

    def test_second_initialize_fails(self, uns: Deployment) -> None:
        with pytest.raises(TransactionError, match="already initialized"):
            uns.transact(
                "initialize",
                uns.addresses["UNSRegistry"],
                uns.addresses["MintingController"],
                uns.addresses["URIPrefixController"],
                uns.addresses["Resolver"],
            )

    def test_existing_tld_is_not_reminted(self, chain: LocalChain, owner: str) -> None:
        manager = chain.deploy_proxy(MintingManager, sender=owner, initializer=None)[
            "contractAddress"
        ]
        registry = chain.deploy_proxy(UNSRegistry, manager, sender=owner)["contractAddress"]
        chain.transact(registry, "mint", owner, WALLET, "wallet", sender=manager)

        collaborators = [account.address for account in chain.accounts[5:8]]
        chain.transact(manager, "initialize", registry, *collaborators, sender=owner)

        assert chain.call(registry, "owner_of", WALLET) == owner
        assert chain.call(registry, "owner_of", COIN) == BURN_ADDRESS

    def test_logs_tld_ids(
        self, chain: LocalChain, owner: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.DEBUG, logger="unsctl")
        manager = chain.deploy_proxy(MintingManager, sender=owner, initializer=None)[
            "contractAddress"
        ]
        registry = chain.deploy_proxy(UNSRegistry, manager, sender=owner)["contractAddress"]
        collaborators = [account.address for account in chain.accounts[5:8]]
        chain.transact(manager, "initialize", registry, *collaborators, sender=owner)

        assert f"Registered TLD coin as {to_hex_id(COIN)}" in caplog.messages
        assert f"Registered TLD crypto as {to_hex_id(CRYPTO)}" in caplog.messages


class TestMint:
    def test_mint_uns_sld(self, uns: Deployment, receiver: str) -> None:
        uns.transact("mint_sld", receiver, COIN, "abc")
        token_id = canonical_hash(COIN, "abc")
        assert uns.registry.owner_of(token_id) == receiver
        assert uns.registry.name_of(token_id) == "abc.coin"
        assert uns.program("ProxyReader").owner_of(token_id) == receiver

    def test_mint_returns_child_id(self, uns: Deployment, receiver: str) -> None:
        token_id = uns.manager.mint_sld(receiver, WALLET, "abc", sender=uns.owner)
        assert token_id == canonical_hash(WALLET, "abc")

    def test_second_mint_fails(self, uns: Deployment, receiver: str) -> None:
        uns.transact("mint_sld", receiver, COIN, "abc")
        with pytest.raises(TransactionError, match="token already minted"):
            uns.transact("mint_sld", receiver, COIN, "abc")

    def test_unknown_tld(self, uns: Deployment, receiver: str) -> None:
        unknown = canonical_hash(ROOT_ID, "unknown")
        with pytest.raises(TransactionError, match="TLD not valid"):
            uns.transact("mint_sld", receiver, unknown, "abc")

    def test_empty_label(self, uns: Deployment, receiver: str) -> None:
        with pytest.raises(TransactionError, match="label empty"):
            uns.transact("mint_sld", receiver, COIN, "")

    def test_requires_minter(self, uns: Deployment, receiver: str, stranger: str) -> None:
        with pytest.raises(TransactionError, match="caller is not minter"):
            uns.transact("mint_sld", receiver, COIN, "abc", sender=stranger)

    def test_mint_with_records(self, uns: Deployment, receiver: str) -> None:
        uns.transact("mint_sld_with_records", receiver, WALLET, "abc", ["k1", "k2"], ["v1", "v2"])
        token_id = canonical_hash(WALLET, "abc")
        assert uns.registry.get_many(["k1", "k2"], token_id) == ["v1", "v2"]
        assert uns.program("ProxyReader").get("k1", token_id) == "v1"

    def test_records_length_mismatch(self, uns: Deployment, receiver: str) -> None:
        with pytest.raises(TransactionError, match="keys and values length mismatch"):
            uns.transact("mint_sld_with_records", receiver, WALLET, "abc", ["k1"], [])
        assert not uns.registry.exists(canonical_hash(WALLET, "abc"))

    def test_safe_mint_to_account(self, uns: Deployment, receiver: str) -> None:
        uns.transact("safe_mint_sld", receiver, COIN, "abc")
        assert uns.registry.owner_of(canonical_hash(COIN, "abc")) == receiver

    def test_safe_mint_to_non_receiver_program(self, uns: Deployment) -> None:
        target = uns.addresses["ProxyReader"]
        with pytest.raises(TransactionError, match="non ERC721Receiver"):
            uns.transact("safe_mint_sld", target, COIN, "abc")
        assert not uns.registry.exists(canonical_hash(COIN, "abc"))

    def test_plain_mint_to_program_allowed(self, uns: Deployment) -> None:
        target = uns.addresses["ProxyReader"]
        uns.transact("mint_sld", target, COIN, "abc")
        assert uns.registry.owner_of(canonical_hash(COIN, "abc")) == target


class TestLegacyMint:
    def test_mint_crypto_goes_to_cns(self, uns: Deployment, receiver: str) -> None:
        uns.transact("mint_sld", receiver, CRYPTO, "legacy")
        token_id = canonical_hash(CRYPTO, "legacy")
        cns = uns.program("CNSRegistry")
        assert cns.owner_of(token_id) == receiver
        assert cns.resolver_of(token_id) == uns.addresses["Resolver"]
        assert not uns.registry.exists(token_id)

    def test_crypto_records_go_to_resolver(self, uns: Deployment, receiver: str) -> None:
        uns.transact("mint_sld_with_records", receiver, CRYPTO, "legacy", ["k"], ["v"])
        token_id = canonical_hash(CRYPTO, "legacy")
        assert uns.program("Resolver").get("k", token_id) == "v"
        assert uns.program("ProxyReader").get("k", token_id) == "v"

    def test_crypto_requires_cns_configuration(
        self, session: DeploymentSession, chain: LocalChain, receiver: str
    ) -> None:
        session.execute(["cns", "uns"])
        uns = Deployment(session, chain)
        with pytest.raises(TransactionError, match="caller is not minter"):
            uns.transact("mint_sld", receiver, CRYPTO, "legacy")

    def test_second_crypto_mint_fails(self, uns: Deployment, receiver: str) -> None:
        uns.transact("mint_sld", receiver, CRYPTO, "legacy")
        with pytest.raises(TransactionError, match="token already minted"):
            uns.transact("mint_sld", receiver, CRYPTO, "legacy")

    def test_records_failure_leaves_name_minted(
        self, uns: Deployment, chain: LocalChain, receiver: str
    ) -> None:
        cns = uns.addresses["CNSRegistry"]
        other_controller = chain.deploy(MintingController, cns, sender=uns.owner)
        resolver = chain.deploy(
            Resolver, cns, other_controller["contractAddress"], sender=uns.owner
        )["contractAddress"]
        uns.transact("set_resolver", resolver)

        with pytest.raises(TransactionError, match="sender is not minter"):
            uns.transact("mint_sld_with_records", receiver, CRYPTO, "legacy", ["k"], ["v"])

        token_id = canonical_hash(CRYPTO, "legacy")
        registry = uns.program("CNSRegistry")
        assert registry.exists(token_id)
        assert registry.owner_of(token_id) == receiver
        assert registry.resolver_of(token_id) == resolver
        assert chain.program_at(resolver).get("k", token_id) == ""


class TestClaim:
    def test_claim_rewrites_label(self, uns: Deployment, stranger: str) -> None:
        uns.transact("claim", COIN, "abc", sender=stranger)
        token_id = canonical_hash(COIN, free_label("abc"))
        assert uns.registry.owner_of(token_id) == stranger
        assert uns.registry.name_of(token_id) == "udtestdev-abc.coin"
        assert not uns.registry.exists(canonical_hash(COIN, "abc"))

    def test_claim_to(self, uns: Deployment, stranger: str, receiver: str) -> None:
        uns.transact("claim_to", receiver, WALLET, "abc", sender=stranger)
        assert uns.registry.owner_of(canonical_hash(WALLET, "udtestdev-abc")) == receiver

    def test_claim_with_records(self, uns: Deployment, stranger: str) -> None:
        uns.transact(
            "claim_to_with_records", stranger, WALLET, "abc", ["k"], ["v"], sender=stranger
        )
        assert uns.registry.get("k", canonical_hash(WALLET, "udtestdev-abc")) == "v"

    def test_claim_empty_label(self, uns: Deployment, stranger: str) -> None:
        with pytest.raises(TransactionError, match="label empty"):
            uns.transact("claim", COIN, "", sender=stranger)

    def test_claim_unknown_tld_checked_first(self, uns: Deployment, stranger: str) -> None:
        with pytest.raises(TransactionError, match="TLD not valid"):
            uns.transact("claim", canonical_hash(ROOT_ID, "nope"), "", sender=stranger)


class TestRoles:
    def test_owner_manages_minters(self, uns: Deployment, stranger: str) -> None:
        uns.transact("add_minter", stranger)
        assert uns.manager.is_minter(stranger)
        uns.transact("remove_minter", stranger)
        assert not uns.manager.is_minter(stranger)

    def test_add_minters_batch(self, uns: Deployment, chain: LocalChain) -> None:
        accounts = [account.address for account in chain.accounts[6:9]]
        uns.transact("add_minters", accounts)
        assert all(uns.manager.is_minter(account) for account in accounts)
        uns.transact("remove_minters", accounts)
        assert not any(uns.manager.is_minter(account) for account in accounts)

    def test_only_owner_adds_minters(self, uns: Deployment, stranger: str) -> None:
        with pytest.raises(TransactionError, match="caller is not the owner"):
            uns.transact("add_minter", stranger, sender=stranger)

    def test_renounce_minter(self, uns: Deployment, stranger: str) -> None:
        uns.transact("add_minter", stranger)
        uns.transact("renounce_minter", sender=stranger)
        assert not uns.manager.is_minter(stranger)

    def test_set_resolver(self, uns: Deployment, stranger: str) -> None:
        uns.transact("set_resolver", stranger)
        assert uns.manager.resolver == stranger
        with pytest.raises(TransactionError, match="caller is not the owner"):
            uns.transact("set_resolver", stranger, sender=stranger)

    def test_set_token_uri_prefix_updates_both_registries(self, uns: Deployment) -> None:
        uns.transact("set_token_uri_prefix", "https://example.test/")
        assert uns.registry.token_uri_prefix == "https://example.test/"
        assert uns.program("CNSRegistry").token_uri_prefix == "https://example.test/"


class TestRelay:
    def _relay(self, uns: Deployment, data: bytes, key: Any, relayer: str) -> None:
        signature = sign_relay(data, uns.manager_address, key)
        uns.transact("relay", data, signature, sender=relayer)

    def test_relayed_mint(
        self, uns: Deployment, chain: LocalChain, receiver: str, stranger: str
    ) -> None:
        data = encode_relay_call(RelayOperation.MINT_SLD, receiver, COIN, "relayed")
        self._relay(uns, data, chain.accounts[0].key, stranger)
        assert uns.registry.owner_of(canonical_hash(COIN, "relayed")) == receiver

    def test_relayed_mint_with_records(
        self, uns: Deployment, chain: LocalChain, receiver: str, stranger: str
    ) -> None:
        data = encode_relay_call(
            RelayOperation.SAFE_MINT_SLD_WITH_RECORDS_DATA,
            receiver,
            WALLET,
            "relayed",
            ["k"],
            ["v"],
            b"\x01",
        )
        self._relay(uns, data, chain.accounts[0].key, stranger)
        assert uns.registry.get("k", canonical_hash(WALLET, "relayed")) == "v"

    def test_signer_must_be_minter(
        self, uns: Deployment, chain: LocalChain, receiver: str, stranger: str
    ) -> None:
        data = encode_relay_call(RelayOperation.MINT_SLD, receiver, COIN, "relayed")
        with pytest.raises(TransactionError, match="signer is not minter"):
            self._relay(uns, data, chain.accounts[4].key, stranger)

    def test_tampered_data_rejected(
        self, uns: Deployment, chain: LocalChain, receiver: str, stranger: str
    ) -> None:
        signed = encode_relay_call(RelayOperation.MINT_SLD, receiver, COIN, "relayed")
        sent = encode_relay_call(RelayOperation.MINT_SLD, stranger, COIN, "relayed")
        signature = sign_relay(signed, uns.manager_address, chain.accounts[0].key)
        with pytest.raises(TransactionError, match="signer is not minter"):
            uns.transact("relay", sent, signature, sender=stranger)

    def test_unsupported_call_rejected(
        self, uns: Deployment, chain: LocalChain, stranger: str
    ) -> None:
        data = encode_call("setResolver(address)", ("address",), stranger)
        with pytest.raises(TransactionError, match="unsupported relay call"):
            self._relay(uns, data, chain.accounts[0].key, stranger)
        assert uns.manager.resolver == uns.addresses["Resolver"]

    def test_relay_checks_tld(
        self, uns: Deployment, chain: LocalChain, receiver: str, stranger: str
    ) -> None:
        unknown = canonical_hash(ROOT_ID, "unknown")
        data = encode_relay_call(RelayOperation.MINT_SLD, receiver, unknown, "relayed")
        with pytest.raises(TransactionError, match="TLD not valid"):
            self._relay(uns, data, chain.accounts[0].key, stranger)

    def test_truncated_arguments_rejected(
        self, uns: Deployment, chain: LocalChain, stranger: str
    ) -> None:
        data = RelayOperation.MINT_SLD.selector + b"\x00" * 10
        with pytest.raises(TransactionError, match="unsupported relay call"):
            self._relay(uns, data, chain.accounts[0].key, stranger)

    def test_garbled_arguments_rejected(
        self, uns: Deployment, chain: LocalChain, receiver: str, stranger: str
    ) -> None:
        valid = encode_relay_call(RelayOperation.MINT_SLD, receiver, COIN, "relayed")
        data = valid[:-32] + b"\xff" * 32
        with pytest.raises(TransactionError, match="unsupported relay call"):
            self._relay(uns, data, chain.accounts[0].key, stranger)
        assert not uns.registry.exists(canonical_hash(COIN, "relayed"))
