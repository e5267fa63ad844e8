"""RpcBackend — program factories over a JSON-RPC node via web3.

Compiled artifacts are read from ``<artifacts_path>/<Name>.json`` (the
flat ``{"abi": [...], "bytecode": "0x..."}`` layout). Upgradeable
programs are deployed behind ``TransparentUpgradeableProxy`` administered
by a ``ProxyAdmin``; both artifacts must be present alongside the rest.

Every transaction is signed locally with the session key, sent, and
awaited before the call returns.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.middleware import ExtraDataToPOAMiddleware

from unsctl.deployer.artifacts import PROGRAM_NAMES
from unsctl.errors import TransactionError, UnsError

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

    from unsctl.config.settings import UnsSettings

logger = logging.getLogger(__name__)

# EIP-1967 storage slots.
IMPLEMENTATION_SLOT = int("360894a13ba1a3210667c828492db98dca3e2076cc3735a920a3ca505d382bbc", 16)
ADMIN_SLOT = int("b53127684a568b3173ae13b9f8a6016e243e63b6e8ee1178d6a717850b5d6103", 16)

PROXY_ARTIFACT = "TransparentUpgradeableProxy"
PROXY_ADMIN_ARTIFACT = "ProxyAdmin"
RECEIPT_TIMEOUT = 300


def load_artifact(artifacts_path: Path, name: str) -> dict[str, Any]:
    """Load ``<name>.json`` and check it carries an ABI and bytecode."""
    path = artifacts_path / f"{name}.json"
    if not path.is_file():
        msg = f"Artifact not found: {path}"
        raise UnsError(msg)
    try:
        artifact = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Malformed artifact {path}: {exc}"
        raise UnsError(msg) from exc
    if "abi" not in artifact or "bytecode" not in artifact:
        msg = f"Artifact {path} is missing 'abi' or 'bytecode'"
        raise UnsError(msg)
    return artifact


def abi_function_name(abi: list[dict[str, Any]], method: str) -> str:
    """Map a snake_case method name onto the ABI (``set_token_uri_prefix`` -> ``setTokenURIPrefix``)."""
    wanted = method.replace("_", "").lower()
    for entry in abi:
        if entry.get("type") == "function" and entry["name"].lower() == wanted:
            return entry["name"]
    msg = f"Function {method!r} not found in ABI"
    raise UnsError(msg)


def _slot_address(w3: Web3, address: str, slot: int) -> str | None:
    raw = bytes(w3.eth.get_storage_at(address, slot))
    value = raw[-20:]
    if not any(value):
        return None
    return Web3.to_checksum_address("0x" + value.hex())


class RpcSigner:
    """Signs, sends, and awaits transactions for one account."""

    def __init__(self, w3: Web3, account: LocalAccount) -> None:
        self.w3 = w3
        self.account = account

    @property
    def address(self) -> str:
        return self.account.address

    def send(self, call: Any, label: str) -> Mapping[str, Any]:
        """Build *call* (a web3 contract function or constructor) and wait for the receipt."""
        try:
            tx = call.build_transaction(
                {
                    "from": self.account.address,
                    "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
                    "chainId": self.w3.eth.chain_id,
                }
            )
        except ContractLogicError as exc:
            raise TransactionError(label, str(exc.message or exc)) from exc

        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.debug("Sent %s: %s", label, tx_hash.hex())
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=RECEIPT_TIMEOUT)
        except TimeExhausted as exc:
            raise TransactionError(label, "receipt timed out") from exc
        if receipt["status"] != 1:
            raise TransactionError(label, "reverted")
        return receipt


class RpcProgram:
    """Handle to a deployed program on an RPC network."""

    def __init__(
        self,
        signer: RpcSigner,
        address: str,
        abi: list[dict[str, Any]],
        receipt: Mapping[str, Any] | None = None,
    ) -> None:
        self._signer = signer
        self._abi = abi
        self.address = Web3.to_checksum_address(address)
        self.receipt = receipt
        self.contract = signer.w3.eth.contract(address=self.address, abi=abi)

    def _function(self, method: str, *args: Any) -> Any:
        return getattr(self.contract.functions, abi_function_name(self._abi, method))(*args)

    def transact(self, method: str, *args: Any) -> Mapping[str, Any]:
        return self._signer.send(self._function(method, *args), method)

    def call(self, method: str, *args: Any) -> Any:
        return self._function(method, *args).call()


class RpcProgramFactory:
    """Deploys one compiled artifact as the session signer."""

    def __init__(self, backend: RpcBackend, name: str, artifact: dict[str, Any]) -> None:
        self._backend = backend
        self._artifact = artifact
        self.name = name

    @property
    def abi(self) -> list[dict[str, Any]]:
        return self._artifact["abi"]

    def deploy(self, *args: Any) -> RpcProgram:
        signer = self._backend.rpc_signer
        constructor = signer.w3.eth.contract(
            abi=self.abi, bytecode=self._artifact["bytecode"]
        ).constructor(*args)
        receipt = signer.send(constructor, f"deploy {self.name}")
        return RpcProgram(signer, receipt["contractAddress"], self.abi, receipt)

    def attach(self, address: str) -> RpcProgram:
        return RpcProgram(self._backend.rpc_signer, address, self.abi)

    def deploy_proxy(self, *args: Any, initializer: str | None = "initialize") -> RpcProgram:
        implementation = self.deploy()
        data = b""
        if initializer:
            data = implementation.contract.encode_abi(
                abi_function_name(self.abi, initializer), args=list(args)
            )
        proxy = self._backend.factory(PROXY_ARTIFACT).deploy(
            implementation.address, self._backend.proxy_admin().address, data
        )
        return RpcProgram(self._backend.rpc_signer, proxy.address, self.abi, proxy.receipt)

    def upgrade_proxy(self, proxy: str) -> RpcProgram:
        """Deploy new code and point *proxy* at it. The handle carries no receipt."""
        w3 = self._backend.w3
        admin_address = _slot_address(w3, proxy, ADMIN_SLOT)
        if admin_address is None:
            msg = f"{proxy} has no proxy admin"
            raise UnsError(msg)
        implementation = self.deploy()
        admin = self._backend.factory(PROXY_ADMIN_ARTIFACT).attach(admin_address)
        admin.transact("upgrade", proxy, implementation.address)
        return RpcProgram(self._backend.rpc_signer, proxy, self.abi)

    def implementation_address(self, proxy: str) -> str | None:
        return _slot_address(self._backend.w3, proxy, IMPLEMENTATION_SLOT)


class RpcBackend:
    """Backend for networks reached over JSON-RPC."""

    def __init__(
        self,
        w3: Web3,
        account: LocalAccount,
        artifacts_path: Path,
        *,
        network_name: str,
    ) -> None:
        self.w3 = w3
        self.rpc_signer = RpcSigner(w3, account)
        self.artifacts_path = artifacts_path
        self.network_name = network_name
        self.chain_id = w3.eth.chain_id
        self.signer = account.address
        self._proxy_admin: RpcProgram | None = None

    @classmethod
    def connect(cls, settings: UnsSettings) -> RpcBackend:
        """Connect to the active network's node and check its chain id.

        Raises:
            UnsError: No private key, node unreachable, or chain id mismatch.
        """
        profile = settings.network_profile
        if settings.private_key is None:
            msg = f"UNSCTL_PRIVATE_KEY is required for network {settings.network!r}"
            raise UnsError(msg)

        w3 = Web3(Web3.HTTPProvider(profile.url))
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        if not w3.is_connected():
            msg = f"Cannot connect to {profile.url}"
            raise UnsError(msg)
        if w3.eth.chain_id != profile.chain_id:
            msg = (
                f"Network {settings.network!r} expects chain id {profile.chain_id}, "
                f"node reports {w3.eth.chain_id}"
            )
            raise UnsError(msg)

        account = Account.from_key(settings.private_key.get_secret_value())
        return cls(w3, account, settings.artifacts_path, network_name=settings.network)

    def factory(self, name: str) -> RpcProgramFactory:
        return RpcProgramFactory(self, name, load_artifact(self.artifacts_path, name))

    def factories(self) -> dict[str, RpcProgramFactory]:
        return {name: self.factory(name) for name in PROGRAM_NAMES}

    def proxy_admin(self) -> RpcProgram:
        """ProxyAdmin for proxies deployed by this backend, deployed on first use."""
        if self._proxy_admin is None:
            self._proxy_admin = self.factory(PROXY_ADMIN_ARTIFACT).deploy()
        return self._proxy_admin
