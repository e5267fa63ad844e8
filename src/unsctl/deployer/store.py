"""NetworkConfigStore — the per-network deployment record on disk.

One JSON document per chain id at ``<base_path>/<chain_id>.json``::

    {"contracts": {"<Name>": {"address": ..., "implementation": ...,
                              "legacyAddresses": [...], "transaction": {...}}}}

INVARIANT: writes are read-merge-write (:func:`~unsctl.deployer.merge.deep_merge`),
never overwrites, so fields written by earlier runs survive.

No locking: two sessions writing the same chain id concurrently can lose
updates. Run one deployer per network at a time.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from web3 import Web3

from unsctl.deployer.merge import deep_merge
from unsctl.domain.namehash import ZERO_ADDRESS
from unsctl.errors import PersistenceError

if TYPE_CHECKING:
    from unsctl.deployer.artifacts import Program

EMPTY_BLOCK = "0x0"


def to_hex_string(value: int | str) -> str:
    """Render a block number as an even-length 0x-prefixed hex string."""
    number = int(value, 16) if isinstance(value, str) else int(value)
    digits = f"{number:x}"
    if len(digits) % 2:
        digits = f"0{digits}"
    return f"0x{digits}"


def normalize_receipt(receipt: Any) -> dict[str, Any] | None:
    """Convert a ledger receipt (dict or web3 AttributeDict) into plain JSON data."""
    if receipt is None:
        return None
    return json.loads(Web3.to_json(receipt))


def _check_contracts(path: Path, contracts: Any) -> None:
    if contracts is None:
        return
    if not isinstance(contracts, dict):
        msg = f"Malformed network config {path}: 'contracts' must be an object"
        raise PersistenceError(msg)
    for name, record in contracts.items():
        if not isinstance(record, dict):
            msg = f"Malformed network config {path}: contract {name!r} must be an object"
            raise PersistenceError(msg)
        transaction = record.get("transaction")
        if transaction is not None and not isinstance(transaction, dict):
            msg = f"Malformed network config {path}: {name}.transaction must be an object"
            raise PersistenceError(msg)


class NetworkConfigStore:
    """Read/merge/write access to one network's deployment record."""

    def __init__(self, base_path: Path, chain_id: int) -> None:
        self.base_path = Path(base_path)
        self.chain_id = chain_id

    @property
    def path(self) -> Path:
        return self.base_path / f"{self.chain_id}.json"

    def ensure_base_path(self) -> None:
        """Create the base directory if it does not exist yet."""
        self.base_path.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_deploy_config(self) -> dict[str, Any]:
        """Parsed record for this network, or ``{}`` when absent or empty.

        Raises:
            PersistenceError: The file exists but is not a JSON object, or
                ``contracts`` is not a mapping of per-program objects.
        """
        if not self.path.is_file():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Cannot read network config {self.path}: {exc}"
            raise PersistenceError(msg) from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = f"Malformed network config {self.path}: {exc}"
            raise PersistenceError(msg) from exc
        if not isinstance(data, dict):
            msg = f"Network config root must be an object, got {type(data).__name__}"
            raise PersistenceError(msg)
        _check_contracts(self.path, data.get("contracts"))
        return data

    def get_contract(self, name: str) -> dict[str, Any] | None:
        """Persisted record for *name*, or None if it was never deployed."""
        record = (self.get_deploy_config().get("contracts") or {}).get(name)
        if not record or not record.get("address"):
            return None
        return record

    def get_network_config(self) -> dict[str, Any]:
        """External view: ``{networks: {chainId: {contracts: {...}}}}``."""
        config = self.get_deploy_config()
        contracts: dict[str, Any] = {}
        for name, record in (config.get("contracts") or {}).items():
            transaction = record.get("transaction")
            block = transaction.get("blockNumber") if transaction else None
            contracts[name] = {
                "address": record.get("address", ZERO_ADDRESS),
                "implementation": record.get("implementation"),
                "legacyAddresses": list(record.get("legacyAddresses") or []),
                "deploymentBlock": to_hex_string(block) if block is not None else EMPTY_BLOCK,
            }
        return {"networks": {str(self.chain_id): {"contracts": contracts}}}

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def save_contract_config(
        self,
        name: str,
        program: Program,
        implementation: str | None = None,
    ) -> dict[str, Any]:
        """Merge *program*'s address, implementation, and receipt into the record."""
        update = {
            "contracts": {
                name: {
                    "address": program.address,
                    "implementation": implementation,
                    "transaction": normalize_receipt(program.receipt),
                }
            }
        }
        return self._merge_and_write(update)

    def add_legacy_address(self, name: str, address: str) -> dict[str, Any]:
        """Append *address* to ``legacyAddresses`` of *name* (no duplicates)."""
        record = (self.get_deploy_config().get("contracts") or {}).get(name, {})
        legacy = list(record.get("legacyAddresses") or [])
        if address not in legacy:
            legacy.append(address)
        return self._merge_and_write({"contracts": {name: {"legacyAddresses": legacy}}})

    def reset(self) -> bool:
        """Delete the record for this network. Returns True if a file was removed."""
        if not self.path.is_file():
            return False
        self.path.unlink()
        return True

    def _merge_and_write(self, update: dict[str, Any]) -> dict[str, Any]:
        merged = deep_merge(self.get_deploy_config(), update)
        self.ensure_base_path()
        self.path.write_text(json.dumps(merged, indent=2) + "\n", encoding="utf-8")
        return merged
