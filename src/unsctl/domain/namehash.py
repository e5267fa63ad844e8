"""Canonical name identifiers.

A name's id is derived from its parent's id and its own label::

    child_id = uint256(keccak256(abi.encodePacked(uint256 parent, keccak256(label))))

TLD ids use the root (``0``) as parent, so ``canonical_hash(0, "crypto")``
is the id of the ``crypto`` TLD.

INVARIANT: ids are permanent. The same (parent, label) pair always yields
the same id, on and off the ledger.
"""

from __future__ import annotations

from web3 import Web3

ROOT_ID = 0

#: Reserved TLD served by the legacy (CNS) minting subsystem.
LEGACY_TLD_LABEL = "crypto"

#: TLDs registered by the minting manager at initialization, in order.
DEFAULT_TLD_LABELS: tuple[str, ...] = ("crypto", "wallet", "coin")

#: Namespace that open ``claim*`` calls are rewritten into.
FREE_LABEL_PREFIX = "udtestdev-"

BURN_ADDRESS = "0x000000000000000000000000000000000000dEaD"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def label_hash(label: str) -> bytes:
    """keccak256 of the UTF-8 encoded label."""
    return Web3.keccak(text=label)


def canonical_hash(parent_id: int, label: str) -> int:
    """Derive the child id of *label* under *parent_id*."""
    digest = Web3.solidity_keccak(["uint256", "bytes32"], [parent_id, label_hash(label)])
    return int.from_bytes(digest, "big")


def namehash(name: str) -> int:
    """Id of a dotted name, e.g. ``namehash("abc.coin")``.

    Labels are folded right to left starting from the root, so
    ``namehash("coin") == canonical_hash(0, "coin")``. The empty name is
    the root itself.
    """
    node = ROOT_ID
    if not name:
        return node
    for label in reversed(name.split(".")):
        node = canonical_hash(node, label)
    return node


def free_label(label: str) -> str:
    """Rewrite *label* into the reserved namespace used by open claims."""
    return f"{FREE_LABEL_PREFIX}{label}"


def token_uri(label: str, tld_label: str) -> str:
    """Registry token URI for an SLD: ``"<label>.<tld>"``."""
    return f"{label}.{tld_label}"


def to_hex_id(token_id: int) -> str:
    """Render an id as a 0x-prefixed, 32-byte hex string."""
    return f"0x{token_id:064x}"
