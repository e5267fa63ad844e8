"""Meta-transaction relay encoding and signer recovery.

A relayed call is the ABI-encoded calldata of one mint-family method:
``selector (4 bytes) || abi.encode(args)``. The signer signs, with the
``personal_sign`` prefix, the message::

    keccak256(abi.encodePacked(keccak256(data), relayer_address))

Only six operations may be relayed. They are enumerated here as
:class:`RelayOperation` so that the allow-list is a closed set of kinds
rather than a bag of numeric selectors.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from eth_abi import decode, encode
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3


class RelayOperation(Enum):
    """Mint-family operations accepted by the relay entry point."""

    MINT_SLD = ("mintSLD", ("address", "uint256", "string"), "mint_sld")
    SAFE_MINT_SLD = ("safeMintSLD", ("address", "uint256", "string"), "safe_mint_sld")
    SAFE_MINT_SLD_DATA = (
        "safeMintSLD",
        ("address", "uint256", "string", "bytes"),
        "safe_mint_sld",
    )
    MINT_SLD_WITH_RECORDS = (
        "mintSLDWithRecords",
        ("address", "uint256", "string", "string[]", "string[]"),
        "mint_sld_with_records",
    )
    SAFE_MINT_SLD_WITH_RECORDS = (
        "safeMintSLDWithRecords",
        ("address", "uint256", "string", "string[]", "string[]"),
        "safe_mint_sld_with_records",
    )
    SAFE_MINT_SLD_WITH_RECORDS_DATA = (
        "safeMintSLDWithRecords",
        ("address", "uint256", "string", "string[]", "string[]", "bytes"),
        "safe_mint_sld_with_records",
    )

    def __init__(self, function_name: str, arg_types: tuple[str, ...], method: str) -> None:
        self.function_name = function_name
        self.arg_types = arg_types
        self.method = method

    @property
    def signature(self) -> str:
        """Canonical ABI signature, e.g. ``mintSLD(address,uint256,string)``."""
        return f"{self.function_name}({','.join(self.arg_types)})"

    @property
    def selector(self) -> bytes:
        return function_selector(self.signature)

    @classmethod
    def from_selector(cls, selector: bytes) -> RelayOperation | None:
        """Return the operation with *selector*, or None if it is not relayable."""
        for operation in cls:
            if operation.selector == selector:
                return operation
        return None


def function_selector(signature: str) -> bytes:
    """First four bytes of keccak256 of an ABI function signature."""
    return bytes(Web3.keccak(text=signature)[:4])


def encode_call(signature: str, arg_types: tuple[str, ...], *args: Any) -> bytes:
    """Encode calldata for an arbitrary function signature."""
    return function_selector(signature) + encode(list(arg_types), list(args))


def encode_relay_call(operation: RelayOperation, *args: Any) -> bytes:
    """Encode calldata for one of the relayable operations."""
    return encode_call(operation.signature, operation.arg_types, *args)


def call_selector(data: bytes) -> bytes:
    """The 4-byte selector at the head of *data* (zero-padded if short)."""
    return bytes(data[:4]).ljust(4, b"\x00")


def decode_relay_call(operation: RelayOperation, data: bytes) -> list[Any]:
    """Decode the arguments of *data* for *operation*.

    Addresses come back checksummed and arrays come back as lists so the
    values can be passed straight to the program method.
    """
    values = decode(list(operation.arg_types), bytes(data[4:]))
    args: list[Any] = []
    for abi_type, value in zip(operation.arg_types, values, strict=True):
        if abi_type == "address":
            args.append(Web3.to_checksum_address(value))
        elif abi_type.endswith("[]"):
            args.append(list(value))
        else:
            args.append(value)
    return args


def relay_message_hash(data: bytes, relayer: str) -> bytes:
    """Hash the signer commits to before the ``personal_sign`` prefix."""
    digest = Web3.keccak(bytes(data))
    return bytes(Web3.solidity_keccak(["bytes32", "address"], [digest, relayer]))


def sign_relay(data: bytes, relayer: str, private_key: str | bytes) -> bytes:
    """Produce the signature a minter hands to a relayer for *data*."""
    message = encode_defunct(primitive=relay_message_hash(data, relayer))
    signed = Account.sign_message(message, private_key=private_key)
    return bytes(signed.signature)


def recover_relay_signer(data: bytes, relayer: str, signature: bytes) -> str:
    """Recover the checksummed address that signed *data* for *relayer*."""
    message = encode_defunct(primitive=relay_message_hash(data, relayer))
    return Account.recover_message(message, signature=signature)
