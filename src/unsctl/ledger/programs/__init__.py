"""Ledger programs — Python models of the UNS and CNS contract suite.

Every public mutating method takes the calling address as the keyword-only
``sender`` argument (the equivalent of ``msg.sender``). Preconditions fail
with :class:`~unsctl.errors.ValidationError` carrying a short reason.
"""

from unsctl.ledger.programs.cns import (
    CNSRegistry,
    MintingController,
    Resolver,
    SignatureController,
    URIPrefixController,
    WhitelistedMinter,
)
from unsctl.ledger.programs.minting_manager import MintingManager
from unsctl.ledger.programs.operators import TwitterValidationOperator
from unsctl.ledger.programs.uns import ProxyReader, UNSRegistry

__all__ = [
    "CNSRegistry",
    "MintingController",
    "MintingManager",
    "ProxyReader",
    "Resolver",
    "SignatureController",
    "TwitterValidationOperator",
    "UNSRegistry",
    "URIPrefixController",
    "WhitelistedMinter",
]
