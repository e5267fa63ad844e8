"""Exception hierarchy shared by the ledger model, deployer, and services.

INVARIANT: Nothing in the core retries. Every error propagates to the
caller; the service layer is the only place that turns one into a
failed :class:`~unsctl.services.result.ServiceResult`.
"""

from __future__ import annotations


class UnsError(Exception):
    """Base class for every error raised by unsctl."""


class ValidationError(UnsError):
    """A ledger precondition failed (the equivalent of a revert reason).

    Attributes:
        reason: Short fixed string naming the failed precondition.
        program: Name of the program that rejected the call, if known.
    """

    def __init__(self, reason: str, *, program: str | None = None) -> None:
        self.reason = reason
        self.program = program
        message = f"{program}: {reason}" if program else reason
        super().__init__(message)


class PersistenceError(UnsError):
    """The persisted network record is malformed or unreadable."""


class TransactionError(UnsError):
    """The ledger rejected a transaction sent by the deployer.

    Attributes:
        method: The program method (or ``"deploy"``) that failed.
        reason: Revert reason reported by the ledger, if any.
    """

    def __init__(self, method: str, reason: str | None = None) -> None:
        self.method = method
        self.reason = reason
        message = f"Transaction {method!r} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MissingDependencyError(UnsError):
    """A deployment task's prerequisite program has no persisted record."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} config not found.")
