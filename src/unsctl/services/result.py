"""ServiceResult — what a deployer operation hands back to the CLI.

INVARIANT: every public :class:`~unsctl.services.deploy.DeployService`
method returns a ServiceResult. A missing prerequisite, a reverted
transaction or a bad network record becomes ``ok=False`` with one of the
:data:`ErrorCode` values instead of an exception.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ErrorCode = Literal[
    "DEPENDENCY_MISSING",
    "TRANSACTION_FAILED",
    "PERSISTENCE_FAILED",
    "VALIDATION_FAILED",
    "NO_TAGS",
    "DEPLOYER_ERROR",
]


class ServiceError(BaseModel):
    """Why an operation failed. ``detail`` names the program, method or tags involved."""

    model_config = {"frozen": True}

    code: ErrorCode
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one deployer operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: ``"deploy"``, ``"network_config"`` or ``"list_tasks"``.
        network: Network profile the operation targeted, if any.
        chain_id: Chain id of that network, once it is known.
        tasks: Names of the tasks a deploy selected, in execution order.
        data: Rendered network config, or the task listing.
        error: Set when ``ok`` is False.
        meta: Timing and the path of the network record.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    network: str | None = None
    chain_id: int | None = None
    tasks: list[str] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    def contracts(self) -> dict[str, Any]:
        """Rendered contract records for :attr:`chain_id`, or ``{}``."""
        if self.chain_id is None:
            return {}
        network = (self.data.get("networks") or {}).get(str(self.chain_id)) or {}
        return dict(network.get("contracts") or {})
