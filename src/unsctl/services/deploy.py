"""DeployService — run tagged tasks and report the network config.

Error codes:

- ``DEPENDENCY_MISSING``: a task's prerequisite has no record
- ``TRANSACTION_FAILED``: the ledger rejected a deployer transaction
- ``PERSISTENCE_FAILED``: the network record is malformed
- ``VALIDATION_FAILED``: a ledger precondition failed outside a transaction
- ``NO_TAGS``: nothing was selected
- ``DEPLOYER_ERROR``: any other unsctl error (unknown network, RPC setup)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from unsctl.deployer.graph import normalize_tags
from unsctl.deployer.store import NetworkConfigStore
from unsctl.deployer.tasks import default_task_graph
from unsctl.errors import (
    MissingDependencyError,
    PersistenceError,
    TransactionError,
    UnsError,
    ValidationError,
)
from unsctl.services.result import ErrorCode, ServiceError, ServiceResult

if TYPE_CHECKING:
    from unsctl.config.settings import UnsSettings
    from unsctl.deployer.graph import TaskGraph
    from unsctl.deployer.session import DeploymentSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[["UnsSettings"], "DeploymentSession"]


def _error_code(exc: UnsError) -> ErrorCode:
    if isinstance(exc, MissingDependencyError):
        return "DEPENDENCY_MISSING"
    if isinstance(exc, TransactionError):
        return "TRANSACTION_FAILED"
    if isinstance(exc, PersistenceError):
        return "PERSISTENCE_FAILED"
    if isinstance(exc, ValidationError):
        return "VALIDATION_FAILED"
    return "DEPLOYER_ERROR"


def _error_detail(exc: UnsError) -> dict[str, Any]:
    if isinstance(exc, MissingDependencyError):
        return {"contract": exc.name}
    if isinstance(exc, TransactionError):
        return {"method": exc.method, "reason": exc.reason}
    if isinstance(exc, ValidationError):
        return {"program": exc.program, "reason": exc.reason}
    return {}


def _failure(op: str, exc: UnsError, *, network: str | None = None) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        network=network,
        error=ServiceError(code=_error_code(exc), message=str(exc), detail=_error_detail(exc)),
    )


class DeployService:
    """Deployer operations for one settings snapshot.

    The session is only created by :meth:`deploy`, so listing tasks and
    reading the network record never touch a ledger.
    """

    def __init__(
        self,
        settings: UnsSettings,
        *,
        session_factory: SessionFactory | None = None,
        graph: TaskGraph | None = None,
    ) -> None:
        self._settings = settings
        self._session_factory = session_factory
        self._graph = graph or default_task_graph()

    def _create_session(self) -> DeploymentSession:
        if self._session_factory is not None:
            return self._session_factory(self._settings)
        from unsctl.deployer.session import DeploymentSession

        return DeploymentSession.create(self._settings)

    def deploy(
        self, tags: str | Sequence[str], config: dict[str, Any] | None = None
    ) -> ServiceResult:
        """Execute every task matching *tags* in registration order."""
        op = "deploy"
        network = self._settings.network
        tags = normalize_tags(tags)
        selected = [task.name for task in self._graph.select(tags)]
        if not selected:
            known = sorted({tag for task in self._graph for tag in task.tags})
            return ServiceResult(
                ok=False,
                op=op,
                network=network,
                error=ServiceError(
                    code="NO_TAGS",
                    message=f"No tasks match tags {tags} (known tags: {', '.join(known)})",
                    detail={"tags": tags, "known": known},
                ),
            )

        started = time.perf_counter()
        try:
            session = self._create_session()
            network_config = session.execute(tags, config)
        except UnsError as exc:
            logger.debug("Deployment failed", exc_info=True)
            return _failure(op, exc, network=network)

        return ServiceResult(
            ok=True,
            op=op,
            network=session.network_name,
            chain_id=session.chain_id,
            tasks=selected,
            data=network_config,
            meta={"duration_ms": round((time.perf_counter() - started) * 1000, 2)},
        )

    def network_config(self) -> ServiceResult:
        """Render the persisted record of the active network."""
        op = "network_config"
        network = self._settings.network
        try:
            profile = self._settings.network_profile
            store = NetworkConfigStore(self._settings.base_path, profile.chain_id)
            data = store.get_network_config()
        except UnsError as exc:
            return _failure(op, exc, network=network)
        return ServiceResult(
            ok=True,
            op=op,
            network=network,
            chain_id=profile.chain_id,
            data=data,
            meta={"path": str(store.path)},
        )

    def list_tasks(self) -> ServiceResult:
        """Registered tasks in execution order with their tags."""
        items = [{"name": task.name, "tags": sorted(task.tags)} for task in self._graph]
        return ServiceResult(
            ok=True,
            op="list_tasks",
            tasks=[item["name"] for item in items],
            data={"items": items, "count": len(items)},
        )
