"""Built-in deployment tasks.

Registration order is execution order:

1. ``deploy_cns``    (``cns``, ``full``): legacy registry and controllers
2. ``deploy_uns``    (``uns``, ``full``): UNS registry, MintingManager, readers
3. ``configure_cns`` (``cns_config``, ``full``): let MintingManager mint on CNS
4. ``upgrade_uns``   (``uns_upgrade``): upgrade proxies, redeploy ProxyReader

Deploy steps attach to programs that already have a record instead of
deploying them again. Wiring steps read the ledger first and only send the
transactions that are still missing, so reruns pick up where a failed run
stopped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from unsctl.deployer.graph import DependencyResolver, Task, TaskGraph
from unsctl.deployer.merge import deep_merge
from unsctl.errors import MissingDependencyError

if TYPE_CHECKING:
    from unsctl.deployer.artifacts import Program
    from unsctl.deployer.session import DeploymentSession

log = structlog.get_logger(__name__)


def _deploy_or_attach(session: DeploymentSession, name: str, *args: Any) -> Program:
    """Deploy *name*, or attach to it when the store already has a record."""
    factory = session.artifacts[name]
    record = session.store.get_contract(name)
    if record is not None:
        log.info("Skipping deployed program", program=name, address=record["address"])
        return factory.attach(record["address"])

    program = factory.deploy(*args)
    session.save_contract_config(name, program)
    log.info("Deployed program", program=name, address=program.address)
    return program


def _deploy_proxy_or_attach(
    session: DeploymentSession, name: str, *args: Any, initializer: str | None = "initialize"
) -> Program:
    factory = session.artifacts[name]
    record = session.store.get_contract(name)
    if record is not None:
        log.info("Skipping deployed program", program=name, address=record["address"])
        return factory.attach(record["address"])

    program = factory.deploy_proxy(*args, initializer=initializer)
    implementation = factory.implementation_address(program.address)
    session.save_contract_config(name, program, implementation)
    log.info(
        "Deployed proxy", program=name, address=program.address, implementation=implementation
    )
    return program


def _ensure_controller(registry: Program, controller: Program) -> None:
    if not registry.call("is_controller", controller.address):
        registry.transact("add_controller", controller.address)


def _ensure_minter(minting_controller: Program, account: str) -> None:
    if not minting_controller.call("is_minter", account):
        minting_controller.transact("add_minter", account)


def require_contracts(*names: str) -> DependencyResolver:
    """Build an ``ensure_dependencies`` that looks up *names* in the store.

    The caller-supplied ``config`` overlay is merged over the persisted
    record first, so addresses can be injected for programs deployed
    elsewhere.
    """

    def ensure(session: DeploymentSession, config: dict[str, Any]) -> dict[str, Any]:
        merged = deep_merge(session.get_deploy_config(), config)
        contracts = merged.get("contracts") or {}
        dependencies: dict[str, Any] = {}
        for name in names:
            record = contracts.get(name)
            if not record or not record.get("address"):
                raise MissingDependencyError(name)
            dependencies[name] = record
        return dependencies

    return ensure


# ---------------------------------------------------------------------------
# deploy_cns
# ---------------------------------------------------------------------------


def deploy_cns(session: DeploymentSession, dependencies: dict[str, Any]) -> None:
    registry = _deploy_or_attach(session, "CNSRegistry")

    signature_controller = _deploy_or_attach(session, "SignatureController", registry.address)
    _ensure_controller(registry, signature_controller)

    minting_controller = _deploy_or_attach(session, "MintingController", registry.address)
    _ensure_controller(registry, minting_controller)

    uri_prefix_controller = _deploy_or_attach(session, "URIPrefixController", registry.address)
    _ensure_controller(registry, uri_prefix_controller)
    root = registry.call("root")
    if registry.call("token_uri", root) != f"{session.token_uri_prefix}{root}":
        uri_prefix_controller.transact("set_token_uri_prefix", session.token_uri_prefix)

    whitelisted_minter = _deploy_or_attach(session, "WhitelistedMinter", minting_controller.address)
    _ensure_minter(minting_controller, whitelisted_minter.address)

    _deploy_or_attach(session, "Resolver", registry.address, minting_controller.address)


# ---------------------------------------------------------------------------
# deploy_uns
# ---------------------------------------------------------------------------


def deploy_uns(session: DeploymentSession, dependencies: dict[str, Any]) -> None:
    minting_manager = _deploy_proxy_or_attach(session, "MintingManager", initializer=None)
    registry = _deploy_proxy_or_attach(session, "UNSRegistry", minting_manager.address)

    # initialize makes the deployer a minter, so an uninitialized manager has none.
    if not minting_manager.call("is_minter", session.accounts.owner):
        minting_manager.transact(
            "initialize",
            registry.address,
            dependencies["MintingController"]["address"],
            dependencies["URIPrefixController"]["address"],
            dependencies["Resolver"]["address"],
        )
    missing = [m for m in session.minters if not minting_manager.call("is_minter", m)]
    if missing:
        minting_manager.transact("add_minters", missing)

    _deploy_or_attach(
        session, "ProxyReader", registry.address, dependencies["CNSRegistry"]["address"]
    )

    if session.link_token:
        _deploy_or_attach(
            session, "TwitterValidationOperator", registry.address, session.link_token
        )


# ---------------------------------------------------------------------------
# configure_cns
# ---------------------------------------------------------------------------


def configure_cns(session: DeploymentSession, dependencies: dict[str, Any]) -> None:
    manager = dependencies["MintingManager"]["address"]

    minting_controller = session.artifacts["MintingController"].attach(
        dependencies["MintingController"]["address"]
    )
    _ensure_minter(minting_controller, manager)

    uri_prefix_controller = session.artifacts["URIPrefixController"].attach(
        dependencies["URIPrefixController"]["address"]
    )
    if not uri_prefix_controller.call("is_whitelisted", manager):
        uri_prefix_controller.transact("add_whitelisted", manager)


# ---------------------------------------------------------------------------
# upgrade_uns
# ---------------------------------------------------------------------------


def upgrade_uns(session: DeploymentSession, dependencies: dict[str, Any]) -> None:
    for name in ("UNSRegistry", "MintingManager"):
        factory = session.artifacts[name]
        program = factory.upgrade_proxy(dependencies[name]["address"])
        implementation = factory.implementation_address(program.address)
        session.save_contract_config(name, program, implementation)
        log.info("Upgraded proxy", program=name, implementation=implementation)

    previous = dependencies["ProxyReader"]["address"]
    proxy_reader = session.artifacts["ProxyReader"].deploy(
        dependencies["UNSRegistry"]["address"], dependencies["CNSRegistry"]["address"]
    )
    session.store.add_legacy_address("ProxyReader", previous)
    session.save_contract_config("ProxyReader", proxy_reader)
    log.info("Redeployed program", program="ProxyReader", address=proxy_reader.address)


DEFAULT_TASKS: tuple[Task, ...] = (
    Task(name="deploy_cns", tags=frozenset({"cns", "full"}), run=deploy_cns),
    Task(
        name="deploy_uns",
        tags=frozenset({"uns", "full"}),
        run=deploy_uns,
        ensure_dependencies=require_contracts(
            "CNSRegistry", "MintingController", "URIPrefixController", "Resolver"
        ),
    ),
    Task(
        name="configure_cns",
        tags=frozenset({"cns_config", "full"}),
        run=configure_cns,
        ensure_dependencies=require_contracts(
            "MintingController", "URIPrefixController", "MintingManager"
        ),
    ),
    Task(
        name="upgrade_uns",
        tags=frozenset({"uns_upgrade"}),
        run=upgrade_uns,
        ensure_dependencies=require_contracts(
            "UNSRegistry", "MintingManager", "ProxyReader", "CNSRegistry"
        ),
    ),
)


def default_task_graph() -> TaskGraph:
    return TaskGraph(DEFAULT_TASKS)
