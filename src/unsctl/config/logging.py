"""Log routing for unsctl.

Deployer modules emit structlog key/value events. The ledger model and the
RPC backend log through stdlib ``logging``. Both reach one stderr handler
and are rendered by structlog, as console lines or, with ``--log-json``,
JSON lines.

Once a deployment session binds its network (:func:`bind_deployment`),
every line carries ``network`` and ``chain_id``, including the stdlib
lines from the ledger and RPC layers.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

NAMESPACE = "unsctl"

#: Third-party loggers held at WARNING even with ``--verbose``.
QUIET_LOGGERS: tuple[str, ...] = ("web3", "urllib3")


def bind_deployment(network: str, chain_id: int) -> None:
    """Tag every following log line with the target network."""
    structlog.contextvars.bind_contextvars(network=network, chain_id=chain_id)


def drop_unset(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    """Remove fields logged as None, e.g. an absent LINK token or implementation."""
    return {key: value for key, value in event_dict.items() if value is not None}


def hexify_bytes(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    """Render hashes and calldata as 0x-prefixed hex instead of byte reprs."""
    for key, value in event_dict.items():
        if isinstance(value, (bytes, bytearray)):
            event_dict[key] = "0x" + bytes(value).hex()
    return event_dict


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        drop_unset,
        hexify_bytes,
    ]


def _renderer(log_json: bool) -> Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route structlog and stdlib records to stderr.

    Args:
        verbose: Show DEBUG output from ``unsctl`` loggers. Otherwise only WARNING+.
        log_json: Render JSON lines instead of console lines.
    """
    pre_chain = _pre_chain()
    structlog.contextvars.clear_contextvars()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger(NAMESPACE).setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
