"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from unsctl.config.logging import bind_deployment, configure_logging, drop_unset, hexify_bytes


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    uns = logging.getLogger("unsctl")
    uns_level = uns.level
    yield
    structlog.contextvars.clear_contextvars()
    root.handlers = original_handlers
    root.setLevel(original_level)
    uns.setLevel(uns_level)


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("unsctl").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_non_verbose_sets_warning(self) -> None:
        configure_logging(verbose=False, log_json=False)
        assert logging.getLogger("unsctl").level == logging.WARNING

    def test_third_party_loggers_quiet(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("web3").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_json_mode_output(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        log = structlog.get_logger("unsctl.test")
        log.info("Deployed program", program="CNSRegistry")
        captured = capfd.readouterr()
        parsed = json.loads(captured.err.strip())
        assert parsed["event"] == "Deployed program"
        assert parsed["program"] == "CNSRegistry"
        assert parsed["level"] == "info"
        assert parsed["logger"] == "unsctl.test"
        assert "timestamp" in parsed

    def test_deployment_context_on_structlog_lines(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(verbose=True, log_json=True)
        bind_deployment("sepolia", 11155111)
        structlog.get_logger("unsctl.deployer.tasks").info("Deployed program")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["network"] == "sepolia"
        assert parsed["chain_id"] == 11155111

    def test_deployment_context_on_stdlib_lines(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(verbose=True, log_json=True)
        bind_deployment("local", 1337)
        logging.getLogger("unsctl.infrastructure.rpc").debug("Sent deploy: 0xab")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["network"] == "local"
        assert parsed["chain_id"] == 1337

    def test_reconfigure_clears_deployment_context(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        bind_deployment("local", 1337)
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("unsctl.test").info("fresh")
        assert "network" not in json.loads(capfd.readouterr().err.strip())

    def test_unset_fields_dropped(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("unsctl.test").info("Initialized deployer", link_token=None)
        assert "link_token" not in json.loads(capfd.readouterr().err.strip())

    def test_bytes_rendered_as_hex(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("unsctl.test").info("Relayed", data=b"\x12\xab")
        assert json.loads(capfd.readouterr().err.strip())["data"] == "0x12ab"

    def test_stdlib_logger_gets_structured_fields(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("unsctl.ledger.chain").debug("Deployed CNSRegistry at 0x1")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "Deployed CNSRegistry at 0x1"
        assert parsed["level"] == "debug"
        assert parsed["logger"] == "unsctl.ledger.chain"

    def test_quiet_by_default(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=False, log_json=True)
        structlog.get_logger("unsctl.test").info("hidden")
        assert capfd.readouterr().err == ""


class TestProcessors:
    def test_drop_unset(self) -> None:
        event = {"event": "x", "implementation": None, "address": "0x1"}
        assert drop_unset(None, "info", event) == {"event": "x", "address": "0x1"}

    def test_hexify_bytes(self) -> None:
        event = {"event": "x", "hash": bytearray(b"\x00\xff"), "count": 2}
        assert hexify_bytes(None, "info", event) == {"event": "x", "hash": "0x00ff", "count": 2}
