"""
Unit tests for logging setup and access log lines.
"""

import logging
from pathlib import Path

import pytest

from simplewebserver.config import ServerConfig
from simplewebserver.log import (
    PACKAGE_LOGGER,
    TRACE,
    AccessLog,
    configure_logging,
    log_access,
    trace,
)


@pytest.fixture(autouse=True)
def restore_package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    level = logger.level
    yield
    configure_logging(ServerConfig(quiet=True))
    logger.setLevel(level)


class TestAccessLog:
    """Tests for AccessLog entries."""

    def test_text(self):
        assert AccessLog("10.0.0.1", "/index.html", 200).to_text() == "10.0.0.1: GET /index.html - 200"

    @pytest.mark.parametrize("status,level", [
        (200, TRACE),
        (400, logging.INFO),
        (404, logging.INFO),
        (429, logging.WARNING),
        (500, logging.INFO),
    ])
    def test_level(self, status, level):
        assert AccessLog("10.0.0.1", "/", status).level == level

    def test_log_access_emits(self, caplog):
        with caplog.at_level(TRACE, logger="simplewebserver.access"):
            log_access("10.0.0.1", "/missing", 404)

        assert caplog.records[-1].getMessage() == "10.0.0.1: GET /missing - 404"
        assert caplog.records[-1].levelno == logging.INFO


class TestTraceLevel:
    """Tests for the custom TRACE level."""

    def test_level_name(self):
        assert logging.getLevelName(TRACE) == "TRACE"

    def test_trace_helper(self, caplog):
        logger = logging.getLogger("simplewebserver.test")
        with caplog.at_level(TRACE, logger="simplewebserver.test"):
            trace(logger, "value=%s", 3)

        assert caplog.records[-1].getMessage() == "value=3"
        assert caplog.records[-1].levelname == "TRACE"


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_console_default_is_info(self):
        handlers = configure_logging(ServerConfig())

        assert len(handlers) == 1
        assert handlers[0].level == logging.INFO

    def test_verbose_console_is_trace(self):
        handlers = configure_logging(ServerConfig(verbose=True))

        assert handlers[0].level == TRACE

    def test_quiet_installs_nothing(self):
        assert configure_logging(ServerConfig(quiet=True)) == []
        assert not logging.getLogger(PACKAGE_LOGGER).isEnabledFor(logging.CRITICAL)

    def test_reconfigure_replaces_handlers(self):
        configure_logging(ServerConfig())
        configure_logging(ServerConfig())

        installed = [
            h for h in logging.getLogger(PACKAGE_LOGGER).handlers
            if getattr(h, "_simplewebserver", False)
        ]
        assert len(installed) == 1

    def test_log_files(self, tmp_path: Path):
        config = ServerConfig(root=str(tmp_path), log_file=True)
        handlers = configure_logging(config)
        info_path, trace_path = config.log_file_paths

        logger = logging.getLogger("simplewebserver.test")
        trace(logger, "trace only")
        logger.info("both")
        for handler in handlers:
            handler.flush()

        info_text = Path(info_path).read_text()
        trace_text = Path(trace_path).read_text()
        assert "both" in info_text and "trace only" not in info_text
        assert "both" in trace_text and "trace only" in trace_text

    def test_log_files_append(self, tmp_path: Path):
        config = ServerConfig(root=str(tmp_path), log_file=True)
        info_path = Path(config.log_file_paths[0])
        info_path.write_text("previous run\n")

        handlers = configure_logging(config)
        logging.getLogger("simplewebserver.test").info("this run")
        for handler in handlers:
            handler.flush()

        assert info_path.read_text().startswith("previous run\n")
