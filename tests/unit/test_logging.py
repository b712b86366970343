"""Unit tests for logging functionality."""

import logging

import structlog

from ridemate.core.logging import (
    correlation_id_var,
    get_logger,
    log_with_context,
    setup_logging,
)


def _capture_events():
    """Insert a processor before the renderer and return the list it fills."""
    captured = []

    def capture_log(logger, method_name: str, event_dict: dict) -> dict:
        captured.append(event_dict)
        return event_dict

    processors = structlog.get_config()["processors"]
    processors.insert(-1, capture_log)
    return captured


class TestLoggingSetup:
    """Test logging setup functionality."""

    def test_setup_logging_configures_structlog(self) -> None:
        structlog.reset_defaults()

        setup_logging()

        assert structlog.is_configured()

    def test_setup_logging_sets_root_level(self) -> None:
        setup_logging("WARNING")
        try:
            assert logging.getLogger().level == logging.WARNING
        finally:
            setup_logging()

    def test_get_logger_with_none_name(self) -> None:
        setup_logging()

        logger = get_logger(None)
        assert hasattr(logger, "info")


class TestCorrelationIdInLogs:
    """Test correlation ID inclusion in logs."""

    def test_correlation_id_included_in_logs(self) -> None:
        setup_logging()
        token = correlation_id_var.set("test-correlation-123")
        captured = _capture_events()

        try:
            get_logger("test").info("Test message")

            assert len(captured) == 1
            assert captured[0]["correlation_id"] == "test-correlation-123"
            assert captured[0]["service"] == "ridemate"
        finally:
            correlation_id_var.reset(token)
            setup_logging()

    def test_default_correlation_id_when_not_set(self) -> None:
        setup_logging()
        token = correlation_id_var.set("-")
        captured = _capture_events()

        try:
            get_logger("test").info("Test message")

            assert captured[0]["correlation_id"] == "-"
        finally:
            correlation_id_var.reset(token)
            setup_logging()

    def test_log_with_context_binds_fields(self) -> None:
        setup_logging()
        captured = _capture_events()

        try:
            logger = log_with_context(get_logger("test"), trip_id="abc")
            logger.info("Bound message")

            assert captured[0]["trip_id"] == "abc"
            assert captured[0]["event"] == "Bound message"
        finally:
            setup_logging()
