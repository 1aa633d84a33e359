"""Tests for the logging setup module."""

import io
import logging
from contextlib import contextmanager

from legalflow.utils.logger import get_logger, setup_logging


@contextmanager
def bare_root():
    """Root logger stripped of handlers, restored on exit.

    Entered inside the test body so that handlers attached for the call
    phase by pytest's logging plugin are removed as well.
    """
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers.clear()
    try:
        yield root
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


class TestSetupLogging:
    """Tests for the setup_logging function."""

    def test_installs_handler(self) -> None:
        with bare_root() as root:
            setup_logging("DEBUG")
            assert len(root.handlers) == 1
            assert root.level == logging.DEBUG

    def test_idempotent(self) -> None:
        with bare_root() as root:
            setup_logging("INFO")
            setup_logging("DEBUG")
            assert len(root.handlers) == 1
            assert root.level == logging.INFO

    def test_unknown_level_defaults_to_info(self) -> None:
        with bare_root() as root:
            setup_logging("NONEXISTENT")
            assert root.level == logging.INFO

    def test_format_and_stream(self) -> None:
        stream = io.StringIO()
        with bare_root():
            setup_logging("INFO", stream=stream)
            get_logger("legalflow.workflow.approval").info("Approved %s", "item-1")
        line = stream.getvalue().strip()
        assert line.endswith("legalflow.workflow.approval - INFO - Approved item-1")

    def test_existing_handler_left_alone(self) -> None:
        with bare_root() as root:
            existing = logging.NullHandler()
            root.addHandler(existing)
            setup_logging("DEBUG")
            assert root.handlers == [existing]


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_returns_named_logger(self) -> None:
        logger = get_logger("legalflow.catalog")
        assert logger.name == "legalflow.catalog"
        assert isinstance(logger, logging.Logger)

    def test_same_name_returns_same_logger(self) -> None:
        assert get_logger("legalflow.same") is get_logger("legalflow.same")
