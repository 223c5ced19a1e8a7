"""Tests for the astschema logger hierarchy."""

from __future__ import annotations

import logging

import pytest

from astschema.logging import configure_logging, get_logger


def test_console_records_name_their_stage(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(verbose=True)

    get_logger("crawler").debug("Loading %s", "src/lib.rs")
    get_logger().info("done")

    err = capsys.readouterr().err.splitlines()
    assert err == ["astschema[crawler] DEBUG Loading src/lib.rs", "astschema[main] INFO done"]


def test_reconfiguring_replaces_handlers() -> None:
    configure_logging()
    logger = configure_logging(verbose=False)

    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
    assert logger.propagate is False
