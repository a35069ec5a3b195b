"""Unit tests for reelbridge.logs."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
import structlog

from reelbridge.config import LoggingSettings, Settings
from reelbridge.logs import setup_logging


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


@pytest.mark.parametrize("fmt", ["json", "text"])
def test_third_party_loggers_are_quieted(fmt: str) -> None:
    setup_logging(Settings(logging=LoggingSettings(level="DEBUG", format=fmt)))

    assert logging.getLogger("telegram").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING
    assert structlog.is_configured()


def test_json_output_goes_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(Settings(logging=LoggingSettings(level="INFO", format="json")))

    structlog.get_logger().info("links_found", count=2)

    err = capsys.readouterr().err
    assert '"event": "links_found"' in err
    assert '"count": 2' in err
