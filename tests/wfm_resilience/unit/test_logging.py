from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Protocol, cast

import pytest
import structlog

from tests.wfm_resilience.support.fakes import FakeLogger
from wfm_resilience.logging import (
    configure_structlog,
    get_log_level_value,
    get_logger,
    log_error,
    log_exception,
    log_info,
    log_warning,
)


def _configured_renderer() -> object:
    root_handler = logging.getLogger().handlers[0]
    formatter = root_handler.formatter
    assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
    return formatter.processors[-1]


def test_get_log_level_value_maps_known_levels() -> None:
    assert get_log_level_value("debug") == logging.DEBUG
    assert get_log_level_value("INFO") == logging.INFO
    assert get_log_level_value(" warning ") == logging.WARNING
    assert get_log_level_value("ERROR") == logging.ERROR
    assert get_log_level_value("critical") == logging.CRITICAL


def test_get_log_level_value_rejects_unknown_level() -> None:
    with pytest.raises(ValueError, match="log_level must be one of"):
        get_log_level_value("TRACE")


def test_configure_structlog_replaces_root_handler(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(sys.stderr, "isatty", lambda: False, raising=False)

    first_logger = configure_structlog(log_level="INFO")
    second_logger = configure_structlog(log_level="DEBUG")

    assert len(logging.getLogger().handlers) == 1
    assert logging.getLogger().level == logging.DEBUG
    assert first_logger is not None
    assert second_logger is not None


def test_configure_structlog_uses_console_renderer_for_tty(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(sys.stderr, "isatty", lambda: True, raising=False)

    configure_structlog(log_level="INFO")

    assert isinstance(_configured_renderer(), structlog.dev.ConsoleRenderer)


def test_configure_structlog_uses_json_renderer_for_non_tty(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(sys.stderr, "isatty", lambda: False, raising=False)

    configure_structlog(log_level="INFO")

    assert isinstance(_configured_renderer(), structlog.processors.JSONRenderer)


def test_get_logger_returns_bindable_logger() -> None:
    logger = get_logger("tests.wfm_resilience")

    assert hasattr(logger, "bind")


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class _RecordWithBreakerFields(Protocol):
    breaker: str
    failure_count: int


@pytest.mark.parametrize(
    ("log_fn", "level"),
    [
        (log_info, "info"),
        (log_warning, "warning"),
        (log_error, "error"),
        (log_exception, "exception"),
    ],
)
def test_structured_log_helpers_forward_keyword_fields(
    log_fn: Callable[..., None],
    level: str,
) -> None:
    logger = FakeLogger()

    log_fn(logger, "circuit_breaker.opened", breaker="payments", failure_count=3)

    assert logger.calls == [
        (
            level,
            "circuit_breaker.opened",
            {"breaker": "payments", "failure_count": 3},
        )
    ]


def test_structured_log_helpers_support_stdlib_logger_extra() -> None:
    logger = logging.getLogger("tests.wfm_resilience.logging.helpers")
    logger.handlers.clear()
    logger.propagate = False
    logger.setLevel(logging.INFO)
    handler = _CaptureHandler()
    logger.addHandler(handler)

    log_info(logger, "circuit_breaker.closed", breaker="payments", failure_count=0)

    assert len(handler.records) == 1
    record = handler.records[0]
    typed_record = cast(_RecordWithBreakerFields, record)
    assert record.getMessage() == "circuit_breaker.closed"
    assert typed_record.breaker == "payments"
    assert typed_record.failure_count == 0
