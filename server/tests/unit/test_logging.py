from __future__ import annotations

import logging

from cursorcalc.core.context import (
    bind_session_id,
    reset_request_id,
    set_request_id,
    unbind_session_id,
)
from cursorcalc.core.logging import CalculatorContextFilter, _build_logging_config


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("cursorcalc.test", logging.INFO, __file__, 1, "event", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_filter_defaults_to_placeholders() -> None:
    record = _record()

    assert CalculatorContextFilter().filter(record) is True
    assert record.request_id == "-"
    assert record.session_id == "-"


def test_filter_reads_context_variables() -> None:
    request_token = set_request_id("req-1")
    session_token = bind_session_id("calc-1")
    try:
        record = _record()
        CalculatorContextFilter().filter(record)
    finally:
        unbind_session_id(session_token)
        reset_request_id(request_token)

    assert record.request_id == "req-1"
    assert record.session_id == "calc-1"


def test_filter_keeps_explicit_session_id() -> None:
    record = _record(session_id="explicit")

    CalculatorContextFilter().filter(record)

    assert record.session_id == "explicit"


def test_logging_config_uses_requested_level() -> None:
    config = _build_logging_config("debug")

    assert config["loggers"]["cursorcalc"]["level"] == "DEBUG"
    assert config["handlers"]["default"]["filters"] == ["calculator_context"]
