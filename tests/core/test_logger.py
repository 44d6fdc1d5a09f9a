"""
Tests for the centralized logging helpers.
"""

import logging

import pytest

from folderfusion.core.logger import (
    StructuredFormatter,
    clear_request_context,
    get_logger,
    get_request_context,
    log_performance,
    set_request_context,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_request_context()
    yield
    clear_request_context()


@pytest.mark.unit
def test_get_logger_is_cached_and_isolated():
    logger = get_logger("folderfusion.tests.sample")

    assert get_logger("folderfusion.tests.sample") is logger
    assert logger.propagate is False
    assert len(logger.handlers) == 1


@pytest.mark.unit
def test_request_context_roundtrip():
    set_request_context(request_id="abc", source="github")

    assert get_request_context() == {"request_id": "abc", "source": "github"}
    clear_request_context()
    assert get_request_context() == {}


@pytest.mark.unit
def test_structured_formatter_includes_context_and_extras():
    set_request_context(request_id="abc")
    record = logging.makeLogRecord({
        "name": "folderfusion.test",
        "levelname": "INFO",
        "msg": "hola %s",
        "args": ("mundo",),
        "path": "src",
        "entries": ["a", "b"],
    })

    line = StructuredFormatter().format(record)

    assert line.startswith("[INFO]")
    assert "module=folderfusion.test" in line
    assert "request_id=abc" in line
    assert "path=src" in line
    assert 'entries=["a", "b"]' in line
    assert line.endswith("message=hola mundo")


@pytest.mark.unit
def test_log_performance_returns_the_result():
    @log_performance(operation_name="sum")
    def add(a, b):
        return a + b

    assert add(2, 3) == 5
    assert add.__name__ == "add"


@pytest.mark.unit
def test_log_performance_reraises_the_original_error():
    @log_performance
    def boom():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        boom()
