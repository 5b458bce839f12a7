import logging

import pytest

from basic_api_client import (
    ConnectTimeoutError,
    ProtocolFailureError,
    ReadTimeoutError,
    TlsError,
    TransportError,
    UnknownHostError,
)
from basic_api_client.retry import is_idempotent, log_retry, should_retry


@pytest.mark.parametrize("method", ["GET", "HEAD", "PUT", "DELETE", "get"])
def test_idempotent_methods(method):
    assert is_idempotent(method) is True


@pytest.mark.parametrize("method", ["POST", "PATCH", "post"])
def test_non_idempotent_methods(method):
    assert is_idempotent(method) is False


def test_read_timeout_is_retried_until_bound():
    error = ReadTimeoutError("timeout")

    assert [should_retry(error, attempt, 3) for attempt in range(5)] == [True, True, True, False, False]


def test_zero_max_retry_never_retries():
    assert should_retry(ReadTimeoutError("timeout"), 0, 0) is False


def test_generic_transport_error_is_retried():
    assert should_retry(TransportError("connection reset"), 0, 3) is True


@pytest.mark.parametrize(
    "error",
    [UnknownHostError("x"), ConnectTimeoutError("x"), TlsError("x"), ProtocolFailureError("redirect loop")],
)
def test_non_transient_errors_are_not_retried(error):
    assert should_retry(error, 0, 3) is False


@pytest.mark.parametrize("method", ["POST", "PATCH"])
def test_non_idempotent_methods_are_not_retried(method):
    assert should_retry(ReadTimeoutError("timeout"), 0, 3, method) is False


def test_non_transport_errors_are_not_retried():
    assert should_retry(ValueError("boom"), 0, 3) is False


def test_log_retry_emits_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="basic_api_client.retry"):
        log_retry("GET", "http://api.test/x", 2, 3, ReadTimeoutError("read timed out"))

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    message = record.getMessage()
    assert "GET http://api.test/x" in message
    assert "2/3" in message
    assert "ReadTimeoutError" in message
    assert "read timed out" in message
