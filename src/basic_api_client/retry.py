"""Retry decision for read requests."""

from __future__ import annotations

import logging

from .exceptions import ConnectTimeoutError, ProtocolFailureError, TlsError, TransportError, UnknownHostError

logger = logging.getLogger(__name__)

NON_IDEMPOTENT_METHODS = frozenset({"POST", "PATCH"})

# failures that a second attempt will not fix
NON_RETRIABLE_ERRORS = (UnknownHostError, ConnectTimeoutError, TlsError, ProtocolFailureError)


def is_idempotent(method: str) -> bool:
    return method.upper() not in NON_IDEMPOTENT_METHODS


def should_retry(error: BaseException, attempt: int, max_retry: int, method: str = "GET") -> bool:
    """Decide whether a failed request is sent again.

    ``attempt`` is the number of retries already performed, so at most
    ``max_retry`` retries happen on top of the first attempt.
    """

    if attempt >= max_retry:
        return False
    if not isinstance(error, TransportError):
        return False
    if isinstance(error, NON_RETRIABLE_ERRORS):
        return False
    return is_idempotent(method)


def log_retry(method: str, url: str, attempt: int, max_retry: int, error: BaseException) -> None:
    logger.warning(
        "%s %s will retry (retry number %d/%d) after %s was caught: %s",
        method,
        url,
        attempt,
        max_retry,
        type(error).__name__,
        error,
    )


__all__ = ["NON_IDEMPOTENT_METHODS", "NON_RETRIABLE_ERRORS", "is_idempotent", "should_retry", "log_retry"]
