from __future__ import annotations

from http import HTTPStatus
from typing import Any, Optional


class ApiError(Exception):
    """Base API client error."""

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None) -> None:
        if message is None and cause is not None:
            message = str(cause)
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause


class ApiResponseError(ApiError):
    """Raised for a non-2xx response when throwing on HTTP errors is enabled."""

    def __init__(self, url: str, http_code: int, body: str, response: Any = None) -> None:
        self.url = url
        self.http_code = http_code
        self.body = body
        self.response = response
        super().__init__(f"HTTP {http_code} from {url}: {body}")

    @property
    def status_code(self) -> int:
        return self.http_code

    @staticmethod
    def for_status(url: str, http_code: int, body: str, response: Any = None) -> "ApiResponseError":
        if http_code == HTTPStatus.BAD_REQUEST:
            return BadRequestError(url, http_code, body, response)
        if http_code == HTTPStatus.UNAUTHORIZED:
            return UnauthorizedError(url, http_code, body, response)
        if http_code == HTTPStatus.FORBIDDEN:
            return ForbiddenError(url, http_code, body, response)
        if http_code == HTTPStatus.NOT_FOUND:
            return NotFoundError(url, http_code, body, response)
        if HTTPStatus.INTERNAL_SERVER_ERROR <= http_code <= 599:
            return ServerError(url, http_code, body, response)
        return ApiResponseError(url, http_code, body, response)


class BadRequestError(ApiResponseError):
    """Raised for HTTP 400."""


class UnauthorizedError(ApiResponseError):
    """Raised for HTTP 401."""


class ForbiddenError(ApiResponseError):
    """Raised for HTTP 403."""


class NotFoundError(ApiResponseError):
    """Raised for HTTP 404."""


class ServerError(ApiResponseError):
    """Raised for HTTP 5xx."""


class ParsingError(ApiError):
    """Raised when a request body cannot be encoded or a response body cannot be decoded."""


class CodecError(ValueError):
    """Raised by the codec when a value does not fit the requested shape."""


class TransportError(RuntimeError):
    """Raised when HTTP client transport fails."""


class RequestTimeoutError(TransportError):
    """Raised when HTTP request exceeds timeout."""


class ConnectTimeoutError(RequestTimeoutError):
    """Raised when the connection could not be opened in time."""


class ReadTimeoutError(RequestTimeoutError):
    """Raised when the server did not answer in time."""


class UnknownHostError(TransportError):
    """Raised when the host name cannot be resolved."""


class TlsError(TransportError):
    """Raised when the TLS handshake or certificate validation fails."""


class ProtocolFailureError(TransportError):
    """Raised when the exchange fails at the protocol level, such as an invalid URL or a redirect loop."""


class TransportUnavailableError(RuntimeError):
    """Raised when no HTTP backend is installed for the requested call style."""


__all__ = [
    "ApiError",
    "ApiResponseError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ServerError",
    "ParsingError",
    "CodecError",
    "TransportError",
    "RequestTimeoutError",
    "ConnectTimeoutError",
    "ReadTimeoutError",
    "UnknownHostError",
    "TlsError",
    "TransportUnavailableError",
]
