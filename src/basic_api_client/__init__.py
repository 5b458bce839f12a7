from __future__ import annotations

import logging

from . import presets
from .client import ApiClient
from .codec import Codec, CodecOptions, DefaultCodec
from .exceptions import (
    ApiError,
    ApiResponseError,
    BadRequestError,
    CodecError,
    ConnectTimeoutError,
    ForbiddenError,
    NotFoundError,
    ParsingError,
    ProtocolFailureError,
    ReadTimeoutError,
    RequestTimeoutError,
    ServerError,
    TlsError,
    TransportError,
    TransportUnavailableError,
    UnauthorizedError,
    UnknownHostError,
)
from .policy import ClientPolicy
from .structures import ApiResponse, AsyncRawResponse, ContentKind, Entity, PreparedRequest, RawResponse, is_error
from .transport import AsyncHttpxTransport, HttpxTransport, RequestsTransport

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ApiClient",
    "ClientPolicy",
    "presets",
    "Codec",
    "CodecOptions",
    "DefaultCodec",
    "ApiResponse",
    "AsyncRawResponse",
    "ContentKind",
    "Entity",
    "PreparedRequest",
    "RawResponse",
    "is_error",
    "HttpxTransport",
    "AsyncHttpxTransport",
    "RequestsTransport",
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
    "ProtocolFailureError",
    "TransportUnavailableError",
]
