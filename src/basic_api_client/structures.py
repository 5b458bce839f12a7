from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")

Header = Tuple[str, str]


class ContentKind:
    """Media types the client knows how to encode and decode."""

    JSON = "application/json"
    XML = "application/xml"
    SOAP_XML = "application/soap+xml"
    TEXT = "text/plain"
    FORM = "application/x-www-form-urlencoded"

    @staticmethod
    def is_json(kind: Optional[str]) -> bool:
        return kind == ContentKind.JSON

    @staticmethod
    def is_xml(kind: Optional[str]) -> bool:
        return kind is not None and "xml" in kind


def is_error(http_code: int) -> bool:
    """Return True for any status outside the 2xx range."""

    return http_code < 200 or http_code >= 300


@dataclass(frozen=True)
class Entity:
    """Raw request body sent as is, optionally carrying its own content type."""

    content: bytes
    content_type: Optional[str] = None


@dataclass(frozen=True)
class PreparedRequest:
    method: str
    url: str
    headers: Tuple[Header, ...] = ()
    body: Optional[bytes] = None
    content_type: Optional[str] = None

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def header_values(self, name: str) -> List[str]:
        lowered = name.lower()
        return [value for key, value in self.headers if key.lower() == lowered]


class RawResponse:
    """Response owned by the transport; its body can be read only once."""

    def __init__(
        self,
        status_code: int,
        headers: Tuple[Header, ...],
        read: Callable[[], bytes],
        close: Optional[Callable[[], None]] = None,
        original: Any = None,
    ) -> None:
        self.status_code = int(status_code)
        self.headers = tuple(headers)
        self.original = original
        self._read = read
        self._close = close
        self._consumed = False
        self.closed = False

    def read(self) -> bytes:
        if self._consumed:
            raise RuntimeError("response body already consumed")
        self._consumed = True
        return self._read()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._close is not None:
            self._close()

    def __enter__(self) -> "RawResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


class AsyncRawResponse:
    """Async counterpart of :class:`RawResponse`."""

    def __init__(
        self,
        status_code: int,
        headers: Tuple[Header, ...],
        read: Callable[[], Awaitable[bytes]],
        close: Optional[Callable[[], Awaitable[None]]] = None,
        original: Any = None,
    ) -> None:
        self.status_code = int(status_code)
        self.headers = tuple(headers)
        self.original = original
        self._read = read
        self._close = close
        self._consumed = False
        self.closed = False

    async def aread(self) -> bytes:
        if self._consumed:
            raise RuntimeError("response body already consumed")
        self._consumed = True
        return await self._read()

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._close is not None:
            await self._close()

    async def __aenter__(self) -> "AsyncRawResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.aclose()
        return False


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """Decoded response returned to the caller."""

    http_code: int
    headers: Tuple[Header, ...]
    content: Optional[T]

    @property
    def is_error(self) -> bool:
        return is_error(self.http_code)

    def header(self, name: str) -> Optional[str]:
        """Return the first value of a header, ignoring case."""

        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


__all__ = [
    "ContentKind",
    "Entity",
    "PreparedRequest",
    "RawResponse",
    "AsyncRawResponse",
    "ApiResponse",
    "Header",
    "is_error",
]
