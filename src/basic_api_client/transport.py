from __future__ import annotations

import logging
import socket
import ssl
import time
from typing import Any, Dict, Iterator, List, Protocol, Tuple, Type, Union
from urllib.parse import urljoin

from .exceptions import (
    ConnectTimeoutError,
    ProtocolFailureError,
    ReadTimeoutError,
    TlsError,
    TransportError,
    TransportUnavailableError,
    UnknownHostError,
)
from .policy import ClientPolicy
from .structures import AsyncRawResponse, Header, PreparedRequest, RawResponse
from .utils import millis_to_seconds

try:
    import httpx
except ImportError:  # pragma: no cover - depends on installed extra
    httpx = None  # type: ignore[assignment]

try:
    import requests
except ImportError:  # pragma: no cover - depends on installed extra
    requests = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

REQUESTS_PROTOCOL_ERRORS: Tuple[type, ...] = ()
if requests is not None:
    REQUESTS_PROTOCOL_ERRORS = (
        requests.TooManyRedirects,
        requests.exceptions.InvalidURL,
        requests.exceptions.MissingSchema,
        requests.exceptions.InvalidSchema,
    )

MAX_REDIRECTS = 20
REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
READ_METHODS = frozenset({"GET", "HEAD"})


class Transport(Protocol):
    """Executes a prepared request and hands back an unread response."""

    def execute(self, request: PreparedRequest, policy: ClientPolicy) -> RawResponse: ...


class AsyncTransport(Protocol):
    async def execute(self, request: PreparedRequest, policy: ClientPolicy) -> AsyncRawResponse: ...


def socket_timeout_ms(request: PreparedRequest, policy: ClientPolicy) -> int:
    if request.method in READ_METHODS:
        return policy.get_socket_timeout_ms
    return policy.post_socket_timeout_ms


def tls_verify(policy: ClientPolicy) -> Union[bool, ssl.SSLContext]:
    """Return the ``verify`` argument for httpx: an accept-all context when bypassing TLS."""

    if not policy.bypass_tls:
        return True
    try:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    except (ssl.SSLError, OSError, ValueError) as exc:
        logger.warning("Cannot bypass TLS verification: %s", exc)
        return True
    return context


def _causes(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    pending: List[Any] = [exc]
    while pending:
        current = pending.pop()
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        pending.extend([current.__cause__, current.__context__, getattr(current, "reason", None)])
        pending.extend(current.args)


def _caused_by(exc: BaseException, kind: Type[BaseException]) -> bool:
    return any(isinstance(item, kind) for item in _causes(exc))


def _classify(
    exc: BaseException,
    request: PreparedRequest,
    started: float,
    connect_timeout: bool,
    timeout: bool,
    protocol: bool = False,
) -> TransportError:
    elapsed = int((time.monotonic() - started) * 1000)
    target = f"{request.method} {request.url}"
    if connect_timeout:
        logger.warning("%s timed out after %dms while connecting", target, elapsed)
        return ConnectTimeoutError(f"{target}: connect timeout exceeded after {elapsed}ms")
    if timeout:
        logger.warning("%s timed out after %dms", target, elapsed)
        return ReadTimeoutError(f"{target}: read timeout exceeded after {elapsed}ms")
    if protocol:
        return ProtocolFailureError(f"{target}: protocol failure: {exc}")
    if _caused_by(exc, ssl.SSLError):
        return TlsError(f"{target}: TLS failure: {exc}")
    if _caused_by(exc, socket.gaierror):
        return UnknownHostError(f"{target}: unknown host: {exc}")
    return TransportError(f"{target}: HTTP transport error: {exc}")


def _httpx_protocol_failure(exc: BaseException) -> bool:
    if not isinstance(exc, httpx.HTTPError):
        # raised by httpx while building the request, e.g. for a relative URL
        return True
    return isinstance(exc, (httpx.TooManyRedirects, httpx.UnsupportedProtocol, httpx.ProtocolError))


def map_httpx_error(exc: BaseException, request: PreparedRequest, started: float) -> TransportError:
    return _classify(
        exc,
        request,
        started,
        connect_timeout=isinstance(exc, httpx.ConnectTimeout),
        timeout=isinstance(exc, httpx.TimeoutException),
        protocol=_httpx_protocol_failure(exc),
    )


def map_requests_error(exc: BaseException, request: PreparedRequest, started: float) -> TransportError:
    if isinstance(exc, requests.exceptions.SSLError):
        return TlsError(f"{request.method} {request.url}: TLS failure: {exc}")
    return _classify(
        exc,
        request,
        started,
        connect_timeout=isinstance(exc, requests.exceptions.ConnectTimeout),
        timeout=isinstance(exc, requests.Timeout),
        protocol=isinstance(exc, REQUESTS_PROTOCOL_ERRORS),
    )


def _httpx_timeout(request: PreparedRequest, policy: ClientPolicy) -> Any:
    return httpx.Timeout(
        millis_to_seconds(socket_timeout_ms(request, policy)),
        connect=millis_to_seconds(policy.connect_timeout_ms),
    )


def _httpx_client_kwargs(request: PreparedRequest, policy: ClientPolicy, options: Dict[str, Any]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "timeout": _httpx_timeout(request, policy),
        "follow_redirects": not policy.redirect_anyway,
        "verify": tls_verify(policy),
    }
    # the jar is shared by reference, not copied
    if policy.cookie_store is not None:
        kwargs["cookies"] = policy.cookie_store
    kwargs.update(options)
    return kwargs


def _redirect_location(status_code: int, headers: Any) -> Any:
    if status_code not in REDIRECT_STATUSES:
        return None
    return headers.get("location")


class HttpxTransport:
    """Synchronous transport opening one ``httpx.Client`` per call.

    Extra keyword arguments are passed to ``httpx.Client`` (``transport``,
    ``proxy`` ...).
    """

    def __init__(self, **client_options: Any) -> None:
        if httpx is None:
            raise TransportUnavailableError("HttpxTransport requires httpx.")
        self.client_options = client_options

    def execute(self, request: PreparedRequest, policy: ClientPolicy) -> RawResponse:
        client = httpx.Client(**_httpx_client_kwargs(request, policy, self.client_options))
        started = time.monotonic()
        try:
            response = self._send(client, request, policy)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            client.close()
            raise map_httpx_error(exc, request, started) from exc
        except BaseException:
            client.close()
            raise

        def read() -> bytes:
            try:
                return response.read()
            except httpx.HTTPError as exc:
                raise map_httpx_error(exc, request, started) from exc

        def close() -> None:
            try:
                response.close()
            finally:
                client.close()

        logger.debug("%s %s -> %s", request.method, request.url, response.status_code)
        return RawResponse(
            response.status_code,
            tuple(response.headers.multi_items()),
            read,
            close,
            original=response,
        )

    @staticmethod
    def _send(client: Any, request: PreparedRequest, policy: ClientPolicy) -> Any:
        outgoing = client.build_request(request.method, request.url, headers=list(request.headers), content=request.body)
        response = client.send(outgoing, stream=True)
        if not policy.redirect_anyway:
            return response
        for _ in range(MAX_REDIRECTS):
            location = _redirect_location(response.status_code, response.headers)
            if not location:
                return response
            response.close()
            outgoing = client.build_request(
                request.method,
                response.url.join(location),
                headers=list(request.headers),
                content=request.body,
            )
            response = client.send(outgoing, stream=True)
        response.close()
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=outgoing)


class AsyncHttpxTransport:
    """Asynchronous transport opening one ``httpx.AsyncClient`` per call."""

    def __init__(self, **client_options: Any) -> None:
        if httpx is None:
            raise TransportUnavailableError("Async calls require httpx.")
        self.client_options = client_options

    async def execute(self, request: PreparedRequest, policy: ClientPolicy) -> AsyncRawResponse:
        client = httpx.AsyncClient(**_httpx_client_kwargs(request, policy, self.client_options))
        started = time.monotonic()
        try:
            response = await self._send(client, request, policy)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            await client.aclose()
            raise map_httpx_error(exc, request, started) from exc
        except BaseException:
            await client.aclose()
            raise

        async def read() -> bytes:
            try:
                return await response.aread()
            except httpx.HTTPError as exc:
                raise map_httpx_error(exc, request, started) from exc

        async def close() -> None:
            try:
                await response.aclose()
            finally:
                await client.aclose()

        logger.debug("%s %s -> %s", request.method, request.url, response.status_code)
        return AsyncRawResponse(
            response.status_code,
            tuple(response.headers.multi_items()),
            read,
            close,
            original=response,
        )

    @staticmethod
    async def _send(client: Any, request: PreparedRequest, policy: ClientPolicy) -> Any:
        outgoing = client.build_request(request.method, request.url, headers=list(request.headers), content=request.body)
        response = await client.send(outgoing, stream=True)
        if not policy.redirect_anyway:
            return response
        for _ in range(MAX_REDIRECTS):
            location = _redirect_location(response.status_code, response.headers)
            if not location:
                return response
            await response.aclose()
            outgoing = client.build_request(
                request.method,
                response.url.join(location),
                headers=list(request.headers),
                content=request.body,
            )
            response = await client.send(outgoing, stream=True)
        await response.aclose()
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=outgoing)


def merge_headers(headers: Tuple[Header, ...]) -> Dict[str, str]:
    """Fold repeated headers into one comma-separated value for ``requests``."""

    merged: Dict[str, str] = {}
    names: Dict[str, str] = {}
    for key, value in headers:
        lowered = key.lower()
        if lowered in names:
            merged[names[lowered]] = f"{merged[names[lowered]]}, {value}"
        else:
            names[lowered] = key
            merged[key] = value
    return merged


class RequestsTransport:
    """Synchronous transport backed by a ``requests.Session`` per call."""

    def __init__(self) -> None:
        if requests is None:
            raise TransportUnavailableError("RequestsTransport requires requests.")

    @staticmethod
    def _session(policy: ClientPolicy) -> Any:
        session = requests.Session()
        if policy.cookie_store is not None:
            session.cookies = policy.cookie_store
        if policy.bypass_tls:
            session.verify = False
        return session

    def execute(self, request: PreparedRequest, policy: ClientPolicy) -> RawResponse:
        session = self._session(policy)
        timeout = (
            millis_to_seconds(policy.connect_timeout_ms),
            millis_to_seconds(socket_timeout_ms(request, policy)),
        )
        started = time.monotonic()
        try:
            response = self._send(session, request, policy, timeout)
        except requests.RequestException as exc:
            session.close()
            raise map_requests_error(exc, request, started) from exc
        except BaseException:
            session.close()
            raise

        def read() -> bytes:
            try:
                return response.content
            except requests.RequestException as exc:
                raise map_requests_error(exc, request, started) from exc

        def close() -> None:
            try:
                response.close()
            finally:
                session.close()

        logger.debug("%s %s -> %s", request.method, request.url, response.status_code)
        return RawResponse(response.status_code, tuple(response.headers.items()), read, close, original=response)

    @staticmethod
    def _send(session: Any, request: PreparedRequest, policy: ClientPolicy, timeout: Tuple[float, float]) -> Any:
        headers = merge_headers(request.headers)
        url = request.url
        for _ in range(MAX_REDIRECTS + 1):
            response = session.request(
                request.method,
                url,
                data=request.body,
                headers=headers,
                timeout=timeout,
                allow_redirects=not policy.redirect_anyway,
                stream=True,
            )
            if not policy.redirect_anyway:
                return response
            location = _redirect_location(response.status_code, response.headers)
            if not location:
                return response
            response.close()
            url = urljoin(str(response.url), location)
        raise requests.TooManyRedirects(f"Exceeded {MAX_REDIRECTS} redirects.")


def default_transport() -> Transport:
    if httpx is not None:
        return HttpxTransport()
    if requests is not None:
        return RequestsTransport()
    raise TransportUnavailableError(
        "No HTTP client is installed. Install httpx or requests."
    )


def default_async_transport() -> AsyncTransport:
    return AsyncHttpxTransport()


__all__ = [
    "Transport",
    "AsyncTransport",
    "HttpxTransport",
    "AsyncHttpxTransport",
    "RequestsTransport",
    "default_transport",
    "default_async_transport",
    "socket_timeout_ms",
    "tls_verify",
    "merge_headers",
    "map_httpx_error",
    "map_requests_error",
    "MAX_REDIRECTS",
]
