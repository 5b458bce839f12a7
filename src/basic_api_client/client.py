from __future__ import annotations

import logging
import threading
from typing import Any, Optional, Tuple

from .codec import Codec, DefaultCodec
from .exceptions import TransportError
from .policy import ClientPolicy
from .request_builder import prepare
from .response import encode_body, handle, handle_async
from .retry import log_retry, should_retry
from .structures import ApiResponse, AsyncRawResponse, ContentKind, Entity, PreparedRequest, RawResponse, is_error
from .transport import AsyncTransport, Transport, default_async_transport, default_transport
from .utils import FormParameters, encode_form

logger = logging.getLogger(__name__)

RETRY_METHODS = frozenset({"GET"})


class ApiClient:
    """Configurable HTTP API client with sync and async methods.

    Every call resolves its URL against ``policy.base_url``, sends the
    request through the transport (GET calls are retried on transient
    failures) and decodes the body according to the policy's content
    kinds. HTTP error statuses are returned as regular responses unless
    ``policy.throw_on_http_error`` is set.

    The auth token may be changed at any time; each call reads it once,
    when the request is built.
    """

    is_error = staticmethod(is_error)

    def __init__(
        self,
        policy: ClientPolicy,
        token: Optional[str] = None,
        codec: Optional[Codec] = None,
        transport: Optional[Transport] = None,
        async_transport: Optional[AsyncTransport] = None,
    ) -> None:
        if not isinstance(policy, ClientPolicy):
            raise TypeError("policy must be ClientPolicy")
        self.policy = policy
        self.codec: Codec = codec or DefaultCodec()
        self.transport = transport
        self.async_transport = async_transport
        self._token = token
        self._token_lock = threading.Lock()

    @property
    def token(self) -> Optional[str]:
        with self._token_lock:
            return self._token

    @token.setter
    def token(self, value: Optional[str]) -> None:
        with self._token_lock:
            self._token = value

    def _encode(self, body: Any) -> Tuple[bytes, Optional[str]]:
        if isinstance(body, Entity):
            return body.content, body.content_type
        if isinstance(body, (bytes, bytearray)):
            return bytes(body), None
        if body is None:
            return b"", None
        text = encode_body(body, self.policy, self.codec)
        return text.encode(self.policy.content_charset), None

    def _form_entity(self, parameters: FormParameters) -> Entity:
        charset = self.policy.content_charset
        return Entity(encode_form(parameters, charset), f"{ContentKind.FORM}; charset={charset}")

    def _read_props(self, method: str, url: str) -> PreparedRequest:
        return prepare(self.policy, self.token, method, url)

    def _enclosing_props(self, method: str, url: str, body: Any) -> PreparedRequest:
        content, content_type = self._encode(body)
        return prepare(self.policy, self.token, method, url, content, content_type)

    def _send(self, request: PreparedRequest) -> RawResponse:
        transport = self.transport or default_transport()
        max_retry = self.policy.get_max_retry
        attempt = 0
        while True:
            try:
                return transport.execute(request, self.policy)
            except TransportError as exc:
                if request.method not in RETRY_METHODS or not should_retry(exc, attempt, max_retry, request.method):
                    raise
                attempt += 1
                log_retry(request.method, request.url, attempt, max_retry, exc)

    async def _send_async(self, request: PreparedRequest) -> AsyncRawResponse:
        transport = self.async_transport or default_async_transport()
        max_retry = self.policy.get_max_retry
        attempt = 0
        while True:
            try:
                return await transport.execute(request, self.policy)
            except TransportError as exc:
                if request.method not in RETRY_METHODS or not should_retry(exc, attempt, max_retry, request.method):
                    raise
                attempt += 1
                log_retry(request.method, request.url, attempt, max_retry, exc)

    def _request(self, request: PreparedRequest, response_type: Any) -> ApiResponse:
        logger.debug("Sending %s %s", request.method, request.url)
        raw = self._send(request)
        return handle(raw, request.url, self.policy, response_type, self.codec)

    async def _request_async(self, request: PreparedRequest, response_type: Any) -> ApiResponse:
        logger.debug("Sending %s %s", request.method, request.url)
        raw = await self._send_async(request)
        return await handle_async(raw, request.url, self.policy, response_type, self.codec)

    def get(self, url: str = "", response_type: Any = str) -> ApiResponse:
        return self._request(self._read_props("GET", url), response_type)

    async def get_async(self, url: str = "", response_type: Any = str) -> ApiResponse:
        return await self._request_async(self._read_props("GET", url), response_type)

    def delete(self, url: str = "", response_type: Any = str) -> ApiResponse:
        return self._request(self._read_props("DELETE", url), response_type)

    async def delete_async(self, url: str = "", response_type: Any = str) -> ApiResponse:
        return await self._request_async(self._read_props("DELETE", url), response_type)

    def post(self, url: str = "", response_type: Any = str, body: Any = None) -> ApiResponse:
        """Send a POST.

        ``body`` may be an :class:`Entity` or ``bytes`` (sent as is), a ``str``
        (encoded with ``content_charset``) or any object, serialized
        according to ``policy.request_content_kind``.
        """

        return self._request(self._enclosing_props("POST", url, body), response_type)

    async def post_async(self, url: str = "", response_type: Any = str, body: Any = None) -> ApiResponse:
        return await self._request_async(self._enclosing_props("POST", url, body), response_type)

    def put(self, url: str = "", response_type: Any = str, body: Any = None) -> ApiResponse:
        return self._request(self._enclosing_props("PUT", url, body), response_type)

    async def put_async(self, url: str = "", response_type: Any = str, body: Any = None) -> ApiResponse:
        return await self._request_async(self._enclosing_props("PUT", url, body), response_type)

    def patch(self, url: str = "", response_type: Any = str, body: Any = None) -> ApiResponse:
        return self._request(self._enclosing_props("PATCH", url, body), response_type)

    async def patch_async(self, url: str = "", response_type: Any = str, body: Any = None) -> ApiResponse:
        return await self._request_async(self._enclosing_props("PATCH", url, body), response_type)

    def post_url_form_encoded(self, url: str, response_type: Any, parameters: FormParameters) -> ApiResponse:
        return self.post(url, response_type, self._form_entity(parameters))

    async def post_url_form_encoded_async(
        self, url: str, response_type: Any, parameters: FormParameters
    ) -> ApiResponse:
        return await self.post_async(url, response_type, self._form_entity(parameters))

    def put_url_form_encoded(self, url: str, response_type: Any, parameters: FormParameters) -> ApiResponse:
        return self.put(url, response_type, self._form_entity(parameters))

    async def put_url_form_encoded_async(self, url: str, response_type: Any, parameters: FormParameters) -> ApiResponse:
        return await self.put_async(url, response_type, self._form_entity(parameters))

    def patch_url_form_encoded(self, url: str, response_type: Any, parameters: FormParameters) -> ApiResponse:
        return self.patch(url, response_type, self._form_entity(parameters))

    async def patch_url_form_encoded_async(
        self, url: str, response_type: Any, parameters: FormParameters
    ) -> ApiResponse:
        return await self.patch_async(url, response_type, self._form_entity(parameters))


__all__ = ["ApiClient", "RETRY_METHODS"]
