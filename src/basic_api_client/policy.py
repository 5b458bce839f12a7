from __future__ import annotations

from dataclasses import dataclass, field, fields
from http.cookiejar import CookieJar
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from .structures import ContentKind

DEFAULT_XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>'

OPTION_ALIASES: Dict[str, str] = {
    "baseUrl": "base_url",
    "contentCharset": "content_charset",
    "dateFormat": "date_format",
    "tokenHeaderName": "token_header_name",
    "tokenNameInHeader": "token_header_name",
    "tokenPrefix": "token_prefix",
    "httpConnectionTimeout": "connect_timeout_ms",
    "httpGETSocketTimeout": "get_socket_timeout_ms",
    "httpPOSTSocketTimeout": "post_socket_timeout_ms",
    "httpGETMaxRetry": "get_max_retry",
    "additionalHeaders": "additional_headers",
    "requestContentKind": "request_content_kind",
    "contentType": "request_content_kind",
    "responseContentKind": "response_content_kind",
    "responseContentType": "response_content_kind",
    "acceptContentKind": "accept_content_kind",
    "acceptType": "accept_content_kind",
    "serializeNulls": "serialize_nulls",
    "throwExceptionOnHttpError": "throw_on_http_error",
    "redirectAnyway": "redirect_anyway",
    "xmlHeader": "xml_header",
    "xmlDisableEscaping": "xml_disable_escaping",
    "xmlCompanionTypes": "xml_companion_types",
    "xmlSeeAlso": "xml_companion_types",
    "bypassSsl": "bypass_tls",
    "cookieStore": "cookie_store",
    "cookies": "cookie_store",
}


@dataclass(frozen=True)
class ClientPolicy:
    """Immutable client configuration, built once per client.

    Timeouts are expressed in milliseconds. ``date_format`` is a
    ``strftime`` pattern used by the JSON codec for ``date`` and
    ``datetime`` values.

    ``xml_disable_escaping`` is off by default, so XML text values are
    escaped unless a caller asks for them to be written verbatim.
    """

    base_url: str
    content_charset: str = "utf-8"
    date_format: str = "%d-%m-%Y"
    token_header_name: str = "Authorization"
    token_prefix: Optional[str] = "Bearer"
    connect_timeout_ms: int = 1500
    get_socket_timeout_ms: int = 1500
    post_socket_timeout_ms: int = 3000
    get_max_retry: int = 3
    additional_headers: Mapping[str, str] = field(default_factory=dict)
    request_content_kind: Optional[str] = ContentKind.JSON
    response_content_kind: Optional[str] = None
    accept_content_kind: Optional[str] = ContentKind.JSON
    serialize_nulls: bool = False
    throw_on_http_error: bool = False
    redirect_anyway: bool = False
    xml_header: Optional[str] = DEFAULT_XML_HEADER
    xml_disable_escaping: bool = False
    xml_companion_types: Tuple[type, ...] = ()
    bypass_tls: bool = False
    cookie_store: Optional[CookieJar] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.base_url, str) or not self.base_url.strip():
            raise ValueError("base_url must be a non-empty str")
        if self.get_max_retry < 0:
            raise ValueError("get_max_retry must be >= 0")
        for name in ("connect_timeout_ms", "get_socket_timeout_ms", "post_socket_timeout_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if not isinstance(self.additional_headers, Mapping):
            raise TypeError("additional_headers must be a mapping")
        if self.cookie_store is not None and not isinstance(self.cookie_store, CookieJar):
            raise TypeError("cookie_store must be a http.cookiejar.CookieJar")
        object.__setattr__(self, "additional_headers", MappingProxyType(dict(self.additional_headers)))
        object.__setattr__(self, "xml_companion_types", tuple(self.xml_companion_types))

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "ClientPolicy":
        """Build a policy from recognized option names.

        Accepts both the field names and the camelCase option names
        (``baseUrl``, ``httpGETMaxRetry``, ``bypassSsl`` ...).
        """

        known = {item.name for item in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"unknown client option: {key}")
            kwargs[name] = value
        if "base_url" not in kwargs:
            raise ValueError("base_url must be set")
        return cls(**kwargs)


__all__ = ["ClientPolicy", "DEFAULT_XML_HEADER", "OPTION_ALIASES"]
