from __future__ import annotations

from typing import List, Optional

from .policy import ClientPolicy
from .structures import Header, PreparedRequest


def resolve_url(base_url: str, url: Optional[str]) -> str:
    """Resolve a call URL against the base URL.

    Blank URLs target the base URL itself, URLs starting with ``/`` are
    appended to it and anything else is taken as an absolute URL.
    """

    if url is None or not url.strip():
        return base_url
    if url.startswith("/"):
        return f"{base_url}{url}"
    return url


def auth_header_value(token: str, prefix: Optional[str]) -> str:
    if prefix is None or not prefix.strip():
        return token
    return f"{prefix} {token}"


def build_headers(
    policy: ClientPolicy,
    token: Optional[str],
    has_body: bool,
    body_content_type: Optional[str] = None,
) -> List[Header]:
    headers: List[Header] = []
    if token is not None:
        headers.append((policy.token_header_name, auth_header_value(token, policy.token_prefix)))
    headers.extend(policy.additional_headers.items())
    if has_body:
        content_type = body_content_type or policy.request_content_kind
        if content_type is not None:
            headers.append(("Content-Type", content_type))
    if policy.accept_content_kind is not None:
        headers.append(("Accept", policy.accept_content_kind))
    return headers


def prepare(
    policy: ClientPolicy,
    token: Optional[str],
    method: str,
    url: Optional[str],
    body: Optional[bytes] = None,
    body_content_type: Optional[str] = None,
) -> PreparedRequest:
    if not isinstance(method, str):
        raise TypeError("method must be str")
    if body is not None and not isinstance(body, bytes):
        raise TypeError("body must be bytes or None")
    has_body = body is not None
    headers = build_headers(policy, token, has_body, body_content_type)
    return PreparedRequest(
        method=method.upper(),
        url=resolve_url(policy.base_url, url),
        headers=tuple(headers),
        body=body,
        content_type=(body_content_type or policy.request_content_kind) if has_body else None,
    )


__all__ = ["resolve_url", "auth_header_value", "build_headers", "prepare"]
