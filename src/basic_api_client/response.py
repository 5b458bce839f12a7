from __future__ import annotations

import logging
from typing import Any, Union
from xml.parsers.expat import ExpatError

from .codec import JSON, XML, Codec, CodecOptions
from .exceptions import ApiResponseError, CodecError, ParsingError
from .policy import ClientPolicy
from .structures import ApiResponse, AsyncRawResponse, ContentKind, RawResponse, is_error

logger = logging.getLogger(__name__)

CODEC_ERRORS = (CodecError, ValueError, TypeError, ExpatError)


def decode_text(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")


def _parse_json(text: str, response_type: Any, options: CodecOptions, codec: Codec) -> Any:
    if response_type is dict:
        value = codec.decode(text, Any, JSON, options) if text.strip() else None
        if not isinstance(value, dict):
            raise CodecError("Response body cannot be parsed to a JSON object")
        return value
    if not text.strip():
        return None
    return codec.decode(text, response_type, JSON, options)


def decode_body(text: str, response_type: Any, policy: ClientPolicy, codec: Codec) -> Any:
    """Decode a response body according to the configured content kinds.

    Returns ``None`` when no rule applies (binary or form responses).
    """

    options = CodecOptions.from_policy(policy)
    try:
        if ContentKind.is_json(policy.response_content_kind):
            return _parse_json(text, response_type, options, codec)
        if response_type is str:
            return text
        if ContentKind.is_json(policy.request_content_kind):
            return _parse_json(text, response_type, options, codec)
        if ContentKind.is_xml(policy.request_content_kind):
            if not text.strip():
                return None
            return codec.decode(text, response_type, XML, options)
    except CODEC_ERRORS as exc:
        raise ParsingError(cause=exc) from exc
    return None


def encode_body(value: Any, policy: ClientPolicy, codec: Codec) -> str:
    if isinstance(value, str):
        return value
    options = CodecOptions.from_policy(policy)
    try:
        if ContentKind.is_json(policy.request_content_kind):
            return codec.encode(value, JSON, options)
        if ContentKind.is_xml(policy.request_content_kind):
            return codec.encode(value, XML, options)
    except CODEC_ERRORS as exc:
        raise ParsingError(cause=exc) from exc
    return str(value)


def _build_response(
    raw: Union[RawResponse, AsyncRawResponse],
    body: bytes,
    url: str,
    policy: ClientPolicy,
    response_type: Any,
    codec: Codec,
) -> ApiResponse:
    text = decode_text(body)
    if policy.throw_on_http_error and is_error(raw.status_code):
        logger.debug("HTTP %s from %s raised as error", raw.status_code, url)
        raise ApiResponseError.for_status(url, raw.status_code, text, raw)
    content = decode_body(text, response_type, policy, codec)
    return ApiResponse(raw.status_code, raw.headers, content)


def handle(raw: RawResponse, url: str, policy: ClientPolicy, response_type: Any, codec: Codec) -> ApiResponse:
    """Drain and close the response, then classify and decode it."""

    with raw:
        body = raw.read()
    return _build_response(raw, body, url, policy, response_type, codec)


async def handle_async(
    raw: AsyncRawResponse,
    url: str,
    policy: ClientPolicy,
    response_type: Any,
    codec: Codec,
) -> ApiResponse:
    async with raw:
        body = await raw.aread()
    return _build_response(raw, body, url, policy, response_type, codec)


__all__ = ["CODEC_ERRORS", "decode_text", "decode_body", "encode_body", "handle", "handle_async"]
