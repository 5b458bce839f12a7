from __future__ import annotations

import asyncio

import pytest

from basic_api_client.structures import (
    ApiResponse,
    AsyncRawResponse,
    ContentKind,
    Entity,
    PreparedRequest,
    RawResponse,
    is_error,
)


@pytest.mark.parametrize("code", [100, 101, 199, 300, 301, 302, 399, 400, 404, 418, 500, 503, 599])
def test_is_error_outside_2xx(code):
    assert is_error(code) is True


@pytest.mark.parametrize("code", [200, 201, 204, 250, 299])
def test_is_error_false_for_2xx(code):
    assert is_error(code) is False


def test_is_error_matches_range_for_all_codes():
    for code in range(0, 1000):
        assert is_error(code) == (code < 200 or code >= 300)


def test_content_kind_helpers():
    assert ContentKind.is_json("application/json")
    assert not ContentKind.is_json("application/json; charset=utf-8")
    assert ContentKind.is_xml(ContentKind.XML)
    assert ContentKind.is_xml(ContentKind.SOAP_XML)
    assert ContentKind.is_xml("text/xml")
    assert not ContentKind.is_xml(None)
    assert not ContentKind.is_xml(ContentKind.JSON)


def test_prepared_request_header_values_keep_duplicates():
    request = PreparedRequest(
        method="GET",
        url="http://api.test",
        headers=(("Accept", "text/html"), ("X-Trace", "1"), ("accept", "application/json")),
    )

    assert request.header_values("ACCEPT") == ["text/html", "application/json"]
    assert request.has_body is False


def test_entity_defaults_to_no_content_type():
    entity = Entity(b"a=1")

    assert entity.content == b"a=1"
    assert entity.content_type is None


def test_raw_response_body_can_be_read_once_and_close_is_idempotent():
    closes = []
    raw = RawResponse(200, (("a", "1"),), lambda: b"body", lambda: closes.append(True))

    with raw:
        assert raw.read() == b"body"
        with pytest.raises(RuntimeError, match="already consumed"):
            raw.read()
    raw.close()

    assert raw.closed is True
    assert closes == [True]


def test_async_raw_response_body_can_be_read_once():
    closes = []

    async def read():
        return b"body"

    async def close():
        closes.append(True)

    async def scenario():
        raw = AsyncRawResponse(201, (), read, close)
        async with raw:
            assert await raw.aread() == b"body"
            with pytest.raises(RuntimeError):
                await raw.aread()
        await raw.aclose()
        return raw

    raw = asyncio.run(scenario())
    assert raw.status_code == 201
    assert closes == [True]


def test_api_response_helpers():
    response = ApiResponse(404, (("Content-Type", "application/json"), ("X-Id", "1"), ("x-id", "2")), None)

    assert response.is_error is True
    assert response.header("x-ID") == "1"
    assert response.header("missing") is None
    assert ApiResponse(200, (), "ok").is_error is False
