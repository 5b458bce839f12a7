"""Convenience presets returning modified copies of a :class:`ClientPolicy`."""

from __future__ import annotations

from dataclasses import replace

from .policy import ClientPolicy
from .structures import ContentKind


def json(policy: ClientPolicy) -> ClientPolicy:
    """Send and accept JSON."""

    return replace(policy, request_content_kind=ContentKind.JSON, accept_content_kind=ContentKind.JSON)


def json_response(policy: ClientPolicy) -> ClientPolicy:
    """Decode responses as JSON whatever the request content kind is."""

    return replace(policy, response_content_kind=ContentKind.JSON)


def xml(policy: ClientPolicy) -> ClientPolicy:
    return replace(policy, request_content_kind=ContentKind.XML, accept_content_kind=ContentKind.XML)


def soap_xml(policy: ClientPolicy) -> ClientPolicy:
    return replace(policy, request_content_kind=ContentKind.SOAP_XML, accept_content_kind=ContentKind.SOAP_XML)


__all__ = ["json", "json_response", "xml", "soap_xml"]
