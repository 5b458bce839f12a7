from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Tuple, Union
from urllib.parse import urlencode

FormParameters = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def normalize_key(key: str) -> str:
    """Normalize XML key by removing @ prefix."""

    if key == "#text":
        return "text"
    return key.lstrip("@")


def local_name(tag: str) -> str:
    """Strip a namespace prefix (``soap:Envelope``) or URI (``{ns}Envelope``)."""

    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    return tag.rsplit(":", 1)[-1]


def normalize_xml(value: Any) -> Any:
    """Recursively normalize keys of an ``xmltodict`` structure."""

    if isinstance(value, dict):
        result: Dict[str, Any] = {}
        for key, item in value.items():
            if key.startswith("@xmlns"):
                continue
            result[local_name(normalize_key(key))] = normalize_xml(item)
        return result
    if isinstance(value, list):
        return [normalize_xml(item) for item in value]
    return value


def xml_root_name(cls: type) -> str:
    """Return the XML element name bound to a class.

    Uses the ``__xml_root__`` class attribute when present, otherwise the
    class name with a lower-cased first letter.
    """

    explicit = getattr(cls, "__xml_root__", None)
    if explicit:
        return explicit
    name = cls.__name__
    return name[:1].lower() + name[1:]


def encode_form(parameters: FormParameters, charset: str = "utf-8") -> bytes:
    """URL-form encode parameters, keeping their order and repeated names."""

    items = parameters.items() if isinstance(parameters, Mapping) else parameters
    clean = [(name, "" if value is None else value) for name, value in items]
    return urlencode(clean, encoding=charset).encode(charset)


def millis_to_seconds(value: int) -> float:
    return value / 1000.0


__all__ = [
    "FormParameters",
    "normalize_key",
    "local_name",
    "normalize_xml",
    "xml_root_name",
    "encode_form",
    "millis_to_seconds",
]
