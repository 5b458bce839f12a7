"""Body codecs.

JSON goes through the stdlib ``json`` module and XML through ``xmltodict``.
Typed values on both sides are mapped by ``pydantic``: dataclasses and
models are dumped with their field aliases, and decoded bodies are
validated into the requested type with :class:`pydantic.TypeAdapter`.
"""

from __future__ import annotations

import collections.abc
import copy
import json
from dataclasses import dataclass, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple, get_origin
from xml.parsers.expat import ExpatError

import xmltodict
from pydantic import BaseModel, PydanticSchemaGenerationError, TypeAdapter, ValidationError

from .exceptions import CodecError
from .utils import local_name, normalize_xml, xml_root_name

JSON = "json"
XML = "xml"

_SEQUENCE_TYPES = (list, tuple, set, frozenset)
_DATE_ERRORS = frozenset({"date_type", "date_parsing", "date_from_datetime_parsing", "date_from_datetime_inexact"})
_DATETIME_ERRORS = frozenset({"datetime_type", "datetime_parsing", "datetime_from_date_parsing"})
_SEQUENCE_ERRORS = frozenset({"list_type", "tuple_type", "set_type", "frozen_set_type"})
_OBJECT_ERRORS = frozenset({"dataclass_type", "dataclass_args_type", "model_type", "model_attributes_type"})
_MAX_REPAIRS = 16
_KEEP = object()


@dataclass(frozen=True)
class CodecOptions:
    date_format: str = "%d-%m-%Y"
    serialize_nulls: bool = False
    companion_types: Tuple[type, ...] = ()
    xml_header: Optional[str] = None
    xml_disable_escaping: bool = False

    @classmethod
    def from_policy(cls, policy: Any) -> "CodecOptions":
        return cls(
            date_format=policy.date_format,
            serialize_nulls=policy.serialize_nulls,
            companion_types=tuple(policy.xml_companion_types),
            xml_header=policy.xml_header,
            xml_disable_escaping=policy.xml_disable_escaping,
        )


class Codec(Protocol):
    """Serializes values to body text and back for a codec kind (``json`` or ``xml``)."""

    def encode(self, value: Any, kind: str, options: CodecOptions) -> str: ...

    def decode(self, body: str, target_type: Any, kind: str, options: CodecOptions) -> Any: ...


@lru_cache(maxsize=256)
def _cached_adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def _adapter(target: Any) -> TypeAdapter:
    try:
        return _cached_adapter(target)
    except TypeError:
        # unhashable type expressions are not cached
        return TypeAdapter(target)


def _is_model(value: Any) -> bool:
    return isinstance(value, BaseModel) or (is_dataclass(value) and not isinstance(value, type))


def _child(node: Any, key: Any) -> Any:
    if isinstance(node, dict) and key in node:
        return node[key]
    if isinstance(node, list) and isinstance(key, int) and 0 <= key < len(node):
        return node[key]
    return _KEEP


def _replace(root: List[Any], path: Iterable[Any], value: Any) -> bool:
    """Sets ``value`` at ``path`` below ``root[0]``; returns False when the path does not exist."""
    *parents, last = (0, *path)
    node: Any = root
    for key in parents:
        node = _child(node, key)
        if node is _KEEP:
            return False
    if _child(node, last) is _KEEP:
        return False
    node[last] = value
    return True


class DefaultCodec:
    """Codec used by :class:`~basic_api_client.client.ApiClient` unless another one is given.

    Dataclasses and pydantic models are mapped by their fields, so
    ``Annotated[str, Field(alias="userName")]`` renames a member on the
    wire. Plain objects are serialized from their public attributes. XML
    element names come from :func:`~basic_api_client.utils.xml_root_name`.
    """

    def encode(self, value: Any, kind: str, options: CodecOptions) -> str:
        try:
            if kind == JSON:
                return json.dumps(self._to_plain(value, options, False), ensure_ascii=False, separators=(",", ":"))
            if kind == XML:
                return self._encode_xml(value, options)
        except CodecError:
            raise
        except (TypeError, ValueError) as exc:
            raise CodecError(f"Cannot serialize {type(value).__name__}: {exc}") from exc
        raise CodecError(f"Unsupported codec kind: {kind}")

    def decode(self, body: str, target_type: Any, kind: str, options: CodecOptions) -> Any:
        try:
            if kind == JSON:
                try:
                    data = json.loads(body)
                except ValueError as exc:
                    raise CodecError(f"Invalid JSON body: {exc}") from exc
                return self._validate(data, target_type, options, False)
            if kind == XML:
                return self._decode_xml(body, target_type, options)
        except PydanticSchemaGenerationError as exc:
            raise CodecError(f"Unsupported target type {target_type!r}: {exc}") from exc
        raise CodecError(f"Unsupported codec kind: {kind}")

    def _encode_xml(self, value: Any, options: CodecOptions) -> str:
        root = xml_root_name(type(value))
        plain = self._to_plain(value, options, True)
        raw: Dict[str, str] = {}
        if options.xml_disable_escaping:
            plain = self._protect(plain, raw)
        document = xmltodict.unparse({root: plain}, full_document=False)
        for token, text in raw.items():
            document = document.replace(token, text)
        return (options.xml_header or "") + document

    def _protect(self, value: Any, raw: Dict[str, str]) -> Any:
        # private-use characters survive the SAX writer untouched
        if isinstance(value, str):
            token = f"\ue000{len(raw)}\ue001"
            raw[token] = value
            return token
        if isinstance(value, dict):
            return {key: self._protect(item, raw) for key, item in value.items()}
        if isinstance(value, list):
            return [self._protect(item, raw) for item in value]
        return value

    def _decode_xml(self, body: str, target_type: Any, options: CodecOptions) -> Any:
        try:
            document = xmltodict.parse(body)
        except ExpatError as exc:
            raise CodecError(f"Invalid XML body: {exc}") from exc
        root_tag, content = next(iter(document.items()))
        name = local_name(root_tag)
        content = normalize_xml(content)

        if target_type in (Any, object, dict) or get_origin(target_type) in (dict, collections.abc.Mapping):
            return {name: content}

        candidates = [target_type, *options.companion_types]
        for candidate in candidates:
            if isinstance(candidate, type) and xml_root_name(candidate) == name:
                return self._validate(content if content is not None else {}, candidate, options, True)
        expected = ", ".join(xml_root_name(item) for item in candidates if isinstance(item, type))
        raise CodecError(f"Unexpected element <{name}>, expected one of: {expected}")

    def _to_plain(self, value: Any, options: CodecOptions, xml: bool) -> Any:
        if _is_model(value):
            value = _adapter(type(value)).dump_python(
                value,
                by_alias=True,
                exclude_none=xml or not options.serialize_nulls,
                warnings=False,
            )
        return self._finish(value, options, xml)

    def _finish(self, value: Any, options: CodecOptions, xml: bool) -> Any:
        if value is None:
            return None
        if isinstance(value, Enum):
            return self._finish(value.value, options, xml)
        if isinstance(value, bool):
            return ("true" if value else "false") if xml else value
        if isinstance(value, (str, int, float)):
            return str(value) if xml else value
        if isinstance(value, Decimal):
            return str(value) if xml else float(value)
        if isinstance(value, date):
            return value.isoformat() if xml else value.strftime(options.date_format)
        if isinstance(value, _SEQUENCE_TYPES):
            return [self._finish(item, options, xml) for item in value]
        if _is_model(value):
            return self._to_plain(value, options, xml)

        if isinstance(value, Mapping):
            items = [(str(key), item) for key, item in value.items()]
        elif hasattr(value, "__dict__"):
            items = [(key, item) for key, item in vars(value).items() if not key.startswith("_")]
        else:
            raise CodecError(f"Cannot serialize {type(value).__name__}")

        result: Dict[str, Any] = {}
        for key, item in items:
            plain = self._finish(item, options, xml)
            if plain is None and (xml or not options.serialize_nulls):
                continue
            result[key] = plain
        return result

    def _validate(self, data: Any, target: Any, options: CodecOptions, xml: bool) -> Any:
        if target in (Any, object) or target is None:
            return data
        adapter = _adapter(target)
        for _ in range(_MAX_REPAIRS):
            try:
                return adapter.validate_python(data)
            except ValidationError as exc:
                repaired = self._repair(data, exc.errors(include_url=False), options, xml)
                if repaired is _KEEP:
                    raise CodecError(f"Body does not match {getattr(target, '__name__', target)}: {exc}") from exc
                data = repaired
        raise CodecError(f"Body does not match {getattr(target, '__name__', target)}")

    def _repair(self, data: Any, errors: List[Dict[str, Any]], options: CodecOptions, xml: bool) -> Any:
        """Rewrites the inputs the validator rejected but the wire format allows.

        JSON dates follow ``date_format``. XML has no arrays, so a lone child
        stands for a one-element list, and an element holding only text
        stands for an object with a ``text`` member.
        """
        root = [copy.deepcopy(data)]
        changed = False
        for error in errors:
            value = self._repaired_value(error, options, xml)
            if value is not _KEEP and _replace(root, error["loc"], value):
                changed = True
        return root[0] if changed else _KEEP

    @staticmethod
    def _repaired_value(error: Dict[str, Any], options: CodecOptions, xml: bool) -> Any:
        kind = error["type"]
        given = error.get("input")
        if xml:
            if kind in _SEQUENCE_ERRORS and not isinstance(given, list):
                return [] if given is None else [given]
            if kind in _OBJECT_ERRORS and isinstance(given, str):
                return {"text": given}
            return _KEEP
        if isinstance(given, str) and (kind in _DATE_ERRORS or kind in _DATETIME_ERRORS):
            try:
                parsed = datetime.strptime(given, options.date_format)
            except ValueError:
                return _KEEP
            return parsed.date() if kind in _DATE_ERRORS else parsed
        return _KEEP


__all__ = ["Codec", "CodecOptions", "DefaultCodec", "JSON", "XML"]
