"""
firestore_codec.py — Typed-value codec for the Firestore REST API.

Firestore does not store plain JSON: every field value is wrapped in an
object naming its type, e.g.

    {"stringValue": "Paris"}
    {"integerValue": "3"}                     (int64 travels as a string)
    {"arrayValue": {"values": [...]}}
    {"mapValue": {"fields": {"k": {...}}}}

This module models those wrappers as a closed set of variants
(StringValue, IntegerValue, BooleanValue, NullValue, ArrayValue, MapValue)
and converts in three directions:

    encode(value)      plain Python value  → WireValue
    decode(wire)       WireValue           → plain Python value
    to_json / from_json  WireValue         ↔ Firestore REST JSON

Only str, int, bool, None, list/tuple and str-keyed dicts are supported.
There is no double variant: floats with an integral value are stored as
integers and any other float raises EncodingError.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from errors import EncodingError

logger = logging.getLogger(__name__)


# ── Wire variants ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class IntegerValue:
    value: int


@dataclass(frozen=True)
class BooleanValue:
    value: bool


@dataclass(frozen=True)
class NullValue:
    pass


@dataclass(frozen=True)
class ArrayValue:
    values: tuple = ()


@dataclass(frozen=True)
class MapValue:
    fields: dict = field(default_factory=dict)


WireValue = Union[StringValue, IntegerValue, BooleanValue, NullValue, ArrayValue, MapValue]


# ── Plain value ↔ WireValue ───────────────────────────────────────────────────

def encode(value: Any) -> WireValue:
    """Wrap a plain value in its Firestore variant, recursively."""
    if value is None:
        return NullValue()
    if isinstance(value, str):
        return StringValue(value)
    # bool is a subclass of int, so it must be matched first
    if isinstance(value, bool):
        return BooleanValue(value)
    if isinstance(value, int):
        return IntegerValue(value)
    if isinstance(value, float):
        if value.is_integer():
            return IntegerValue(int(value))
        raise EncodingError(f'Unsupported Firestore value: non-integral number {value!r}')
    if isinstance(value, (list, tuple)):
        return ArrayValue(tuple(encode(v) for v in value))
    if isinstance(value, Mapping):
        return MapValue(encode_fields(value))
    raise EncodingError(f'Unsupported Firestore value: {type(value).__name__}')


def encode_fields(doc: Mapping) -> dict:
    fields = {}
    for key, val in doc.items():
        if not isinstance(key, str):
            raise EncodingError(f'Firestore field names must be strings, got {type(key).__name__}')
        fields[key] = encode(val)
    return fields


def decode(wire: WireValue) -> Any:
    """Unwrap a WireValue back into a plain Python value, recursively."""
    if isinstance(wire, StringValue):
        return wire.value
    if isinstance(wire, IntegerValue):
        return wire.value
    if isinstance(wire, BooleanValue):
        return wire.value
    if isinstance(wire, NullValue):
        return None
    if isinstance(wire, ArrayValue):
        return [decode(v) for v in wire.values]
    if isinstance(wire, MapValue):
        return decode_fields(wire.fields)
    raise EncodingError(f'Not a Firestore wire value: {type(wire).__name__}')


def decode_fields(fields: Mapping) -> dict:
    return {key: decode(val) for key, val in fields.items()}


# ── WireValue ↔ Firestore REST JSON ───────────────────────────────────────────

def to_json(wire: WireValue) -> dict:
    if isinstance(wire, StringValue):
        return {'stringValue': wire.value}
    if isinstance(wire, IntegerValue):
        return {'integerValue': str(wire.value)}
    if isinstance(wire, BooleanValue):
        return {'booleanValue': wire.value}
    if isinstance(wire, NullValue):
        return {'nullValue': None}
    if isinstance(wire, ArrayValue):
        return {'arrayValue': {'values': [to_json(v) for v in wire.values]}}
    if isinstance(wire, MapValue):
        return {'mapValue': {'fields': fields_to_json(wire.fields)}}
    raise EncodingError(f'Not a Firestore wire value: {type(wire).__name__}')


def fields_to_json(fields: Mapping) -> dict:
    return {key: to_json(val) for key, val in fields.items()}


def from_json(obj: Mapping) -> WireValue:
    """
    Parse one Firestore JSON value.

    Types this service never writes (doubleValue, timestampValue, geoPointValue,
    referenceValue, bytesValue) and malformed objects read back as NullValue.
    """
    if 'stringValue' in obj:
        return StringValue(str(obj['stringValue']))
    if 'integerValue' in obj:
        try:
            return IntegerValue(int(obj['integerValue']))
        except (TypeError, ValueError) as exc:
            raise EncodingError(f'Malformed integerValue: {obj["integerValue"]!r}') from exc
    if 'booleanValue' in obj:
        return BooleanValue(bool(obj['booleanValue']))
    if 'nullValue' in obj:
        return NullValue()
    if 'arrayValue' in obj:
        values = (obj['arrayValue'] or {}).get('values') or []
        return ArrayValue(tuple(from_json(v) for v in values))
    if 'mapValue' in obj:
        return MapValue(fields_from_json((obj['mapValue'] or {}).get('fields') or {}))

    logger.debug('Unrecognised Firestore value %r — reading as null', list(obj)[:3])
    return NullValue()


def fields_from_json(fields: Mapping) -> dict:
    return {key: from_json(val) for key, val in fields.items()}


# ── Document-level shortcuts ──────────────────────────────────────────────────

def document_to_fields(doc: Mapping) -> dict:
    """Plain dict → Firestore `fields` JSON, ready for a request body."""
    return fields_to_json(encode_fields(doc))


def fields_to_document(fields: Mapping) -> dict:
    """Firestore `fields` JSON from a response → plain dict."""
    return decode_fields(fields_from_json(fields))
