import pytest

from errors import EncodingError
from firestore_codec import (
    ArrayValue, BooleanValue, IntegerValue, MapValue, NullValue, StringValue,
    decode, document_to_fields, encode, fields_to_document, from_json, to_json,
)


def test_round_trip_nested_job_document():
    doc = {
        'destination': 'Paris, France',
        'durationDays': 3,
        'status': 'processing',
        'completedAt': None,
        'itinerary': [
            {'day': 1, 'theme': 'Arrival', 'activities': [
                {'time': '09:00', 'description': 'Coffee', 'location': 'Montmartre'},
            ]},
        ],
        'flags': [True, False, [], {}],
    }
    assert fields_to_document(document_to_fields(doc)) == doc
    assert decode(encode(doc)) == doc


def test_encode_produces_tagged_variants():
    assert encode(None) == NullValue()
    assert encode('x') == StringValue('x')
    assert encode(7) == IntegerValue(7)
    assert encode(True) == BooleanValue(True)
    assert encode([1, 'a']) == ArrayValue((IntegerValue(1), StringValue('a')))
    assert encode({'k': None}) == MapValue({'k': NullValue()})


def test_bool_is_not_encoded_as_integer():
    assert to_json(encode(False)) == {'booleanValue': False}


def test_firestore_json_shape():
    fields = document_to_fields({'n': 3, 'tags': ['a'], 'meta': {'ok': True}, 'e': None})
    assert fields == {
        'n': {'integerValue': '3'},
        'tags': {'arrayValue': {'values': [{'stringValue': 'a'}]}},
        'meta': {'mapValue': {'fields': {'ok': {'booleanValue': True}}}},
        'e': {'nullValue': None},
    }


def test_integral_float_is_stored_as_integer():
    assert encode(3.0) == IntegerValue(3)


@pytest.mark.parametrize('value', [2.5, float('nan'), object(), {1, 2}, b'bytes'])
def test_unsupported_values_raise(value):
    with pytest.raises(EncodingError):
        encode(value)


def test_non_string_map_keys_raise():
    with pytest.raises(EncodingError):
        encode({1: 'one'})


def test_unknown_tag_reads_as_null():
    assert from_json({'doubleValue': 1.5}) == NullValue()
    assert fields_to_document({'when': {'timestampValue': '2024-01-01T00:00:00Z'}}) == {'when': None}


def test_empty_array_and_map_from_firestore():
    # Firestore omits `values` / `fields` for empty containers
    assert fields_to_document({'itinerary': {'arrayValue': {}}, 'm': {'mapValue': {}}}) == {
        'itinerary': [], 'm': {},
    }


def test_integer_value_accepts_numeric_json():
    assert decode(from_json({'integerValue': 5})) == 5
    assert decode(from_json({'integerValue': '5'})) == 5
