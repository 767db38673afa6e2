"""
Tests for typed value marshalling between Python values and wire TypedValues.
"""

from decimal import Decimal

import pytest

from dynamodb_client.core.marshaller import (
    decode,
    decode_item,
    decode_value,
    encode,
    encode_item,
    encode_value,
)
from dynamodb_client.models import AttributeType


class TestEncodeValue:
    """Encoding native values into TypedValues."""

    def test_string(self):
        assert encode_value(AttributeType.STRING, "bla") == {"S": "bla"}

    def test_string_from_non_string(self):
        """Non-string values are stringified for S attributes."""
        assert encode_value(AttributeType.STRING, 42) == {"S": "42"}

    def test_numbers_travel_as_text(self):
        assert encode_value(AttributeType.NUMBER, 5) == {"N": "5"}
        assert encode_value(AttributeType.NUMBER, -12) == {"N": "-12"}
        assert encode_value(AttributeType.NUMBER, 1.5) == {"N": "1.5"}
        assert encode_value(AttributeType.NUMBER, Decimal("3.14")) == {"N": "3.14"}

    def test_bool_as_number(self):
        assert encode_value(AttributeType.NUMBER, True) == {"N": "1"}
        assert encode_value(AttributeType.NUMBER, False) == {"N": "0"}

    def test_type_given_as_tag(self):
        """Plain tag strings are accepted in place of AttributeType members."""
        assert encode_value("N", 7) == {"N": "7"}

    def test_string_set_from_list(self):
        assert encode_value(AttributeType.STRING_SET, ["a", "b"]) == {"SS": ["a", "b"]}

    def test_string_set_from_python_set_is_sorted(self):
        assert encode_value(AttributeType.STRING_SET, {"b", "a", "c"}) == {"SS": ["a", "b", "c"]}

    def test_set_wraps_scalar(self):
        """A scalar given for a set attribute becomes a one-element set."""
        assert encode_value(AttributeType.STRING_SET, "solo") == {"SS": ["solo"]}
        assert encode_value(AttributeType.NUMBER_SET, 3) == {"NS": ["3"]}

    def test_set_drops_duplicates(self):
        assert encode_value(AttributeType.NUMBER_SET, [1, 1, 2]) == {"NS": ["1", "2"]}

    def test_number_set_elements_are_text(self):
        assert encode_value(AttributeType.NUMBER_SET, [1, 2.5]) == {"NS": ["1", "2.5"]}

    def test_binary_is_base64(self):
        assert encode_value(AttributeType.BINARY, b"\x00\xff") == {"B": "AP8="}

    def test_binary_from_text(self):
        assert encode_value(AttributeType.BINARY, "hi") == {"B": "aGk="}


class TestDecodeValue:
    """Decoding TypedValues according to their own tag."""

    def test_string(self):
        assert decode_value({"S": "bla"}) == "bla"

    def test_integral_number_becomes_int(self):
        value = decode_value({"N": "-12"})
        assert value == -12
        assert isinstance(value, int)

    def test_fractional_number_becomes_decimal(self):
        value = decode_value({"N": "3.14"})
        assert value == Decimal("3.14")
        assert isinstance(value, Decimal)

    def test_number_set(self):
        assert decode_value({"NS": ["1", "2.5"]}) == [1, Decimal("2.5")]

    def test_string_set(self):
        assert decode_value({"SS": ["a", "b"]}) == ["a", "b"]

    def test_binary_returns_exact_bytes(self):
        assert decode_value({"B": "AP8="}) == b"\x00\xff"

    def test_unknown_tag_returns_raw_value(self):
        assert decode_value({"BOOL": True}) is True

    def test_requires_exactly_one_tag(self):
        with pytest.raises(ValueError, match="exactly one type tag"):
            decode_value({"S": "a", "N": "1"})
        with pytest.raises(ValueError):
            decode_value({})


class TestSchemaMarshalling:
    """Encoding and decoding through a table schema."""

    def test_uses_declared_type(self, users_schema):
        assert encode(users_schema, "id", 5) == {"N": "5"}
        assert encode(users_schema, "tags", ["x"]) == {"SS": ["x"]}

    def test_undeclared_attribute_encodes_as_string(self, users_schema):
        assert encode(users_schema, "nickname", 12) == {"S": "12"}

    def test_decode_follows_wire_tag_on_mismatch(self, users_schema):
        """The tag on the wire wins over the declared type."""
        assert decode(users_schema, "id", {"S": "abc"}) == "abc"

    def test_encode_item_skips_none(self, users_schema):
        item = {"id": 5, "name": "bla", "tags": None}

        assert encode_item(users_schema, item) == {
            "id": {"N": "5"},
            "name": {"S": "bla"},
        }

    def test_decode_item(self, users_schema):
        wire = {
            "id": {"N": "5"},
            "name": {"S": "bla"},
            "scores": {"NS": ["1", "1.5"]},
            "avatar": {"B": "AP8="},
        }

        assert decode_item(users_schema, wire) == {
            "id": 5,
            "name": "bla",
            "scores": [1, Decimal("1.5")],
            "avatar": b"\x00\xff",
        }

    def test_binary_survives_encoding_and_decoding(self, users_schema):
        raw = bytes(range(256))
        assert decode(users_schema, "avatar", encode(users_schema, "avatar", raw)) == raw

    @pytest.mark.parametrize("attribute, value", [
        ("name", "bla"),
        ("visits", 42),
        ("visits", Decimal("3.14")),
        ("visits", -7),
        ("tags", ["a", "b"]),
        ("scores", [1, Decimal("2.5")]),
    ])
    def test_value_survives_encoding_and_decoding(self, users_schema, attribute, value):
        assert decode(users_schema, attribute, encode(users_schema, attribute, value)) == value
