"""
Type marshalling between native Python values and wire TypedValues.

A TypedValue is a single-entry mapping ``{tag: encoded}``:

- ``S``  -> ``{"S": "text"}``
- ``N``  -> ``{"N": "42"}`` (numbers always travel as text)
- ``SS`` -> ``{"SS": ["a", "b"]}``
- ``NS`` -> ``{"NS": ["1", "2.5"]}``
- ``B``  -> ``{"B": "<base64>"}`` (JSON cannot carry raw bytes)

Decoding returns ``str``, ``int`` / ``Decimal``, lists of those, or ``bytes``.
"""

import base64
import logging
import re
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping

from ..models.schema import AttributeType, TableSchema

logger = logging.getLogger(__name__)

TypedValue = Dict[str, Any]

_INTEGER_RE = re.compile(r'^-?\d+$')


def _number_text(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    return str(value).strip()


def _parse_number(text: str) -> Any:
    if _INTEGER_RE.match(text):
        return int(text)
    return Decimal(text)


def _scalar_text(attr_type: AttributeType, value: Any) -> str:
    if attr_type is AttributeType.NUMBER:
        return _number_text(value)
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return str(value)


def _set_elements(attr_type: AttributeType, value: Any) -> List[str]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        value = [value]
    elif isinstance(value, (set, frozenset)):
        value = sorted(value, key=str)

    element_type = attr_type.element_type
    elements: List[str] = []
    for element in value:
        text = _scalar_text(element_type, element)
        # sets on the wire must not contain duplicates
        if text not in elements:
            elements.append(text)
    return elements


def encode_value(attr_type: AttributeType, value: Any) -> TypedValue:
    """Wrap a native value as a TypedValue of the given type."""
    attr_type = AttributeType(attr_type)
    if attr_type.is_set:
        return {attr_type.value: _set_elements(attr_type, value)}
    if attr_type is AttributeType.BINARY:
        raw = value.encode('utf-8') if isinstance(value, str) else bytes(value)
        return {attr_type.value: base64.b64encode(raw).decode('ascii')}
    return {attr_type.value: _scalar_text(attr_type, value)}


def decode_value(typed: Mapping[str, Any]) -> Any:
    """Unwrap a TypedValue according to its own tag."""
    if len(typed) != 1:
        raise ValueError(f"TypedValue must carry exactly one type tag, got {sorted(typed)}")
    tag, encoded = next(iter(typed.items()))
    try:
        attr_type = AttributeType(tag)
    except ValueError:
        logger.warning(f"Unknown type tag '{tag}' - returning raw value")
        return encoded

    if attr_type is AttributeType.NUMBER:
        return _parse_number(encoded)
    if attr_type is AttributeType.NUMBER_SET:
        return [_parse_number(element) for element in encoded]
    if attr_type is AttributeType.STRING_SET:
        return list(encoded)
    if attr_type is AttributeType.BINARY:
        return base64.b64decode(encoded)
    return encoded


def encode(schema: TableSchema, attribute: str, value: Any) -> TypedValue:
    """Encode a value using the attribute's declared type.

    Undeclared attributes are encoded as strings rather than rejected.
    """
    return encode_value(schema.attribute_type(attribute), value)


def decode(schema: TableSchema, attribute: str, typed: Mapping[str, Any]) -> Any:
    """Decode a TypedValue read from ``attribute`` of ``schema``'s table."""
    declared = schema.attributes.get(attribute)
    if declared is not None and declared.value not in typed:
        logger.debug(f"Attribute '{attribute}' of '{schema.name}' declared as {declared.value} but received {sorted(typed)}")
    return decode_value(typed)


def encode_item(schema: TableSchema, item: Mapping[str, Any]) -> Dict[str, TypedValue]:
    """Encode every attribute of an item, skipping None values."""
    return {name: encode(schema, name, value) for name, value in item.items() if value is not None}


def decode_item(schema: TableSchema, item: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
    """Decode every attribute of a wire item."""
    return {name: decode(schema, name, typed) for name, typed in item.items()}
