"""
Expression building.

Turns the simplified caller syntax into the structured wire shapes of the
``DynamoDB_20111205`` API:

- keys:              ``{"HashKeyElement": tv, "RangeKeyElement": tv}``
- expected values:   ``{"attr": {"Value": tv, "Exists": bool}}``
- attribute updates: ``{"attr": {"Action": "PUT"|"ADD"|"DELETE", "Value": tv}}``
- range conditions / scan filters:
                     ``{"AttributeValueList": [tv, ...], "ComparisonOperator": "EQ"}``

Filter syntax accepted from callers::

    {"id": 5}                               # equals
    {"ts": {"gt": 100}}                     # operator with one operand
    {"ts": {"BETWEEN": [100, 200]}}         # operator with several operands
    {"tags": ["a", "b"]}                    # IN (scan filters only)
    {"note": {"NOT_NULL": None}}            # operator without operands
"""

from typing import Any, Dict, Mapping, Optional, Tuple

from ..exceptions import InvalidFilterError, InvalidUpdateError, MissingKeyError, SchemaViolationError
from ..models.schema import AttributeType, TableSchema
from .marshaller import encode, encode_item, encode_value

# update markers accepted inside an update map
ADD_MARKER = "add"
DELETE_MARKER = "delete"

NO_OPERAND_OPERATORS = frozenset({"NULL", "NOT_NULL"})


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _has_value(value: Any) -> bool:
    return value is not None and not (isinstance(value, (str, bytes)) and len(value) == 0)


# =============================================================================
# Keys
# =============================================================================

def build_key(schema: TableSchema, values: Mapping[str, Any], operation: Optional[str] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Extract the typed key of a single item.

    Args:
        schema: Table schema
        values: Caller map holding at least the key attributes
        operation: Operation name, for error messages

    Returns:
        (wire key, remaining caller entries without the key attributes)

    Raises:
        MissingKeyError: If the hash key, or a declared range key, has no value
    """
    remaining = dict(values)

    hash_value = remaining.pop(schema.hash_key, None)
    if not _has_value(hash_value):
        raise MissingKeyError(schema.name, schema.hash_key, "Hash", operation)
    key = {"HashKeyElement": encode(schema, schema.hash_key, hash_value)}

    if schema.range_key:
        range_value = remaining.pop(schema.range_key, None)
        if not _has_value(range_value):
            raise MissingKeyError(schema.name, schema.range_key, "Range", operation)
        key["RangeKeyElement"] = encode(schema, schema.range_key, range_value)

    return key, remaining


def build_exact_key(schema: TableSchema, values: Mapping[str, Any], operation: Optional[str] = None) -> Dict[str, Any]:
    """Like build_key, but the caller map may hold nothing besides the key attributes.

    Raises:
        InvalidFilterError: If other attributes are present
    """
    key, rest = build_key(schema, values, operation)
    if rest:
        raise InvalidFilterError(f"Key of {operation} may only hold hash and range key, got {', '.join(sorted(rest))}", schema.name, operation)
    return key


def build_start_key(schema: TableSchema, start_key: Mapping[str, Any]) -> Dict[str, Any]:
    """Encode a continuation key for ``ExclusiveStartKey``."""
    exclusive: Dict[str, Any] = {}
    if start_key.get(schema.hash_key) is not None:
        exclusive["HashKeyElement"] = encode(schema, schema.hash_key, start_key[schema.hash_key])
    if schema.range_key and start_key.get(schema.range_key) is not None:
        exclusive["RangeKeyElement"] = encode(schema, schema.range_key, start_key[schema.range_key])
    return exclusive


# =============================================================================
# Whole items
# =============================================================================

def build_item(schema: TableSchema, item: Mapping[str, Any], operation: Optional[str] = None) -> Dict[str, Any]:
    """Encode a full item, rejecting sequences or maps for scalar attributes."""
    for attribute, value in item.items():
        attr_type = schema.attribute_type(attribute)
        if (_is_sequence(value) or isinstance(value, Mapping)) and not attr_type.is_set:
            raise SchemaViolationError(f"Cannot store a sequence in {attr_type.value} attribute '{attribute}'", schema.name, operation)
    return encode_item(schema, item)


# =============================================================================
# Conditional writes
# =============================================================================

def build_expected(schema: TableSchema, where: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Build the ``Expected`` clause of a conditional write.

    Each entry is either a bare value ("currently equals"), a bool flag
    ("exists" / "does not exist") or a mapping with ``value`` and/or
    ``exists``.
    """
    expected: Dict[str, Dict[str, Any]] = {}
    for attribute, clause in where.items():
        if isinstance(clause, bool):
            clause = {"exists": clause}
        elif not isinstance(clause, Mapping):
            clause = {"value": clause}

        current: Dict[str, Any] = {}
        if clause.get("value") is not None:
            current["Value"] = encode(schema, attribute, clause["value"])
        if clause.get("exists") is not None:
            current["Exists"] = bool(clause["exists"])
        if current:
            expected[attribute] = current
    return expected


# =============================================================================
# Partial updates
# =============================================================================

def build_attribute_updates(schema: TableSchema, update: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Build the ``AttributeUpdates`` clause of an UpdateItem call.

    - ``None``               -> DELETE the attribute
    - scalar                 -> PUT (scalar attributes)
    - sequence               -> PUT, replacing the set (set attributes)
    - ``{"add": values}``    -> ADD to a set, or increment a number
    - ``{"delete": values}`` -> DELETE those elements from a set

    Raises:
        InvalidUpdateError: For key attributes or values not fitting the type
    """
    actions: Dict[str, Dict[str, Any]] = {}
    for attribute, value in update.items():
        if schema.is_key(attribute):
            raise InvalidUpdateError(f"Cannot update key attribute '{attribute}'", schema.name, attribute)

        attr_type = schema.attribute_type(attribute)

        if value is None:
            actions[attribute] = {"Action": "DELETE"}
            continue

        if isinstance(value, Mapping):
            if set(value) == {ADD_MARKER}:
                if not (attr_type.is_set or attr_type is AttributeType.NUMBER):
                    raise InvalidUpdateError(f"ADD requires a set or number attribute, '{attribute}' is {attr_type.value}", schema.name, attribute)
                if not attr_type.is_set and (_is_sequence(value[ADD_MARKER]) or isinstance(value[ADD_MARKER], Mapping)):
                    raise InvalidUpdateError(f"ADD to number attribute '{attribute}' takes a single number", schema.name, attribute)
                actions[attribute] = {"Action": "ADD", "Value": encode(schema, attribute, value[ADD_MARKER])}
                continue
            if set(value) == {DELETE_MARKER}:
                if not attr_type.is_set:
                    raise InvalidUpdateError(f"Deleting elements requires a set attribute, '{attribute}' is {attr_type.value}", schema.name, attribute)
                actions[attribute] = {"Action": "DELETE", "Value": encode(schema, attribute, value[DELETE_MARKER])}
                continue
            raise InvalidUpdateError(f"Unknown update marker(s) {sorted(value)} for '{attribute}'", schema.name, attribute)

        if _is_sequence(value) and not attr_type.is_set:
            raise InvalidUpdateError(f"Cannot store a sequence in {attr_type.value} attribute '{attribute}'", schema.name, attribute)

        actions[attribute] = {"Action": "PUT", "Value": encode(schema, attribute, value)}
    return actions


# =============================================================================
# Query and scan conditions
# =============================================================================

def build_comparison(schema: TableSchema, attribute: str, clause: Any, sequence_operator: str = "EQ") -> Dict[str, Any]:
    """Build one ``{AttributeValueList, ComparisonOperator}`` condition.

    A bare scalar means EQ. A bare sequence uses ``sequence_operator``. Every
    operand is typed individually, as a scalar of the attribute's element type.
    """
    if isinstance(clause, Mapping):
        if len(clause) != 1:
            raise InvalidFilterError(f"Filter on '{attribute}' must hold exactly one operator, got {sorted(clause)}", schema.name)
        operator, operands = next(iter(clause.items()))
    elif _is_sequence(clause):
        operator, operands = sequence_operator, clause
    else:
        operator, operands = "EQ", clause

    operator = str(operator).upper()
    if operator in NO_OPERAND_OPERATORS:
        return {"ComparisonOperator": operator}

    if not _is_sequence(operands):
        operands = [operands]
    element_type = schema.attribute_type(attribute).element_type
    return {
        "AttributeValueList": [encode_value(element_type, operand) for operand in operands],
        "ComparisonOperator": operator,
    }


def build_query_conditions(schema: TableSchema, key_filter: Mapping[str, Any]) -> Dict[str, Any]:
    """Build ``HashKeyValue`` and the optional ``RangeKeyCondition`` of a query.

    Raises:
        MissingKeyError: If the hash key value is missing
        InvalidFilterError: If the filter names attributes other than the keys
    """
    remaining = dict(key_filter)
    hash_value = remaining.pop(schema.hash_key, None)
    if not _has_value(hash_value):
        raise MissingKeyError(schema.name, schema.hash_key, "Hash", "query_items")

    conditions: Dict[str, Any] = {"HashKeyValue": encode(schema, schema.hash_key, hash_value)}

    if schema.range_key and schema.range_key in remaining:
        clause = remaining.pop(schema.range_key)
        conditions["RangeKeyCondition"] = build_comparison(schema, schema.range_key, clause)

    if remaining:
        raise InvalidFilterError(
            f"Cannot use keys {', '.join(sorted(remaining))} in filter - only hash and range key allowed",
            schema.name,
            "query_items",
        )
    return conditions


def build_scan_filter(schema: TableSchema, scan_filter: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Build a ``ScanFilter``; any declared attribute may be compared."""
    schema.check_attributes(scan_filter.keys(), "scan_items")
    return {
        attribute: build_comparison(schema, attribute, clause, sequence_operator="IN")
        for attribute, clause in scan_filter.items()
    }

