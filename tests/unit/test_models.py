"""
Tests for schema, result and exception types.
"""

import pytest

from dynamodb_client.core.cache import ItemCache, cache_key
from dynamodb_client.exceptions import (
    DynamoDBClientError,
    MissingKeyError,
    RemoteError,
    SchemaViolationError,
    ThroughputExceededError,
    UnknownAttributeError,
    UnknownTableError,
)
from dynamodb_client.models import AttributeType, OperationResult, TableSchema


class TestTableSchema:
    """Declared table schemas."""

    def test_from_definition(self, users_schema):
        assert users_schema.name == "users"
        assert users_schema.hash_key == "id"
        assert users_schema.range_key is None
        assert users_schema.attributes["tags"] is AttributeType.STRING_SET
        assert users_schema.key_names == ["id"]

    def test_key_names_with_range(self, events_schema):
        assert events_schema.key_names == ["user_id", "ts"]
        assert events_schema.is_key("ts")
        assert not events_schema.is_key("kind")

    def test_undeclared_hash_key_rejected(self):
        with pytest.raises(ValueError, match="Hash key 'id'"):
            TableSchema(name="t", hash_key="id", attributes={"name": "S"})

    def test_undeclared_range_key_rejected(self):
        with pytest.raises(ValueError, match="Range key 'ts'"):
            TableSchema(name="t", hash_key="id", range_key="ts", attributes={"id": "N"})

    def test_unknown_type_tag_rejected(self):
        with pytest.raises(ValueError):
            TableSchema(name="t", hash_key="id", attributes={"id": "X"})

    def test_attribute_type_falls_back_to_string(self, users_schema):
        assert users_schema.attribute_type("visits") is AttributeType.NUMBER
        assert users_schema.attribute_type("nickname") is AttributeType.STRING

    def test_check_attributes(self, users_schema):
        assert users_schema.check_attributes(["id", "name"]) == ["id", "name"]

        with pytest.raises(UnknownAttributeError) as exc_info:
            users_schema.check_attributes(["id", "zeta", "alpha"], "get_item")

        assert exc_info.value.attributes == ["alpha", "zeta"]
        assert exc_info.value.message == "Invalid keys: alpha, zeta"

    def test_schema_is_frozen(self, users_schema):
        with pytest.raises(ValueError):
            users_schema.hash_key = "name"

    def test_set_type_properties(self):
        assert AttributeType.NUMBER_SET.is_set
        assert AttributeType.NUMBER_SET.element_type is AttributeType.NUMBER
        assert not AttributeType.BINARY.is_set
        assert AttributeType.BINARY.element_type is AttributeType.BINARY


class TestOperationResult:
    """Success/failure result wrapper."""

    def test_success(self):
        result = OperationResult.success({"id": 1})

        assert result.ok
        assert result.unwrap() == {"id": 1}

    def test_success_defaults_to_true(self):
        assert OperationResult.success().value is True

    def test_failure_unwrap_raises(self):
        error = RemoteError("ValidationException", "bad", "PutItem")
        result = OperationResult.failure(error)

        assert not result.ok
        with pytest.raises(RemoteError):
            result.unwrap()


class TestExceptions:
    """Exception hierarchy and rendering."""

    def test_hierarchy(self):
        assert issubclass(UnknownTableError, SchemaViolationError)
        assert issubclass(SchemaViolationError, DynamoDBClientError)
        assert issubclass(ThroughputExceededError, RemoteError)

    def test_str_includes_context(self):
        error = MissingKeyError("users", "id", "Hash", "get_item")

        assert str(error) == "Missing value for Hash Key 'id' (Context: table_name=users, operation=get_item)"

    def test_none_context_values_are_dropped(self):
        error = UnknownTableError("nope")

        assert str(error) == "Table 'nope' not defined (Context: table_name=nope)"

    def test_throughput_attempts_in_context(self):
        error = ThroughputExceededError("Slow down", "Query", attempts=3)

        assert error.remote_type == "ProvisionedThroughputExceededException"
        assert error.context["attempts"] == 3


class TestCacheKey:
    """Cache keys and the cache protocol."""

    def test_stable_across_key_order(self):
        assert cache_key("events", {"user_id": 1, "ts": 2}) == cache_key("events", {"ts": 2, "user_id": 1})

    def test_differs_per_table(self):
        assert cache_key("users", {"id": 1}) != cache_key("admins", {"id": 1})

    def test_is_md5_hex(self):
        assert len(cache_key("users", {"id": 1})) == 32

    def test_protocol(self):
        class DictCache:
            def __init__(self):
                self.data = {}

            def get(self, key):
                return self.data.get(key)

            def set(self, key, value, ttl=None):
                self.data[key] = value

        assert isinstance(DictCache(), ItemCache)
