"""
Test configuration and fixtures for the DynamoDB client.

HTTP is stubbed at the requests.Session level: ``session.get`` answers the
session token endpoint and ``session.post`` answers API calls.
"""

import sys
from pathlib import Path
from unittest.mock import Mock

# Add parent directory to path so we can import dynamodb_client and tests.helpers
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
import requests

from dynamodb_client import DynamoDBClient, DynamoDBConfig, TableSchema
from tests.helpers.http_stubs import token_response


@pytest.fixture
def config():
    """Client configuration with static long-term keys and a namespace."""
    return DynamoDBConfig(
        aws_access_key_id="AKIDLONGTERM",
        aws_secret_access_key="long-term-secret",
        region_name="us-east-1",
        host="dynamodb.test.local",
        namespace="test_",
        max_retries=2,
        retry_delay_seconds=0.0,
        raise_on_error=False,
        enable_debug_logging=False,
    )


@pytest.fixture
def session():
    """Mock HTTP session whose token endpoint always issues credentials."""
    session = Mock(spec=requests.Session)
    session.get.return_value = token_response()
    return session


@pytest.fixture
def users_schema():
    return TableSchema.from_definition("users", {
        "hash_key": "id",
        "attributes": {"id": "N", "name": "S", "tags": "SS", "scores": "NS", "visits": "N", "avatar": "B"},
    })


@pytest.fixture
def events_schema():
    return TableSchema(
        name="events",
        hash_key="user_id",
        range_key="ts",
        attributes={"user_id": "N", "ts": "N", "kind": "S"},
    )


@pytest.fixture
def tables(users_schema, events_schema):
    """Schema definitions: a hash-key table given as a plain dict and a hash+range table."""
    return {
        "users": {
            "hash_key": users_schema.hash_key,
            "attributes": {name: attr_type.value for name, attr_type in users_schema.attributes.items()},
        },
        "events": events_schema,
    }


@pytest.fixture
def client(tables, config, session):
    """Client wired to the mock session."""
    return DynamoDBClient(tables, config=config, session=session)
