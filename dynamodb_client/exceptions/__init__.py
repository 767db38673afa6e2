# Base exception
from .base import DynamoDBClientError

from .domain_exceptions import (
    InvalidFilterError,
    InvalidUpdateError,
    MissingCredentialsError,
    MissingKeyError,
    RemoteError,
    SchemaViolationError,
    ThroughputExceededError,
    TransportError,
    UnknownAttributeError,
    UnknownTableError,
)

__all__ = [
    "DynamoDBClientError",

    # Local schema violations
    "InvalidFilterError",
    "InvalidUpdateError",
    "MissingKeyError",
    "SchemaViolationError",
    "UnknownAttributeError",
    "UnknownTableError",

    # Credentials
    "MissingCredentialsError",

    # Remote / transport
    "RemoteError",
    "ThroughputExceededError",
    "TransportError",
]
