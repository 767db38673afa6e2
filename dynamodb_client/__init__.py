from .client import DynamoDBClient
from .config import DynamoDBConfig
from .core import ItemCache
from .exceptions import (
    DynamoDBClientError,
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
from .models import (
    AttributeType,
    OperationResult,
    PageResult,
    SessionCredentials,
    TableSchema,
)

__version__ = "1.0.0"
__all__ = [
    "DynamoDBClient",
    "DynamoDBConfig",
    "ItemCache",
    "AttributeType",
    "TableSchema",
    "SessionCredentials",
    "OperationResult",
    "PageResult",
    "DynamoDBClientError",
    "SchemaViolationError",
    "UnknownTableError",
    "UnknownAttributeError",
    "MissingKeyError",
    "InvalidUpdateError",
    "InvalidFilterError",
    "MissingCredentialsError",
    "RemoteError",
    "ThroughputExceededError",
    "TransportError",
]
