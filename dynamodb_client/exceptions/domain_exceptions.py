"""
Domain-Specific Exceptions for the DynamoDB Client

All exceptions extend DynamoDBClientError. They fall into two groups:

1. Local errors, raised immediately and never sent over the wire:
   schema violations and missing credentials.
2. Remote/transport errors, produced by the retrying transport. These are
   captured into ``OperationResult.error`` and ``DynamoDBClient.last_error``
   and only raised when ``raise_on_error`` is enabled.
"""

from typing import Any, Iterable, Optional

from .base import DynamoDBClientError


# =============================================================================
# Schema Violations (local, always raised)
# =============================================================================

class SchemaViolationError(DynamoDBClientError):
    """Raised when a call does not fit the declared table schema.

    Used for:
    - Undeclared tables or attributes
    - Missing hash/range key values
    - Updates of key attributes
    - Query filters on non-key attributes
    """

    def __init__(self, message: str, table_name: Optional[str] = None, operation: Optional[str] = None):
        self.table_name = table_name
        self.operation = operation
        super().__init__(message, context={'table_name': table_name, 'operation': operation})


class UnknownTableError(SchemaViolationError):
    """Raised when an operation names a table without a schema definition."""

    def __init__(self, table_name: str, operation: Optional[str] = None):
        super().__init__(f"Table '{table_name}' not defined", table_name, operation)


class UnknownAttributeError(SchemaViolationError):
    """Raised when an operation references attributes missing from the schema."""

    def __init__(self, table_name: str, attributes: Iterable[str], operation: Optional[str] = None):
        self.attributes = sorted(attributes)
        super().__init__(f"Invalid keys: {', '.join(self.attributes)}", table_name, operation)


class MissingKeyError(SchemaViolationError):
    """Raised when a hash or range key value is required but absent."""

    def __init__(self, table_name: str, key_name: str, key_kind: str = "Hash", operation: Optional[str] = None):
        self.key_name = key_name
        self.key_kind = key_kind
        super().__init__(f"Missing value for {key_kind} Key '{key_name}'", table_name, operation)


class InvalidUpdateError(SchemaViolationError):
    """Raised when an update targets a key attribute or mismatches its type."""

    def __init__(self, message: str, table_name: Optional[str] = None, attribute: Optional[str] = None):
        self.attribute = attribute
        super().__init__(message, table_name, "update_item")


class InvalidFilterError(SchemaViolationError):
    """Raised when a filter uses keys the operation cannot filter on."""

    def __init__(self, message: str, table_name: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message, table_name, operation)


# =============================================================================
# Credentials
# =============================================================================

class MissingCredentialsError(DynamoDBClientError):
    """Raised when a request must be signed but no valid session credentials exist.

    The token endpoint was unreachable or answered with an envelope lacking the
    nested credentials record. No stale token is ever substituted.
    """

    def __init__(self, message: str = "No valid session credentials available", original_error: Optional[Exception] = None, token_url: Optional[str] = None):
        super().__init__(message, original_error, {'token_url': token_url})


# =============================================================================
# Remote and Transport Errors (captured, raised only in strict mode)
# =============================================================================

class RemoteError(DynamoDBClientError):
    """Raised for store-side exceptions reported through the ``__type`` envelope.

    Never retried.
    """

    def __init__(self, error_type: str, message: str, operation: Optional[str] = None, status_code: Optional[int] = None, payload: Optional[Any] = None):
        self.remote_type = error_type
        self.operation = operation
        self.status_code = status_code
        self.payload = payload
        super().__init__(message, context={'operation': operation, 'remote_type': error_type, 'status_code': status_code})


class ThroughputExceededError(RemoteError):
    """Raised when provisioned throughput stays exceeded after every retry attempt."""

    def __init__(self, message: str, operation: Optional[str] = None, attempts: Optional[int] = None, status_code: Optional[int] = None, payload: Optional[Any] = None):
        self.attempts = attempts
        super().__init__("ProvisionedThroughputExceededException", message, operation, status_code, payload)
        if attempts is not None:
            self.context['attempts'] = attempts


class TransportError(DynamoDBClientError):
    """Raised when no response arrived or the body was not valid JSON."""

    def __init__(self, message: str, operation: Optional[str] = None, original_error: Optional[Exception] = None):
        self.operation = operation
        super().__init__(message, original_error, {'operation': operation})
