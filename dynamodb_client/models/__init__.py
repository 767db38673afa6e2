from .credentials import SessionCredentials
from .results import ContinuationKey, OperationResult, PageResult
from .schema import DEFAULT_ATTRIBUTE_TYPE, AttributeType, TableSchema

__all__ = [
    # Schema
    "AttributeType",
    "DEFAULT_ATTRIBUTE_TYPE",
    "TableSchema",

    # Credentials
    "SessionCredentials",

    # Results
    "ContinuationKey",
    "OperationResult",
    "PageResult",
]
