from typing import Any, Dict, Optional


class DynamoDBClientError(Exception):
    """Base exception for all DynamoDB client errors.

    Attributes:
        message: Human-readable error message
        original_error: The exception that caused this error, if any
        context: Extra details (table, operation, attribute, ...) rendered into str()
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.original_error = original_error
        self.context = {k: v for k, v in (context or {}).items() if v is not None}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} (Context: {context_str})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, original_error={self.original_error!r}, context={self.context!r})"
