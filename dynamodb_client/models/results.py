"""
Result types returned by the client.

Operations never hand back bare values. An OperationResult carries either the
value of a successful call or the error that stopped it, so callers can
inspect failures without relying on a shared last-error slot.
"""

from typing import Any, Dict, List, NamedTuple, Optional

from ..exceptions import DynamoDBClientError

ContinuationKey = Dict[str, Any]


class PageResult(NamedTuple):
    """Result of a query or scan.

    Attributes:
        count: Number of matching items (summed over pages)
        items: Decoded items in page order (empty for count requests)
        last_key: Continuation key to resume from, or None when exhausted
    """

    count: int
    items: List[Dict[str, Any]]
    last_key: Optional[ContinuationKey]


class OperationResult(NamedTuple):
    """Success value or captured error of one client operation."""

    value: Any = None
    error: Optional[DynamoDBClientError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value, raising the captured error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: Any = True) -> 'OperationResult':
        return cls(value=value)

    @classmethod
    def failure(cls, error: DynamoDBClientError) -> 'OperationResult':
        return cls(error=error)
