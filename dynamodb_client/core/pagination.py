"""
Pagination over Query and Scan.

The store ends every page with a ``LastEvaluatedKey`` while more results
remain. Exhaustive collection follows these keys in a loop and remembers a
fingerprint of each key it has resumed from; a key seen twice ends the loop,
so a misbehaving endpoint cannot keep the client paging forever.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Set

from ..models.results import ContinuationKey, OperationResult, PageResult
from ..models.schema import TableSchema
from .marshaller import decode, decode_item
from .transport import RetryingTransport

logger = logging.getLogger(__name__)


def continuation_key(schema: TableSchema, last_evaluated: Optional[Mapping[str, Any]]) -> Optional[ContinuationKey]:
    """Decode a wire ``LastEvaluatedKey`` into ``{key name: raw value}``."""
    if not last_evaluated:
        return None
    key: ContinuationKey = {}
    if "HashKeyElement" in last_evaluated:
        key[schema.hash_key] = decode(schema, schema.hash_key, last_evaluated["HashKeyElement"])
    if schema.range_key and "RangeKeyElement" in last_evaluated:
        key[schema.range_key] = decode(schema, schema.range_key, last_evaluated["RangeKeyElement"])
    return key or None


def fingerprint(key: Mapping[str, Any]) -> str:
    """Canonical form of a continuation key: sorted ``name=value`` pairs."""
    return ";".join(f"{name}={key[name]}" for name in sorted(key))


class Paginator:
    """Drives Query/Scan calls page by page through the transport."""

    def __init__(self, transport: RetryingTransport):
        self.transport = transport

    def collect(self, operation: str, payload: Dict[str, Any], schema: TableSchema, exhaustive: bool = False) -> OperationResult:
        """Fetch one page, or every page when ``exhaustive`` is set.

        Args:
            operation: ``Query`` or ``Scan``
            payload: Request body of the first page
            schema: Schema used to decode items and continuation keys
            exhaustive: Follow continuation keys until the result set ends

        Returns:
            OperationResult holding a PageResult, or the error of the failing page
        """
        total = 0
        items: List[Dict[str, Any]] = []
        seen: Set[str] = set()
        payload = dict(payload)
        pages = 0

        while True:
            response = self.transport.send(operation, payload)
            if not response.ok:
                return OperationResult.failure(response.error)
            pages += 1

            data = response.data
            page_items = [decode_item(schema, item) for item in data.get("Items", [])]
            items.extend(page_items)
            total += int(data.get("Count", len(page_items)))

            last_evaluated = data.get("LastEvaluatedKey")
            last_key = continuation_key(schema, last_evaluated)
            if not exhaustive or last_key is None:
                break

            marker = fingerprint(last_key)
            if marker in seen:
                logger.warning(f"{operation} on {payload.get('TableName')} returned continuation key {marker} twice - stopping after {pages} pages")
                break
            seen.add(marker)
            payload["ExclusiveStartKey"] = last_evaluated

        logger.debug(f"{operation} collected {total} item(s) in {pages} page(s)")
        return OperationResult.success(PageResult(total, items, last_key))
