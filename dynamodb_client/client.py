"""
DynamoDB Client

Caller-facing operations over the protocol engine in ``core``. Tables are
declared once with their key/attribute schema; every operation then builds
its wire payload from plain Python values and decodes the answer back.

Every operation returns an OperationResult. Local mistakes (unknown tables or
attributes, missing keys, key updates, invalid filters) raise immediately.
Remote and transport failures are returned in ``OperationResult.error`` and
remembered in ``last_error``, or raised when ``raise_on_error`` is configured.

Example:
    client = DynamoDBClient(
        tables={
            "users": {
                "hash_key": "id",
                "attributes": {"id": "N", "name": "S", "tags": "SS"},
            }
        },
        config=DynamoDBConfig(namespace="prod_"),
    )
    client.put_item("users", {"id": 5, "name": "bla"})
    user = client.get_item("users", {"id": 5}).unwrap()
"""

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import requests

from .config import DynamoDBConfig
from .core.cache import ItemCache, cache_key
from .core.credentials import CredentialManager
from .core.expressions import (
    build_attribute_updates,
    build_exact_key,
    build_expected,
    build_item,
    build_key,
    build_query_conditions,
    build_scan_filter,
    build_start_key,
)
from .core.marshaller import decode_item
from .core.pagination import Paginator
from .core.signer import RequestSigner
from .core.transport import RetryingTransport
from .exceptions import (
    DynamoDBClientError,
    InvalidFilterError,
    InvalidUpdateError,
    RemoteError,
    ThroughputExceededError,
    UnknownTableError,
)
from .models import OperationResult, TableSchema

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "dynamodb_client"

UPDATE_RETURN_MODES = frozenset({"ALL_OLD", "UPDATED_OLD", "ALL_NEW", "UPDATED_NEW"})

TableDefinition = Union[TableSchema, Mapping[str, Any]]


class DynamoDBClient:
    """Typed client for one set of declared tables."""

    def __init__(
        self,
        tables: Mapping[str, TableDefinition],
        config: Optional[DynamoDBConfig] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[ItemCache] = None,
    ):
        """Initialize the client.

        Args:
            tables: Table name -> TableSchema or ``{hash_key, range_key, attributes}`` mapping
            config: Client configuration (defaults to the environment)
            session: HTTP session shared by API and token requests
            cache: Optional read-through cache for get_item
        """
        self.config = config or DynamoDBConfig.from_env()
        self.tables: Dict[str, TableSchema] = {
            name: definition if isinstance(definition, TableSchema) else TableSchema.from_definition(name, definition)
            for name, definition in tables.items()
        }
        self.cache = cache
        self.last_error: Optional[DynamoDBClientError] = None

        if self.config.enable_debug_logging:
            logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)

        self.session = session or requests.Session()
        self.signer = RequestSigner(self.config.host, self.config.region_name)
        self.credential_manager = CredentialManager(
            self.signer,
            self.config.aws_access_key_id,
            self.config.aws_secret_access_key,
            self.config.security_token_url,
            session=self.session,
            timeout_seconds=self.config.timeout_seconds,
        )
        self.transport = RetryingTransport(
            self.credential_manager,
            self.signer,
            self.config.endpoint_url,
            session=self.session,
            max_retries=self.config.max_retries,
            retry_delay_seconds=self.config.retry_delay_seconds,
            timeout_seconds=self.config.timeout_seconds,
        )
        self.paginator = Paginator(self.transport)

    # =========================================================================
    # Helpers
    # =========================================================================

    def schema(self, table: str, operation: Optional[str] = None) -> TableSchema:
        """Schema of a declared table.

        Raises:
            UnknownTableError: If the table was not declared
        """
        try:
            return self.tables[table]
        except KeyError:
            raise UnknownTableError(table, operation) from None

    def _finish(self, result: OperationResult) -> OperationResult:
        if result.error is not None:
            self.last_error = result.error
            logger.debug(f"Operation failed: {result.error}")
            if self.config.raise_on_error:
                raise result.error
        return result

    def _call(self, operation: str, payload: Dict[str, Any], on_success: Callable[[Dict[str, Any]], Any]) -> OperationResult:
        response = self.transport.send(operation, payload)
        if not response.ok:
            return self._finish(OperationResult.failure(response.error))
        return self._finish(OperationResult.success(on_success(response.data)))

    def _cache_get(self, table: str, key: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        if self.cache is None:
            return None
        return self.cache.get(cache_key(table, key))

    def _cache_set(self, table: str, key: Mapping[str, Any], item: Optional[Dict[str, Any]]) -> None:
        if self.cache is not None:
            self.cache.set(cache_key(table, key), item, self.config.cache_ttl_seconds)

    def _describe(self, description: Mapping[str, Any]) -> Dict[str, Any]:
        key_schema = description.get("KeySchema", {})
        hash_element = key_schema.get("HashKeyElement", {})
        range_element = key_schema.get("RangeKeyElement", {})
        throughput = description.get("ProvisionedThroughput", {})
        wire_name = description.get("TableName", "")
        return {
            "name": self.config.strip_namespace(wire_name) or wire_name,
            "status": description.get("TableStatus"),
            "created": description.get("CreationDateTime"),
            "read_amount": throughput.get("ReadCapacityUnits"),
            "write_amount": throughput.get("WriteCapacityUnits"),
            "hash_key": hash_element.get("AttributeName"),
            "hash_key_type": hash_element.get("AttributeType"),
            "range_key": range_element.get("AttributeName"),
            "range_key_type": range_element.get("AttributeType"),
            "item_count": description.get("ItemCount"),
            "size": description.get("TableSizeBytes"),
        }

    @staticmethod
    def _key_values(schema: TableSchema, values: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: values[name] for name in schema.key_names if name in values}

    # =========================================================================
    # Table management
    # =========================================================================

    def create_table(self, table: str, read_amount: int = 10, write_amount: int = 5) -> OperationResult:
        """Create a declared table with the given provisioned throughput.

        Returns:
            OperationResult with the reshaped table description
        """
        schema = self.schema(table, "create_table")
        key_schema = {
            "HashKeyElement": {
                "AttributeName": schema.hash_key,
                "AttributeType": schema.attribute_type(schema.hash_key).value,
            }
        }
        if schema.range_key:
            key_schema["RangeKeyElement"] = {
                "AttributeName": schema.range_key,
                "AttributeType": schema.attribute_type(schema.range_key).value,
            }
        payload = {
            "TableName": self.config.get_table_name(table),
            "KeySchema": key_schema,
            "ProvisionedThroughput": {
                "ReadCapacityUnits": int(read_amount),
                "WriteCapacityUnits": int(write_amount),
            },
        }
        return self._call("CreateTable", payload, lambda data: self._describe(data.get("TableDescription", {})))

    def delete_table(self, table: str) -> OperationResult:
        """Delete a declared table."""
        self.schema(table, "delete_table")
        payload = {"TableName": self.config.get_table_name(table)}
        return self._call("DeleteTable", payload, lambda data: self._describe(data.get("TableDescription", {})))

    def describe_table(self, table: str) -> OperationResult:
        """Describe a declared table (status, keys, throughput, item count, size)."""
        self.schema(table, "describe_table")
        payload = {"TableName": self.config.get_table_name(table)}
        return self._call("DescribeTable", payload, lambda data: self._describe(data.get("Table", {})))

    def update_table(self, table: str, read_amount: int, write_amount: int) -> OperationResult:
        """Change the provisioned throughput of a declared table."""
        self.schema(table, "update_table")
        payload = {
            "TableName": self.config.get_table_name(table),
            "ProvisionedThroughput": {
                "ReadCapacityUnits": int(read_amount),
                "WriteCapacityUnits": int(write_amount),
            },
        }
        return self._call("UpdateTable", payload, lambda data: self._describe(data.get("TableDescription", {})))

    def exists_table(self, table: str) -> OperationResult:
        """Whether a declared table exists remotely.

        A ResourceNotFoundException is an answer here, not a failure.
        """
        self.schema(table, "exists_table")
        response = self.transport.send("DescribeTable", {"TableName": self.config.get_table_name(table)})
        if response.ok:
            return OperationResult.success("Table" in response.data)
        if isinstance(response.error, RemoteError) and response.error.remote_type == "ResourceNotFoundException":
            return OperationResult.success(False)
        return self._finish(OperationResult.failure(response.error))

    def list_tables(self) -> OperationResult:
        """Names of all remote tables inside the configured namespace."""
        names: List[str] = []
        payload: Dict[str, Any] = {}
        while True:
            response = self.transport.send("ListTables", payload)
            if not response.ok:
                return self._finish(OperationResult.failure(response.error))
            for wire_name in response.data.get("TableNames", []):
                name = self.config.strip_namespace(wire_name)
                if name is not None:
                    names.append(name)
            last_name = response.data.get("LastEvaluatedTableName")
            if not last_name or last_name == payload.get("ExclusiveStartTableName"):
                break
            payload = {"ExclusiveStartTableName": last_name}
        return self._finish(OperationResult.success(names))

    # =========================================================================
    # Single items
    # =========================================================================

    def put_item(self, table: str, item: Mapping[str, Any], where: Optional[Mapping[str, Any]] = None, return_old: bool = False) -> OperationResult:
        """Write an item, optionally only if ``where`` holds for the stored item.

        Args:
            table: Declared table name
            item: Attribute values, including the key attributes
            where: Expected values/existence flags, e.g. ``{"attr": {"exists": False}}``
            return_old: Return the replaced item

        Returns:
            OperationResult with the old item (or None) if ``return_old``, else True
        """
        schema = self.schema(table, "put_item")
        build_key(schema, item, "put_item")
        schema.check_attributes(item.keys(), "put_item")

        payload: Dict[str, Any] = {
            "TableName": self.config.get_table_name(table),
            "Item": build_item(schema, item, "put_item"),
        }
        if where:
            schema.check_attributes(where.keys(), "put_item")
            payload["Expected"] = build_expected(schema, where)
        if return_old:
            payload["ReturnValues"] = "ALL_OLD"

        result = self._call("PutItem", payload, lambda data: self._returned_attributes(schema, data, return_old))
        if result.ok:
            key = self._key_values(schema, item)
            logger.info(f"Put item in {table}: {key}")
            self._cache_set(table, key, decode_item(schema, payload["Item"]))
        return result

    def update_item(
        self,
        table: str,
        key: Mapping[str, Any],
        update: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
        return_mode: Optional[str] = None,
    ) -> OperationResult:
        """Partially update an item.

        Args:
            table: Declared table name
            key: Hash (and range) key values
            update: Attribute -> new value; None deletes, ``{"add": [...]}`` adds
            where: Expected values/existence flags
            return_mode: ALL_OLD, UPDATED_OLD, ALL_NEW or UPDATED_NEW

        Returns:
            OperationResult with the returned attributes if ``return_mode``, else True

        Raises:
            InvalidUpdateError: For key attributes or an unknown return mode
        """
        schema = self.schema(table, "update_item")
        wire_key = build_exact_key(schema, key, "update_item")
        schema.check_attributes(update.keys(), "update_item")

        payload: Dict[str, Any] = {
            "TableName": self.config.get_table_name(table),
            "Key": wire_key,
            "AttributeUpdates": build_attribute_updates(schema, update),
        }
        if where:
            schema.check_attributes(where.keys(), "update_item")
            payload["Expected"] = build_expected(schema, where)
        if return_mode:
            mode = return_mode.upper()
            if mode not in UPDATE_RETURN_MODES:
                raise InvalidUpdateError(f"Invalid return mode '{return_mode}', expected one of {sorted(UPDATE_RETURN_MODES)}", table)
            payload["ReturnValues"] = mode

        result = self._call("UpdateItem", payload, lambda data: self._returned_attributes(schema, data, bool(return_mode)))
        if result.ok:
            logger.info(f"Updated item in {table}: {dict(key)}")
            self._cache_set(table, self._key_values(schema, key), None)
        return result

    def get_item(self, table: str, key: Mapping[str, Any], attributes: Optional[Sequence[str]] = None, consistent: Optional[bool] = None) -> OperationResult:
        """Read one item by its key.

        The read-through cache is consulted for full, eventually consistent reads.

        Returns:
            OperationResult with the decoded item, or None if it does not exist
        """
        schema = self.schema(table, "get_item")
        wire_key, _ = build_key(schema, key, "get_item")
        consistent = self.config.read_consistent if consistent is None else consistent
        key_values = self._key_values(schema, key)
        use_cache = not consistent and not attributes

        if use_cache:
            cached = self._cache_get(table, key_values)
            if cached is not None:
                logger.debug(f"Cache hit for {table}: {key_values}")
                return OperationResult.success(cached)

        payload: Dict[str, Any] = {
            "TableName": self.config.get_table_name(table),
            "Key": wire_key,
            "ConsistentRead": bool(consistent),
        }
        if attributes:
            payload["AttributesToGet"] = schema.check_attributes(attributes, "get_item")

        result = self._call("GetItem", payload, lambda data: decode_item(schema, data["Item"]) if data.get("Item") else None)
        if use_cache and result.ok and result.value is not None:
            self._cache_set(table, key_values, result.value)
        return result

    def delete_item(self, table: str, key: Mapping[str, Any], where: Optional[Mapping[str, Any]] = None, return_old: bool = False) -> OperationResult:
        """Delete one item, optionally only if ``where`` holds.

        Returns:
            OperationResult with the deleted item (or None) if ``return_old``, else True
        """
        schema = self.schema(table, "delete_item")
        wire_key = build_exact_key(schema, key, "delete_item")

        payload: Dict[str, Any] = {
            "TableName": self.config.get_table_name(table),
            "Key": wire_key,
        }
        if where:
            schema.check_attributes(where.keys(), "delete_item")
            payload["Expected"] = build_expected(schema, where)
        if return_old:
            payload["ReturnValues"] = "ALL_OLD"

        result = self._call("DeleteItem", payload, lambda data: self._returned_attributes(schema, data, return_old))
        if result.ok:
            logger.info(f"Deleted item from {table}: {dict(key)}")
            self._cache_set(table, self._key_values(schema, key), None)
        return result

    @staticmethod
    def _returned_attributes(schema: TableSchema, data: Mapping[str, Any], wanted: bool) -> Any:
        if not wanted:
            return True
        attributes = data.get("Attributes")
        return decode_item(schema, attributes) if attributes else None

    # =========================================================================
    # Query and scan
    # =========================================================================

    def query_items(
        self,
        table: str,
        key_filter: Mapping[str, Any],
        limit: Optional[int] = None,
        consistent: Optional[bool] = None,
        backward: bool = False,
        start_key: Optional[Mapping[str, Any]] = None,
        attributes: Optional[Sequence[str]] = None,
        count: bool = False,
        all_pages: bool = False,
    ) -> OperationResult:
        """Query items of one hash key, optionally narrowed by a range key condition.

        Args:
            table: Declared table name
            key_filter: ``{hash_key: value, range_key: scalar | {OP: operand(s)}}``
            limit: Maximum items per page
            consistent: Consistent read (defaults to the configured value)
            backward: Traverse the range key index backwards
            start_key: Continuation key of a previous page
            attributes: Only return these attributes
            count: Return counts only
            all_pages: Follow continuation keys until the result set ends

        Returns:
            OperationResult with a PageResult(count, items, last_key)
        """
        schema = self.schema(table, "query_items")
        consistent = self.config.read_consistent if consistent is None else consistent

        payload: Dict[str, Any] = {
            "TableName": self.config.get_table_name(table),
            "ConsistentRead": bool(consistent),
            "ScanIndexForward": not backward,
        }
        payload.update(build_query_conditions(schema, key_filter))
        self._add_read_options(schema, payload, "query_items", limit, start_key, attributes, count)
        return self._finish(self.paginator.collect("Query", payload, schema, exhaustive=all_pages))

    def scan_items(
        self,
        table: str,
        scan_filter: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
        start_key: Optional[Mapping[str, Any]] = None,
        attributes: Optional[Sequence[str]] = None,
        count: bool = False,
        all_pages: bool = False,
    ) -> OperationResult:
        """Scan a table, filtering on any declared attributes. Results are eventually consistent.

        Returns:
            OperationResult with a PageResult(count, items, last_key)
        """
        schema = self.schema(table, "scan_items")
        payload: Dict[str, Any] = {"TableName": self.config.get_table_name(table)}
        if scan_filter:
            payload["ScanFilter"] = build_scan_filter(schema, scan_filter)
        self._add_read_options(schema, payload, "scan_items", limit, start_key, attributes, count)
        return self._finish(self.paginator.collect("Scan", payload, schema, exhaustive=all_pages))

    @staticmethod
    def _add_read_options(schema, payload, operation, limit, start_key, attributes, count):
        if limit is not None:
            payload["Limit"] = int(limit)
        if start_key:
            schema.check_attributes(start_key.keys(), operation)
            payload["ExclusiveStartKey"] = build_start_key(schema, start_key)
        if attributes:
            payload["AttributesToGet"] = schema.check_attributes(attributes, operation)
        elif count:
            payload["Count"] = True

    # =========================================================================
    # Batches
    # =========================================================================

    def batch_get_item(self, requests_by_table: Mapping[str, Any]) -> OperationResult:
        """Read many items from several tables in one call.

        Args:
            requests_by_table: Table -> list of keys, or table ->
                ``{"keys": [...], "attributes": [...]}``

        Returns:
            OperationResult with table -> list of decoded items
        """
        request_items: Dict[str, Any] = {}
        wire_names: Dict[str, str] = {}
        for table, table_request in requests_by_table.items():
            schema = self.schema(table, "batch_get_item")
            if isinstance(table_request, Mapping):
                keys, attributes = table_request.get("keys", []), table_request.get("attributes")
            else:
                keys, attributes = table_request, None
            entry: Dict[str, Any] = {"Keys": [build_key(schema, key, "batch_get_item")[0] for key in keys]}
            if attributes:
                entry["AttributesToGet"] = schema.check_attributes(attributes, "batch_get_item")
            wire_name = self.config.get_table_name(table)
            wire_names[wire_name] = table
            request_items[wire_name] = entry

        found: Dict[str, List[Dict[str, Any]]] = {table: [] for table in requests_by_table}

        def collect(data: Mapping[str, Any]) -> None:
            for wire_name, table_response in (data.get("Responses") or {}).items():
                table = wire_names.get(wire_name)
                if table is None:
                    logger.warning(f"BatchGetItem returned unrequested table {wire_name}")
                    continue
                schema = self.tables[table]
                found[table].extend(decode_item(schema, item) for item in table_response.get("Items", []))

        error = self._run_batch("BatchGetItem", request_items, "UnprocessedKeys", collect)
        if error is not None:
            return self._finish(OperationResult.failure(error))
        return self._finish(OperationResult.success(found))

    def batch_write_item(self, writes_by_table: Mapping[str, Mapping[str, Sequence[Mapping[str, Any]]]]) -> OperationResult:
        """Put and delete many items across tables in one call.

        Args:
            writes_by_table: Table -> ``{"put": [items], "delete": [keys]}``

        Returns:
            OperationResult with True once every write was processed
        """
        request_items: Dict[str, List[Dict[str, Any]]] = {}
        touched: List[tuple] = []
        for table, writes in writes_by_table.items():
            schema = self.schema(table, "batch_write_item")
            unknown = set(writes) - {"put", "delete"}
            if unknown:
                raise InvalidFilterError(f"Batch writes support 'put' and 'delete', got {', '.join(sorted(unknown))}", table, "batch_write_item")

            requests_for_table: List[Dict[str, Any]] = []
            for item in writes.get("put", []):
                build_key(schema, item, "batch_write_item")
                schema.check_attributes(item.keys(), "batch_write_item")
                requests_for_table.append({"PutRequest": {"Item": build_item(schema, item, "batch_write_item")}})
                touched.append((table, self._key_values(schema, item)))
            for key in writes.get("delete", []):
                wire_key, _ = build_key(schema, key, "batch_write_item")
                requests_for_table.append({"DeleteRequest": {"Key": wire_key}})
                touched.append((table, self._key_values(schema, key)))
            if requests_for_table:
                request_items[self.config.get_table_name(table)] = requests_for_table

        error = self._run_batch("BatchWriteItem", request_items, "UnprocessedItems", lambda data: None)
        if error is not None:
            return self._finish(OperationResult.failure(error))

        for table, key in touched:
            self._cache_set(table, key, None)
        logger.info(f"Batch wrote {len(touched)} item(s) to {', '.join(sorted(writes_by_table))}")
        return self._finish(OperationResult.success(True))

    def _run_batch(self, operation: str, request_items: Dict[str, Any], unprocessed_field: str, on_page: Callable[[Mapping[str, Any]], None]) -> Optional[DynamoDBClientError]:
        """Send a batch, resending unprocessed requests up to ``max_retries`` times."""
        rounds = 0
        while request_items:
            response = self.transport.send(operation, {"RequestItems": request_items})
            if not response.ok:
                return response.error
            on_page(response.data)
            rounds += 1

            request_items = response.data.get(unprocessed_field) or {}
            if not request_items:
                break
            if rounds > self.config.max_retries:
                pending = sum(len(entry.get("Keys", [])) if isinstance(entry, Mapping) else len(entry) for entry in request_items.values())
                return ThroughputExceededError(f"{pending} request(s) still unprocessed after {rounds} round(s)", operation, attempts=rounds)
            logger.warning(f"{operation}: resending unprocessed requests (round {rounds + 1})")
            time.sleep(self.config.retry_delay_seconds)
        return None

    # =========================================================================
    # Escape hatch
    # =========================================================================

    def request(self, operation: str, payload: Dict[str, Any]) -> OperationResult:
        """Send an arbitrary API call and return the raw decoded response."""
        return self._call(operation, payload, lambda data: data)
