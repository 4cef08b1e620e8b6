"""DynamoDB entity connector with lazy table creation."""

from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import boto3
import structlog
from boto3.dynamodb.conditions import ConditionBase
from botocore.config import Config

from ddb_entity.types import DynamoItem, DynamoItems, DynamoKey, TableDescription

from .common import chunk, clean_item
from .exception import BatchItemException
from .recovery import TableRecovery
from .settings import ConnectorSettings, get_settings

logger = structlog.get_logger(__name__)

Condition = Union[ConditionBase, Dict[str, Any]]


class EntityConnector:
    """Entity-level CRUD, batch and paginated reads over one DynamoDB table."""

    BATCH_SIZE = 25

    def __init__(self, **kwargs: Any) -> None:
        self.settings: ConnectorSettings = kwargs.get("settings") or get_settings()
        self.logical_name: str = kwargs["table"]
        self.table_name: str = self.settings.table_name(self.logical_name)
        self.partition_key: str = kwargs["partition_key"]
        self.sort_key: Optional[str] = kwargs.get("sort_key")
        self.resource = self.__get_dynamo_resource()
        # document-level client: native Python values, thread safe
        self.client = self.resource.meta.client
        self.recovery = TableRecovery(
            self,
            initial_wait_s=self.settings.ddb_recovery_initial_wait_s,
            poll_interval_s=self.settings.ddb_recovery_poll_interval_s,
            max_polls=self.settings.ddb_recovery_max_polls,
        )

    # --- items ---

    def get_item(self, key: DynamoKey) -> Optional[DynamoItem]:
        params = {"TableName": self.table_name, "Key": key}
        response = self.recovery.run("GetItem", lambda: self.client.get_item(**params))
        return response.get("Item")

    def delete_item(self, key: DynamoKey) -> Optional[DynamoItem]:
        params = {"TableName": self.table_name, "Key": key, "ReturnValues": "ALL_OLD"}
        response = self.recovery.run("DeleteItem", lambda: self.client.delete_item(**params))
        return response.get("Attributes")

    def store_item(self, item: DynamoItem) -> bool:
        params = {"TableName": self.table_name, "Item": clean_item(item)}
        self.recovery.run("PutItem", lambda: self.client.put_item(**params))
        return True

    def update_item(
        self,
        key: DynamoKey,
        update_expression: str,
        expression_values: Dict[str, Any],
        expression_names: Optional[Dict[str, str]] = None,
    ) -> DynamoItem:
        params: Dict[str, Any] = {
            "TableName": self.table_name,
            "Key": key,
            "UpdateExpression": update_expression,
            "ReturnValues": "ALL_NEW",
        }
        if expression_values:
            params["ExpressionAttributeValues"] = expression_values
        if expression_names:
            params["ExpressionAttributeNames"] = expression_names
        response = self.recovery.run("UpdateItem", lambda: self.client.update_item(**params))
        return response.get("Attributes", {})

    # --- batches ---

    def batch_get(self, keys: Sequence[DynamoKey]) -> Optional[DynamoItems]:
        if not keys:
            return []
        params = {"RequestItems": {self.table_name: {"Keys": list(keys)}}}
        response = self.recovery.run("BatchGetItem", lambda: self.client.batch_get_item(**params))
        items = response.get("Responses", {}).get(self.table_name)
        return items if items else None

    def store_items(self, items: DynamoItems) -> None:
        if not isinstance(items, list):
            raise BatchItemException("Batched data must be contained within a list")
        requests = [{"PutRequest": {"Item": clean_item(item)}} for item in items]
        sent = self.__batch_write("store_items", requests)
        logger.info("batch_stored", table=self.table_name, items=len(items), requests=sent)

    def delete_items(self, keys: List[DynamoKey]) -> None:
        if not isinstance(keys, list):
            raise BatchItemException("Batched data must be contained within a list")
        requests = [{"DeleteRequest": {"Key": key}} for key in keys]
        sent = self.__batch_write("delete_items", requests)
        logger.info("batch_deleted", table=self.table_name, items=len(keys), requests=sent)

    # --- reads ---

    def scan(
        self,
        index_name: Optional[str] = None,
        query_filter: Optional[Condition] = None,
        limit: Optional[int] = None,
        additional_params: Optional[Dict[str, Any]] = None,
    ) -> DynamoItems:
        params: Dict[str, Any] = {"TableName": self.table_name}
        if index_name:
            params["IndexName"] = index_name
        if query_filter is not None:
            filter_param = self.__condition_param(query_filter, "FilterExpression", "ScanFilter")
            params[filter_param] = query_filter
        return self.__paginate("Scan", self.client.scan, params, limit, additional_params)

    def query(
        self,
        key_conditions: Condition,
        index_name: Optional[str] = None,
        query_filter: Optional[Condition] = None,
        limit: Optional[int] = None,
        additional_params: Optional[Dict[str, Any]] = None,
    ) -> DynamoItems:
        params: Dict[str, Any] = {"TableName": self.table_name}
        key_param = self.__condition_param(key_conditions, "KeyConditionExpression", "KeyConditions")
        params[key_param] = key_conditions
        if index_name:
            params["IndexName"] = index_name
        if query_filter is not None:
            filter_param = self.__condition_param(query_filter, "FilterExpression", "QueryFilter")
            params[filter_param] = query_filter
        return self.__paginate("Query", self.client.query, params, limit, additional_params)

    # --- schema ---

    def create_table(self) -> TableDescription:
        attribute_definitions = [{"AttributeName": self.partition_key, "AttributeType": "S"}]
        key_schema = [{"AttributeName": self.partition_key, "KeyType": "HASH"}]
        if self.sort_key:
            attribute_definitions.append({"AttributeName": self.sort_key, "AttributeType": "S"})
            key_schema.append({"AttributeName": self.sort_key, "KeyType": "RANGE"})
        response = self.client.create_table(
            TableName=self.table_name,
            BillingMode="PAY_PER_REQUEST",
            AttributeDefinitions=attribute_definitions,
            KeySchema=key_schema,
        )
        return response["TableDescription"]

    def delete_table(self) -> TableDescription:
        return self.client.delete_table(TableName=self.table_name)["TableDescription"]

    def describe_table(self) -> Optional[TableDescription]:
        return self.client.describe_table(TableName=self.table_name).get("Table")

    # --- internals ---

    def __get_dynamo_resource(self) -> Any:
        session = boto3.Session(
            aws_access_key_id=self.settings.aws_access_key_id,
            aws_secret_access_key=self.settings.aws_secret_access_key,
            aws_session_token=self.settings.aws_session_token,
            region_name=self.settings.aws_region,
        )
        config = Config(retries={"max_attempts": self.settings.ddb_sdk_max_attempts, "mode": "standard"})
        return session.resource("dynamodb", endpoint_url=self.settings.dynamodb_endpoint_url, config=config)

    def __batch_write(self, operation: str, requests: List[Dict[str, Any]]) -> int:
        chunks = chunk(requests, self.BATCH_SIZE)
        if not chunks:
            return 0
        workers = min(len(chunks), self.settings.ddb_max_batch_workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.__write_chunk, batch) for batch in chunks]
            failures = 0
            for future in futures:
                exc = future.exception()
                if exc is not None:
                    failures += 1
                    logger.error(
                        "batch_chunk_failed",
                        table=self.table_name,
                        operation=operation,
                        exc_info=exc,
                    )
        if failures:
            raise BatchItemException(f"{operation} failed for table {self.table_name}") from None
        return len(chunks)

    def __write_chunk(self, batch: List[Dict[str, Any]]) -> Dict[str, Any]:
        params = {"RequestItems": {self.table_name: batch}}
        return self.recovery.run("BatchWriteItem", lambda: self.client.batch_write_item(**params))

    def __paginate(
        self,
        operation: str,
        call: Callable[..., Dict[str, Any]],
        params: Dict[str, Any],
        limit: Optional[int],
        additional_params: Optional[Dict[str, Any]],
    ) -> DynamoItems:
        if limit is not None and limit <= 0:
            return []
        items: DynamoItems = []
        last_evaluated_key: Optional[DynamoKey] = None
        while True:
            page_params = dict(params)
            if limit is not None:
                page_params["Limit"] = limit - len(items)
            if additional_params:
                page_params.update(additional_params)
            if last_evaluated_key:
                page_params["ExclusiveStartKey"] = last_evaluated_key
            response = self.recovery.run(operation, partial(call, **page_params))
            items.extend(response.get("Items", []))
            last_evaluated_key = response.get("LastEvaluatedKey")
            if not last_evaluated_key or (limit is not None and len(items) >= limit):
                break
        return items if limit is None else items[:limit]

    def __condition_param(self, condition: Condition, expression_param: str, legacy_param: str) -> str:
        if isinstance(condition, dict):
            return legacy_param
        return expression_param
