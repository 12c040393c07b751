"""DynamoDB (wide-column) document store.

Items live in a single table keyed by the string attribute `id`. The tree
is stored as a native map; floats are written as Decimal because DynamoDB
rejects Python floats. Conditional expressions provide the atomic
create-if-absent and update-if-present semantics the contract requires.
"""

import logging
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from papermap.errors import DocumentConflictError, PersistenceError
from papermap.mindmap.schemas import MindmapDocument
from papermap.persistence.base import build_new_record, build_update_fields
from papermap.persistence.normalize import (
    from_decimal,
    normalize_record,
    sort_newest_first,
    to_decimal,
)

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class DynamoDocumentStore:
    """Mindmap store backed by a DynamoDB table resource."""

    backend_name = "dynamodb"

    def __init__(self, table: Any):
        """Wrap a boto3 Table resource (or anything with the same methods)."""
        self._table = table

    @classmethod
    def from_settings(cls, settings) -> "DynamoDocumentStore":
        import boto3
        from botocore.config import Config

        resource = boto3.resource(
            "dynamodb",
            region_name=settings.aws_region,
            config=Config(
                connect_timeout=10,
                read_timeout=30,
                retries={"max_attempts": 2, "mode": "standard"},
            ),
        )
        logger.info(
            f"DynamoDB store initialized: table={settings.dynamodb_table}, "
            f"region={settings.aws_region}"
        )
        return cls(resource.Table(settings.dynamodb_table))

    def create(self, fields: dict[str, Any]) -> str:
        item = build_new_record(fields)
        try:
            self._table.put_item(
                Item=to_decimal(item),
                ConditionExpression="attribute_not_exists(#pk)",
                ExpressionAttributeNames={"#pk": "id"},
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise DocumentConflictError(item["id"]) from e
            raise PersistenceError(f"DynamoDB put_item failed: {e}") from e
        except BotoCoreError as e:
            raise PersistenceError(f"DynamoDB unreachable: {e}") from e

        logger.info(f"Created mindmap {item['id']} in DynamoDB")
        return item["id"]

    def get_by_id(self, doc_id: str) -> Optional[MindmapDocument]:
        try:
            response = self._table.get_item(Key={"id": doc_id})
        except (ClientError, BotoCoreError) as e:
            raise PersistenceError(f"DynamoDB get_item failed: {e}") from e

        item = response.get("Item")
        if not item:
            return None
        return normalize_record(from_decimal(item), doc_id=doc_id)

    def update(self, doc_id: str, fields: dict[str, Any]) -> bool:
        updates = build_update_fields(fields)

        set_clauses = []
        names = {"#pk": "id"}
        values = {}
        for index, (key, value) in enumerate(updates.items()):
            attr_name = f"#attr{index}"
            attr_value = f":val{index}"
            set_clauses.append(f"{attr_name} = {attr_value}")
            names[attr_name] = key
            values[attr_value] = to_decimal(value)

        try:
            self._table.update_item(
                Key={"id": doc_id},
                UpdateExpression="SET " + ", ".join(set_clauses),
                ConditionExpression="attribute_exists(#pk)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                logger.info(f"Update skipped, mindmap {doc_id} does not exist")
                return False
            raise PersistenceError(f"DynamoDB update_item failed: {e}") from e
        except BotoCoreError as e:
            raise PersistenceError(f"DynamoDB unreachable: {e}") from e

        logger.info(f"Updated mindmap {doc_id}: fields={sorted(updates)}")
        return True

    def delete_by_id(self, doc_id: str) -> bool:
        try:
            response = self._table.delete_item(Key={"id": doc_id}, ReturnValues="ALL_OLD")
        except (ClientError, BotoCoreError) as e:
            raise PersistenceError(f"DynamoDB delete_item failed: {e}") from e

        deleted = bool(response.get("Attributes"))
        if deleted:
            logger.info(f"Deleted mindmap {doc_id} from DynamoDB")
        return deleted

    def list_all(self) -> list[MindmapDocument]:
        documents = []
        scan_kwargs: dict[str, Any] = {}
        try:
            while True:
                response = self._table.scan(**scan_kwargs)
                for item in response.get("Items", []):
                    documents.append(normalize_record(from_decimal(item)))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise PersistenceError(f"DynamoDB scan failed: {e}") from e

        return sort_newest_first(documents)
