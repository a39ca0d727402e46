# souldeep/services/persona_store.py
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError
from pydantic import ValidationError

from souldeep.models.personas import StoredPersona

logger = logging.getLogger(__name__)


class DynamoDBPersonaStore:
    """Append-only persona storage in DynamoDB, keyed by persona_id."""

    def __init__(
        self,
        table_name: str = "souldeep-personas",
        region_name: Optional[str] = None,
        dynamodb=None,
    ):
        self.table_name = table_name
        self.dynamodb = dynamodb or boto3.resource("dynamodb", region_name=region_name)
        self.table = self.dynamodb.Table(table_name)

    def ensure_table_exists(self):
        """Ensure the DynamoDB table exists, create it if it doesn't."""
        try:
            self.dynamodb.meta.client.describe_table(TableName=self.table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceNotFoundException":
                logger.info(f"Creating DynamoDB table {self.table_name}")
                self.dynamodb.create_table(
                    TableName=self.table_name,
                    KeySchema=[{"AttributeName": "persona_id", "KeyType": "HASH"}],
                    AttributeDefinitions=[
                        {"AttributeName": "persona_id", "AttributeType": "S"}
                    ],
                    BillingMode="PAY_PER_REQUEST",
                )
                self.dynamodb.meta.client.get_waiter("table_exists").wait(
                    TableName=self.table_name
                )
            else:
                logger.error(f"Error checking DynamoDB table: {str(e)}")
                raise

    def append(self, persona: StoredPersona) -> bool:
        """
        Write a persona once. An existing persona_id is never overwritten.

        Args:
            persona: The persona to store

        Returns:
            True if successful, False otherwise
        """
        try:
            logger.debug(f"Saving persona {persona.persona_id} to DynamoDB")
            self.table.put_item(
                Item={
                    **persona.summary(),
                    "persona_data": persona.model_dump_json(by_alias=True),
                },
                ConditionExpression="attribute_not_exists(persona_id)",
            )
            logger.debug(f"Persona {persona.persona_id} saved to DynamoDB")
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.error(f"Persona {persona.persona_id} already exists, not overwriting")
            else:
                logger.error(f"Error saving persona to DynamoDB: {str(e)}")
            return False
        except Exception as e:
            logger.exception(f"Error saving persona to DynamoDB: {str(e)}")
            return False

    def get(self, persona_id: str) -> Optional[StoredPersona]:
        """
        Get a persona from DynamoDB.

        Args:
            persona_id: The persona ID

        Returns:
            The stored persona, or None if not found
        """
        try:
            response = self.table.get_item(Key={"persona_id": persona_id})
        except ClientError as e:
            logger.error(f"Error getting persona from DynamoDB: {str(e)}")
            return None

        if "Item" not in response:
            logger.info(f"Persona {persona_id} not found in DynamoDB")
            return None

        try:
            return StoredPersona.model_validate_json(response["Item"]["persona_data"])
        except (KeyError, ValidationError) as e:
            logger.error(f"Stored persona {persona_id} is unreadable: {str(e)}")
            return None

    def list_personas(self, limit: int = 100) -> List[Dict[str, Any]]:
        """List persona summaries, most recent first."""
        # Scan order is arbitrary, so read every page before sorting
        scan_kwargs = {"ProjectionExpression": "persona_id, created_at, archetype"}
        items = []
        try:
            while True:
                response = self.table.scan(**scan_kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except ClientError as e:
            logger.error(f"Error listing personas from DynamoDB: {str(e)}")
            return []

        items.sort(key=lambda x: x.get("created_at", ""), reverse=True)
        return items[:limit]
