# lambdas/forward_logs/storage.py
"""
Checkpoint storage handles for the logs processor.

Both classes expose the same four methods: get_checkpoint, set_checkpoint,
append_history and read_history. History records are plain dicts with
"start", "end", "logsProcessed", "warnings", "errors" and "checkpoint".
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

CHECKPOINT_PK = "CHECKPOINT"
HISTORY_PK = "HISTORY"
HISTORY_TTL_DAYS = 7


class MemoryStorage:
    """Keeps everything in process memory. Used for tests and local runs."""

    def __init__(self, checkpoint: Optional[str] = None):
        self.checkpoint = checkpoint
        self.history: List[dict] = []

    def get_checkpoint(self) -> Optional[str]:
        return self.checkpoint

    def set_checkpoint(self, value: str) -> None:
        self.checkpoint = value

    def append_history(self, record: dict) -> None:
        self.history.append(dict(record))

    def read_history(self) -> List[dict]:
        return list(self.history)


class DynamoDBStorage:
    """
    Stores the checkpoint and run history in a single DynamoDB table
    keyed by (pk, sk).
    """

    def __init__(self, table_name: str, region: str = None, resource=None):
        dynamodb = resource or boto3.resource('dynamodb', region_name=region)
        self.table = dynamodb.Table(table_name)

    def get_checkpoint(self) -> Optional[str]:
        try:
            response = self.table.get_item(Key={'pk': CHECKPOINT_PK, 'sk': CHECKPOINT_PK})
        except ClientError as e:
            print(f"❌ Could not read checkpoint from DynamoDB: {e.response['Error']['Message']}")
            raise
        item = response.get('Item')
        return item.get('checkpoint') if item else None

    def set_checkpoint(self, value: str) -> None:
        try:
            self.table.put_item(Item={
                'pk': CHECKPOINT_PK,
                'sk': CHECKPOINT_PK,
                'checkpoint': value,
                'updated_at': datetime.now(timezone.utc).isoformat(),
            })
        except ClientError as e:
            print(f"❌ Could not save checkpoint to DynamoDB: {e.response['Error']['Message']}")
            raise

    def append_history(self, record: dict) -> None:
        # Set a Time-To-Live (TTL) so old run records clean themselves up
        ttl_timestamp = int((datetime.now(timezone.utc) + timedelta(days=HISTORY_TTL_DAYS)).timestamp())
        item = {k: v for k, v in record.items() if v is not None}
        item.update({'pk': HISTORY_PK, 'sk': record['end'], 'ttl': ttl_timestamp})
        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            print(f"❌ Could not save run history to DynamoDB: {e.response['Error']['Message']}")
            raise

    def read_history(self) -> List[dict]:
        items = []
        query_kwargs = {'KeyConditionExpression': Key('pk').eq(HISTORY_PK)}
        try:
            while True:
                response = self.table.query(**query_kwargs)
                items.extend(response.get('Items', []))
                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    break
                query_kwargs['ExclusiveStartKey'] = last_key
        except ClientError as e:
            print(f"❌ Could not read run history from DynamoDB: {e.response['Error']['Message']}")
            raise

        # Numbers come back as Decimal
        return [
            {
                **item,
                'logsProcessed': int(item.get('logsProcessed', 0)),
                'warnings': int(item.get('warnings', 0)),
                'errors': int(item.get('errors', 0)),
            }
            for item in items
        ]
