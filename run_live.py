# auth0-logs-to-logentries/run_live.py
import json
import boto3
from botocore.exceptions import ClientError
from dotenv import load_dotenv

# Load .env before the handler module reads its settings
load_dotenv()

from lambdas.forward_logs.models import get_settings


def setup_checkpoint_table():
    """Creates the DynamoDB checkpoint table if it is configured and does not exist yet."""
    settings = get_settings()
    table_name = settings.checkpoint_table_name
    if not table_name:
        print("CHECKPOINT_TABLE_NAME not set. Using in-memory checkpoint storage.")
        return

    dynamodb = boto3.resource('dynamodb', region_name=settings.aws_region)
    try:
        dynamodb.meta.client.describe_table(TableName=table_name)
        print(f"DynamoDB table '{table_name}' already exists.")
    except ClientError as e:
        if e.response['Error']['Code'] == 'ResourceNotFoundException':
            print(f"DynamoDB table '{table_name}' not found. Creating it now...")
            dynamodb.create_table(
                TableName=table_name,
                KeySchema=[
                    {'AttributeName': 'pk', 'KeyType': 'HASH'},
                    {'AttributeName': 'sk', 'KeyType': 'RANGE'}
                ],
                AttributeDefinitions=[
                    {'AttributeName': 'pk', 'AttributeType': 'S'},
                    {'AttributeName': 'sk', 'AttributeType': 'S'}
                ],
                BillingMode='PAY_PER_REQUEST'
            )
            dynamodb.Table(table_name).wait_until_exists()
            print(f"Table '{table_name}' created successfully.")
        else: raise e


def run_live():
    """Executes the forward_logs Lambda handler once using your live credentials."""
    print("--- Starting LIVE Run of forward_logs Lambda ---")

    try:
        setup_checkpoint_table()
    except Exception as e:
        print(f"Could not complete setup. Aborting run. Error: {e}")
        return

    # Imported after setup so the module-level clients see the table
    from lambdas.forward_logs.app import handler

    mock_schedule_event = {
        "detail-type": "Scheduled Event",
        "source": "aws.events",
        "resources": ["run_live"],
        "detail": {}
    }

    print("\n--- Invoking Lambda handler (this will call Auth0, Logentries and Slack) ---")
    result = handler(mock_schedule_event, {})
    print("--- Lambda handler execution finished ---")

    print(f"\n--- Final JSON Output from Lambda (status {result['statusCode']}): ---")
    print(json.dumps(json.loads(result['body']), indent=2))


if __name__ == "__main__":
    run_live()
