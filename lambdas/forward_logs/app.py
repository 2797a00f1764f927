# lambdas/forward_logs/app.py
import base64
import json

from pydantic import ValidationError

from .forwarder import ScheduledForwarder, build_response
from .models import ConfigurationError, Request, get_settings
from .storage import DynamoDBStorage, MemoryStorage


def create_storage(settings):
    """DynamoDB when a table is configured, otherwise a process-local store."""
    if settings.checkpoint_table_name:
        return DynamoDBStorage(settings.checkpoint_table_name, region=settings.aws_region)
    print("⚠️ CHECKPOINT_TABLE_NAME not set. The checkpoint only lives as long as this container.")
    return MemoryStorage()


# Initialize clients and load config outside of the handler so warm invocations reuse them.
try:
    SETTINGS = get_settings()
    STORAGE = create_storage(SETTINGS)
    FORWARDER = ScheduledForwarder(STORAGE, SETTINGS)
except (ValidationError, ConfigurationError) as e:
    print(f"❌ FATAL: Lambda configuration error: {e}")
    SETTINGS = None
    STORAGE = None
    FORWARDER = None


def _decode_body(event: dict) -> dict:
    body = event.get('body')
    if not body:
        return {}
    if isinstance(body, dict):
        return body
    try:
        if event.get('isBase64Encoded'):
            body = base64.b64decode(body).decode('utf-8')
        parsed = json.loads(body)
    except (ValueError, TypeError) as e:
        print(f"⚠️ Ignoring request body that is not valid JSON: {e}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def parse_event(event: dict) -> Request:
    """
    Turns a Lambda event into a Request.

    EventBridge scheduled events become {"schedule": <rule>, "state": "active"};
    API Gateway events keep their decoded JSON body and lower-cased headers;
    anything else (e.g. a direct invoke) is used as the body itself.
    """
    if not isinstance(event, dict):
        return Request(raw_event=event)

    if event.get('detail-type') == 'Scheduled Event':
        resources = event.get('resources') or []
        schedule = resources[0] if resources else event.get('id', 'scheduled-event')
        return Request(body={'schedule': schedule, 'state': 'active'}, raw_event=event)

    if any(key in event for key in ('headers', 'body', 'requestContext')):
        headers = {str(k).lower(): v for k, v in (event.get('headers') or {}).items()}
        return Request(body=_decode_body(event), headers=headers, raw_event=event)

    return Request(body=event, raw_event=event)


def pass_through(request: Request, error: Exception = None) -> dict:
    """The next stage after the forwarder: answers unrelated requests and failed runs."""
    if error is not None:
        print(f"Internal Server Error: {error}")
        return build_response(500, {'message': 'An internal server error occurred.'})
    return build_response(200, {'message': 'No scheduled run detected.'})


def handler(event, context):
    """
    Lambda entrypoint for both the EventBridge schedule and the HTTP API route.
    """
    print("--- Forward Logs Lambda Triggered ---")
    if FORWARDER is None:
        print("❌ FATAL: Lambda is not configured correctly. Aborting.")
        return build_response(500, {'message': 'Server configuration error.'})

    request = parse_event(event)
    return FORWARDER.handle(request, pass_through)
