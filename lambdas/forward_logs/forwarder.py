# lambdas/forward_logs/forwarder.py
import json
from datetime import datetime
from typing import Callable, Optional

from .auth0_logs import Auth0LogsProcessor
from .daily_report import send_daily_report
from .logentries_client import LogentriesClient
from .models import AppSettings, Request
from .slack_reporter import SlackReporter
from .trigger import classify_trigger
from .uploader import make_upload_callback

SLACK_USERNAME = "auth0-logs-to-logentries"
SLACK_TITLE = "Logs To Logentries"

# next_handler(request) passes an unrelated request on untouched;
# next_handler(request, error) takes over a failed run.
NextHandler = Callable[..., dict]


def build_response(status_code: int, body: dict) -> dict:
    """Helper function to build the API Gateway proxy response."""
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body, default=str)
    }


class ScheduledForwarder:
    """
    Runs the Auth0 log stream into Logentries for scheduled invocations and
    reports the outcome to Slack. Collaborators not passed in are built from
    the settings.
    """

    def __init__(self, storage, settings: AppSettings, processor=None, sink=None, reporter=None,
                 clock: Callable[[], datetime] = None):
        self.settings = settings
        self.processor = processor or Auth0LogsProcessor(storage, settings.processor_options())
        self.sink = sink or LogentriesClient(settings.logentries_url)
        self.reporter = reporter or SlackReporter(
            hook=settings.slack_incoming_webhook_url,
            username=SLACK_USERNAME,
            title=SLACK_TITLE
        )
        self.clock = clock or (lambda: datetime.now().astimezone())

    def handle(self, request: Request, next_handler: NextHandler) -> Optional[dict]:
        trigger = classify_trigger(request)
        if not trigger:
            return next_handler(request)

        print(f"--- Log run triggered ({trigger.value}) ---")
        try:
            result = self.processor.run(make_upload_callback(self.sink))
        except Exception as e:
            print(f"❌ Log run failed: {e}")
            self.reporter.send({"error": str(e), "logsProcessed": 0}, None)
            return next_handler(request, e)

        if result.status.error:
            self.reporter.send(result.status, result.checkpoint)
        elif self.settings.slack_send_success:
            self.reporter.send(result.status, result.checkpoint)

        try:
            send_daily_report(self.processor, self.reporter, self.settings.daily_report_time, self.clock())
        except Exception as e:
            # The run itself succeeded, so the caller still gets its result
            print(f"⚠️ Could not send the daily report: {e}")

        return build_response(200, result.to_dict())
