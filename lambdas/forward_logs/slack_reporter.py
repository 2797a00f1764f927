# lambdas/forward_logs/slack_reporter.py
from datetime import datetime

import requests

from .models import Report, RunStatus

SUCCESS_COLOR = "#7CD197"
ERROR_COLOR = "danger"


def format_timestamp(iso_string: str) -> str:
    """
    Converts an ISO 8601 timestamp into "YYYY-MM-DD HH:MM:SS UTC".
    Returns the original string if parsing fails.
    """
    if not iso_string:
        return "N/A"
    try:
        dt_object = datetime.fromisoformat(str(iso_string).replace('Z', '+00:00'))
        return dt_object.strftime('%Y-%m-%d %H:%M:%S %Z')
    except (ValueError, TypeError):
        return str(iso_string)


def _as_dict(status) -> dict:
    if isinstance(status, (RunStatus, Report)):
        return status.to_dict()
    return dict(status or {})


def format_slack_message(title: str, username: str, status, checkpoint) -> dict:
    """Builds an attachment-style Slack message for a run status or a report."""
    data = _as_dict(status)
    error = data.get("error")
    is_report = data.get("type") == "report"

    if error:
        text = f"{title}: an error occurred while processing logs."
        color = ERROR_COLOR
    elif is_report:
        text = f"{title}: Daily report"
        color = SUCCESS_COLOR
    else:
        text = f"{title}: {data.get('logsProcessed', 0)} logs processed."
        color = SUCCESS_COLOR

    fields = [
        {"title": "Start", "value": format_timestamp(data.get("start")), "short": True},
        {"title": "End", "value": format_timestamp(data.get("end")), "short": True},
        {"title": "Logs processed", "value": str(data.get("logsProcessed", 0)), "short": True},
        {"title": "Warnings", "value": str(data.get("warnings", 0)), "short": True},
        {"title": "Errors", "value": str(data.get("errors", 0)), "short": True},
        {"title": "Checkpoint", "value": checkpoint or "N/A", "short": True},
    ]
    if is_report:
        fields.append({"title": "Runs", "value": str(data.get("runs", 0)), "short": True})
    if error:
        fields.append({"title": "Error", "value": f"```{error}```", "short": False})

    return {
        "username": username,
        "text": text,
        "attachments": [{
            "color": color,
            "fallback": text,
            "fields": fields,
            "mrkdwn_in": ["fields"],
        }]
    }


class SlackReporter:
    """
    Posts run outcomes and daily reports to a Slack incoming webhook.
    Network errors are printed and swallowed; a failed notification never
    changes the outcome of a run.
    """

    def __init__(self, hook: str, username: str, title: str, session: requests.Session = None):
        self.hook = hook
        self.username = username
        self.title = title
        self.session = session or requests.Session()

    def send(self, status, checkpoint=None) -> bool:
        if not self.hook:
            print("ℹ️ SLACK_INCOMING_WEBHOOK_URL not set. Skipping Slack notification.")
            return False

        payload = format_slack_message(self.title, self.username, status, checkpoint)
        try:
            response = self.session.post(self.hook, json=payload, timeout=10)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            print(f"⚠️ Could not send Slack notification due to a network error: {e}")
            return False

        print("✅ Slack notification sent.")
        return True
