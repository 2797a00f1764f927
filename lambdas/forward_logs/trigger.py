# lambdas/forward_logs/trigger.py
from enum import Enum

from .models import Request

DASHBOARD_REFERER = "https://manage.auth0.com/"


class TriggerKind(Enum):
    SCHEDULED = "scheduled"
    MANUAL = "manual"
    UNRECOGNIZED = "unrecognized"

    def __bool__(self) -> bool:
        """Lets the kind be used as `if kind:` to mean "this is a run"."""
        return self is not TriggerKind.UNRECOGNIZED


def classify_trigger(request: Request) -> TriggerKind:
    """
    Decides whether an invocation should start a log run.

    SCHEDULED: the body carries a schedule id and state "active".
    MANUAL: the Auth0 management dashboard re-checks the extension with a
    conditional GET (dashboard referer plus If-None-Match). This branch only
    exists for compatibility with that one caller.
    Anything else is UNRECOGNIZED. Never raises.
    """
    body = request.body if isinstance(request.body, dict) else {}
    headers = request.headers if isinstance(request.headers, dict) else {}

    if body.get('schedule') and body.get('state') == 'active':
        return TriggerKind.SCHEDULED

    if headers.get('referer') == DASHBOARD_REFERER and headers.get('if-none-match'):
        return TriggerKind.MANUAL

    return TriggerKind.UNRECOGNIZED
