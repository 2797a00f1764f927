# lambdas/forward_logs/daily_report.py
import re
from datetime import datetime
from typing import Optional, Tuple

REPORT_WINDOW_MINUTES = 5
REPORT_PERIOD_MS = 86400000

_REPORT_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{1,2})\s*$")


def parse_report_time(value: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parses "HH:MM". Returns None when the value is missing or malformed."""
    if not value:
        return None
    match = _REPORT_TIME_PATTERN.match(value)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour, minute


def should_send_daily_report(report_time: Optional[str], now: datetime) -> bool:
    """
    True when `now` falls in the five minutes starting at the configured time.
    This is a window match, not a scheduler: a five minute polling cadence
    hits it once a day.
    """
    trigger = parse_report_time(report_time)
    if not trigger:
        return False
    trigger_hour, trigger_minute = trigger
    return now.hour == trigger_hour and trigger_minute <= now.minute < trigger_minute + REPORT_WINDOW_MINUTES


def send_daily_report(processor, reporter, report_time: Optional[str], now: datetime = None) -> bool:
    """Sends the rolling 24h report when inside the window. Returns True if it was sent."""
    now = now or datetime.now().astimezone()
    if not should_send_daily_report(report_time, now):
        return False

    end = int(now.timestamp() * 1000)
    start = end - REPORT_PERIOD_MS
    print(f"Sending daily report for the last 24 hours (trigger time {report_time}).")
    report = processor.get_report(start, end)
    reporter.send(report, report.checkpoint)
    return True
