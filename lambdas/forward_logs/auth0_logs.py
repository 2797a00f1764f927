# lambdas/forward_logs/auth0_logs.py
"""
Reads the Auth0 tenant log stream from a stored checkpoint and hands each
batch to a callback. The checkpoint is only advanced once the callback for
that batch has returned.
"""
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

import requests

from .models import Report, RunResult, RunStatus

MAX_TAKE = 100
MAX_RETRIES = 3
TOKEN_EXPIRY_MARGIN_SECONDS = 60

CRITICAL_TYPES = {"api_limit", "limit_wc", "limit_sul", "limit_mu", "limit_delegation"}


class Auth0ApiError(RuntimeError):
    """Raised when the Management API returns an error response."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


def log_level(entry: dict) -> int:
    """Severity of an Auth0 log type: 4 critical, 3 error, 2 warning, 1 info."""
    log_type = entry.get('type') or ''
    if log_type in CRITICAL_TYPES:
        return 4
    if log_type.startswith('f'):
        return 3
    if log_type.startswith('w'):
        return 2
    return 1


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Auth0Client:
    """
    Thin Management API client using the client-credentials grant.
    The access token is cached on the instance until shortly before expiry.
    """

    def __init__(self, domain: str, client_id: str, client_secret: str,
                 session: requests.Session = None, sleep: Callable[[float], None] = time.sleep):
        self.domain = domain
        self.client_id = client_id
        self.client_secret = client_secret
        self.session = session or requests.Session()
        self.sleep = sleep
        self._token = None
        self._token_expires_at = 0.0

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"

    def get_access_token(self) -> str:
        if self._token and time.time() < self._token_expires_at:
            return self._token

        print(f"Requesting Management API token for {self.domain}...")
        response = self.session.post(
            f"{self.base_url}/oauth/token",
            json={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "audience": f"{self.base_url}/api/v2/",
            },
            timeout=10
        )
        if not response.ok:
            raise Auth0ApiError(f"Could not obtain access token ({response.status_code}): {response.text}",
                                response.status_code)

        body = response.json()
        self._token = body["access_token"]
        expires_in = int(body.get("expires_in", 86400))
        self._token_expires_at = time.time() + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
        return self._token

    def get_logs(self, from_id: Optional[str], take: int) -> List[dict]:
        """
        Fetches up to `take` log entries after `from_id` in chronological order.
        Rate-limited requests are retried with backoff.
        """
        params = {"take": take}
        if from_id:
            params["from"] = from_id

        for attempt in range(1, MAX_RETRIES + 1):
            headers = {"Authorization": f"Bearer {self.get_access_token()}"}
            response = self.session.get(f"{self.base_url}/api/v2/logs", params=params, headers=headers, timeout=10)

            if response.status_code == 429 and attempt < MAX_RETRIES:
                wait_seconds = self._retry_after(response, attempt)
                print(f"⚠️ Rate limited by Auth0, retrying in {wait_seconds:.1f}s (attempt {attempt}/{MAX_RETRIES})")
                self.sleep(wait_seconds)
                continue

            if not response.ok:
                raise Auth0ApiError(f"Error loading logs ({response.status_code}): {response.text}",
                                    response.status_code)
            return response.json()

        return []

    @staticmethod
    def _retry_after(response: requests.Response, attempt: int) -> float:
        reset = response.headers.get("x-ratelimit-reset")
        if reset:
            try:
                return max(float(reset) - time.time(), 1.0)
            except ValueError:
                pass
        return float(2 ** attempt)


class Auth0LogsProcessor:
    """
    Pulls log batches since the stored checkpoint and passes them to a callback.

    `options` keys: domain, client_id, client_secret, batch_size, start_from,
    log_types, log_level, max_run_seconds.
    """

    def __init__(self, storage, options: dict, client: Auth0Client = None, clock: Callable[[], datetime] = None):
        self.storage = storage
        self.options = options
        self.batch_size = min(max(int(options.get("batch_size") or MAX_TAKE), 1), MAX_TAKE)
        self.log_types = set(options.get("log_types") or [])
        self.min_level = int(options.get("log_level") or 0)
        self.max_run_seconds = int(options.get("max_run_seconds") or 20)
        self.clock = clock or _utc_now
        self.client = client or Auth0Client(options["domain"], options["client_id"], options["client_secret"])

    def _keep(self, entry: dict) -> bool:
        if self.log_types and entry.get('type') not in self.log_types:
            return False
        return log_level(entry) >= self.min_level

    def run(self, callback: Callable[[List[dict]], None]) -> RunResult:
        started = self.clock()
        checkpoint = self.storage.get_checkpoint() or self.options.get("start_from")
        status = RunStatus(start=started.isoformat(), checkpoint=checkpoint)

        print(f"Starting log run from checkpoint: {checkpoint or 'beginning'}")
        while True:
            try:
                logs = self.client.get_logs(checkpoint, self.batch_size)
            except (Auth0ApiError, requests.exceptions.RequestException) as e:
                print(f"❌ Failed to load logs from Auth0: {e}")
                status.error = str(e)
                break

            if not logs:
                break

            selected = [entry for entry in logs if self._keep(entry)]
            print(f"Received {len(logs)} logs, forwarding {len(selected)}.")

            # Callback failures propagate and leave the checkpoint untouched
            callback(selected)

            checkpoint = logs[-1].get('log_id') or logs[-1].get('_id')
            self.storage.set_checkpoint(checkpoint)
            status.checkpoint = checkpoint
            status.logs_processed += len(selected)
            status.warnings += sum(1 for entry in selected if log_level(entry) == 2)
            status.errors += sum(1 for entry in selected if log_level(entry) >= 3)

            if len(logs) < self.batch_size:
                break
            if (self.clock() - started).total_seconds() >= self.max_run_seconds:
                print("Run time limit reached, stopping until the next invocation.")
                break

        status.end = self.clock().isoformat()
        self.storage.append_history(status.to_dict())
        print(f"Run finished: {status.logs_processed} logs processed, checkpoint {status.checkpoint}.")
        return RunResult(status=status, checkpoint=status.checkpoint)

    def get_report(self, start_ms: int, end_ms: int) -> Report:
        """Sums up the runs that ended between start_ms and end_ms (epoch milliseconds)."""
        start = datetime.fromtimestamp(start_ms / 1000, tz=timezone.utc)
        end = datetime.fromtimestamp(end_ms / 1000, tz=timezone.utc)
        report = Report(start=start.isoformat(), end=end.isoformat(), checkpoint=self.storage.get_checkpoint())

        for record in self.storage.read_history():
            try:
                ended_at = datetime.fromisoformat(str(record.get('end')).replace('Z', '+00:00'))
            except ValueError:
                continue
            if ended_at.tzinfo is None:
                ended_at = ended_at.replace(tzinfo=timezone.utc)
            if not (start <= ended_at <= end):
                continue
            report.runs += 1
            report.logs_processed += int(record.get('logsProcessed', 0))
            report.warnings += int(record.get('warnings', 0))
            report.errors += int(record.get('errors', 0))

        return report
