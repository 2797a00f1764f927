# lambdas/forward_logs/logentries_client.py
import requests


class LogentriesClient:
    """
    Minimal client for the Logentries "noformat" webhook input.
    Every call posts one log line; the token lives in the URL.

    log() is called from several upload threads at once, so by default each
    call goes through a plain requests.post instead of a shared Session.
    """

    def __init__(self, url: str, session: requests.Session = None, timeout: int = 10):
        self.url = url
        self.session = session
        self.timeout = timeout

    def log(self, serialized_entry: str) -> None:
        """
        Posts a single serialized entry.

        Raises:
            requests.exceptions.RequestException: on network failure or a non-2xx response.
        """
        http = self.session or requests
        response = http.post(
            self.url,
            data=serialized_entry.encode('utf-8'),
            headers={'Content-Type': 'application/json'},
            timeout=self.timeout
        )
        response.raise_for_status()
