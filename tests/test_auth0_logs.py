# tests/test_auth0_logs.py
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from lambdas.forward_logs.auth0_logs import Auth0ApiError, Auth0Client, Auth0LogsProcessor, log_level
from lambdas.forward_logs.storage import MemoryStorage

NOW = datetime(2024, 6, 17, 9, 0, tzinfo=timezone.utc)


def entry(log_id: str, log_type: str = "s") -> dict:
    return {"_id": log_id, "log_id": log_id, "date": "2024-06-17T08:00:00Z", "type": log_type}


def make_processor(pages, storage=None, **options):
    client = MagicMock()
    client.get_logs.side_effect = list(pages)
    opts = {"domain": "tenant.auth0.com", "client_id": "id", "client_secret": "secret", "batch_size": 2}
    opts.update(options)
    processor = Auth0LogsProcessor(storage or MemoryStorage(), opts, client=client, clock=lambda: NOW)
    return processor, client


@pytest.mark.parametrize("log_type, expected", [
    ("s", 1), ("seacft", 1), ("w", 2), ("f", 3), ("fp", 3), ("api_limit", 4), ("limit_wc", 4), (None, 1),
])
def test_log_level(log_type, expected):
    assert log_level({"type": log_type}) == expected


def test_run_pages_through_logs_and_advances_checkpoint():
    storage = MemoryStorage()
    processor, client = make_processor([[entry("1"), entry("2", "f")], [entry("3", "w")]], storage)
    batches = []

    result = processor.run(batches.append)

    assert [[e["_id"] for e in b] for b in batches] == [["1", "2"], ["3"]]
    assert result.checkpoint == "3"
    assert storage.get_checkpoint() == "3"
    assert result.status.logs_processed == 3
    assert result.status.errors == 1
    assert result.status.warnings == 1
    assert result.status.error is None
    assert client.get_logs.call_args_list[0].args == (None, 2)
    assert client.get_logs.call_args_list[1].args == ("2", 2)


def test_run_starts_from_stored_checkpoint_then_start_from():
    processor, client = make_processor([[]], MemoryStorage(checkpoint="stored"), start_from="configured")
    processor.run(lambda logs: None)
    assert client.get_logs.call_args.args[0] == "stored"

    processor, client = make_processor([[]], MemoryStorage(), start_from="configured")
    processor.run(lambda logs: None)
    assert client.get_logs.call_args.args[0] == "configured"


def test_callback_failure_propagates_and_keeps_checkpoint():
    storage = MemoryStorage(checkpoint="0")
    processor, _ = make_processor([[entry("1"), entry("2")], [entry("3"), entry("4")]], storage)
    calls = []

    def callback(logs):
        calls.append(logs)
        if len(calls) == 2:
            raise RuntimeError("upload failed")

    with pytest.raises(RuntimeError, match="upload failed"):
        processor.run(callback)

    assert storage.get_checkpoint() == "2"


def test_api_error_is_recorded_in_status():
    storage = MemoryStorage()
    processor, _ = make_processor([[entry("1"), entry("2")], Auth0ApiError("Error loading logs (500)", 500)], storage)

    result = processor.run(lambda logs: None)

    assert result.status.error == "Error loading logs (500)"
    assert result.checkpoint == "2"
    assert result.status.logs_processed == 2


def test_filters_by_type_and_level_but_checkpoints_past_everything():
    storage = MemoryStorage()
    page = [entry("1", "s"), entry("2", "f"), entry("3", "fp")]
    processor, _ = make_processor([page], storage, batch_size=5, log_types=["f", "s"], log_level=3)
    batches = []

    result = processor.run(batches.append)

    assert [e["_id"] for e in batches[0]] == ["2"]
    assert result.status.logs_processed == 1
    assert storage.get_checkpoint() == "3"


def test_each_run_is_recorded_for_reports():
    storage = MemoryStorage()
    processor, _ = make_processor([[entry("1")]], storage)

    processor.run(lambda logs: None)

    assert len(storage.read_history()) == 1
    assert storage.read_history()[0]["logsProcessed"] == 1


def test_report_sums_runs_inside_window():
    storage = MemoryStorage(checkpoint="99")
    for hours_ago, processed in [(1, 10), (5, 20), (30, 1000)]:
        storage.append_history({
            "start": (NOW - timedelta(hours=hours_ago)).isoformat(),
            "end": (NOW - timedelta(hours=hours_ago)).isoformat(),
            "logsProcessed": processed, "warnings": 1, "errors": 2, "checkpoint": "x",
        })
    processor, _ = make_processor([], storage)
    end = int(NOW.timestamp() * 1000)

    report = processor.get_report(end - 86400000, end)

    assert report.type == "report"
    assert report.runs == 2
    assert report.logs_processed == 30
    assert report.warnings == 2
    assert report.errors == 4
    assert report.checkpoint == "99"


def response(status_code=200, body=None, headers=None):
    mock = MagicMock()
    mock.status_code = status_code
    mock.ok = status_code < 400
    mock.json.return_value = body
    mock.headers = headers or {}
    mock.text = str(body)
    return mock


def test_client_fetches_token_once_and_requests_logs():
    session = MagicMock()
    session.post.return_value = response(body={"access_token": "tok", "expires_in": 86400})
    session.get.return_value = response(body=[entry("1")])
    client = Auth0Client("tenant.auth0.com", "id", "secret", session=session)

    assert client.get_logs("0", 50) == [entry("1")]
    client.get_logs("1", 50)

    session.post.assert_called_once()
    assert session.post.call_args.kwargs["json"]["audience"] == "https://tenant.auth0.com/api/v2/"
    url = session.get.call_args.args[0]
    assert url == "https://tenant.auth0.com/api/v2/logs"
    assert session.get.call_args.kwargs["params"] == {"take": 50, "from": "1"}
    assert session.get.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"


def test_client_retries_rate_limited_requests():
    session = MagicMock()
    session.post.return_value = response(body={"access_token": "tok", "expires_in": 86400})
    session.get.side_effect = [response(429), response(body=[entry("1")])]
    sleep = MagicMock()
    client = Auth0Client("tenant.auth0.com", "id", "secret", session=session, sleep=sleep)

    assert client.get_logs(None, 10) == [entry("1")]
    sleep.assert_called_once_with(2.0)
    assert "from" not in session.get.call_args.kwargs["params"]


def test_client_raises_on_api_error():
    session = MagicMock()
    session.post.return_value = response(body={"access_token": "tok"})
    session.get.return_value = response(403, body={"message": "Insufficient scope"})
    client = Auth0Client("tenant.auth0.com", "id", "secret", session=session)

    with pytest.raises(Auth0ApiError) as exc_info:
        client.get_logs(None, 10)
    assert exc_info.value.status_code == 403


def test_client_raises_when_token_request_fails():
    session = MagicMock()
    session.post.return_value = response(401, body={"error": "access_denied"})
    client = Auth0Client("tenant.auth0.com", "id", "bad", session=session)

    with pytest.raises(Auth0ApiError, match="access token"):
        client.get_logs(None, 10)
    session.get.assert_not_called()
