# lambdas/forward_logs/uploader.py
import json
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, List, Optional

MAX_CONCURRENT_UPLOADS = 5


class UploadError(RuntimeError):
    """Raised when an entry of a batch could not be forwarded."""
    pass


def _entry_id(entry: dict) -> str:
    return entry.get('_id') or entry.get('log_id')


def blob_path(entry: dict) -> str:
    """
    Builds the destination path for an entry, e.g. "2024/06/17/13/<id>.json".
    The timestamp keeps whatever offset it arrived with.
    """
    date = entry.get('date')
    if not isinstance(date, datetime):
        date = datetime.fromisoformat(str(date).replace('Z', '+00:00'))
    return f"{date.strftime('%Y/%m/%d')}/{date.strftime('%H')}/{_entry_id(entry)}.json"


def make_upload_callback(sink, concurrency: int = MAX_CONCURRENT_UPLOADS) -> Callable[[Optional[List[dict]]], None]:
    """
    Returns the batch callback handed to the logs processor.

    The callback forwards every entry through `sink.log()` with at most
    `concurrency` uploads in flight and returns once all of them succeeded.
    The first failure is raised as UploadError; uploads that already started
    are left to finish, queued ones are dropped.
    """
    def upload(entry: dict) -> None:
        # The path is only informational; a bad date must not block forwarding
        try:
            url = blob_path(entry)
        except (ValueError, TypeError):
            url = f"unknown-date/{_entry_id(entry)}.json"
        print(f"Uploading {url}.")
        sink.log(json.dumps(entry, default=str))

    def on_logs_received(logs: Optional[List[dict]]) -> None:
        if not logs:
            return

        print("Uploading blobs...")
        executor = ThreadPoolExecutor(max_workers=concurrency)
        try:
            futures = {executor.submit(upload, entry): entry for entry in logs}
            for future in as_completed(futures):
                error = future.exception()
                if error is not None:
                    entry = futures[future]
                    print(f"❌ Upload failed for log '{_entry_id(entry)}': {error}")
                    raise UploadError(str(error)) from error
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        print("✅ Upload complete.")

    return on_logs_received
