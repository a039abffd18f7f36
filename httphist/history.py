"""httphist history - a directory of JSON files, newest first.

Every request/response exchange is written as one file named
``{timestamp}__{METHOD}__{url}.json``. The directory listing is the only
index: hidden entries (leading ".") are ignored, and the remaining names
sorted descending give the display order. Display indexes are assigned
over that full walk before any filter runs, so a record keeps its number
no matter which --find is applied.
"""

import base64
import json
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

from httphist import __version__
from httphist.builder import RequestDescriptor
from httphist.core import ArgumentError, NetworkError, RecordFormatError, StorageError
from httphist.executor import RequestResult, write_output

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 200
RECORD_EXTENSION = ".json"
TIMESTAMP_FORMAT = "%Y_%m_%d_%H_%M_%S_%f"


class HistoryPage(NamedTuple):
    names: list[str]
    indexes: list[int]
    total: int
    skipped: int


class HistoryRecord:
    """One persisted request/response exchange."""

    def __init__(
        self,
        request: RequestDescriptor,
        response: RequestResult,
        start_time: datetime,
        end_time: datetime | None = None,
        mode: str = "http",
        args: list[str] | None = None,
        input_file_path: str = "",
        output_file_path: str = "",
        filename: str | None = None,
    ):
        self.request = request
        self.response = response
        self.start_time = start_time
        self.end_time = end_time or start_time
        self.mode = mode
        self.args = list(args or [])
        self.input_file_path = input_file_path or ""
        self.output_file_path = output_file_path or ""
        self.filename = filename

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time).total_seconds() * 1000

    def to_dict(self) -> dict:
        return {
            "name": "httphist",
            "version": __version__,
            "mode": self.mode,
            "args": self.args,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_ms": self.duration_ms,
            "input_file_path": self.input_file_path,
            "output_file_path": self.output_file_path,
            "request": self.request.to_dict(),
            "response": {
                "status_code": self.response.status_code,
                "content_type": self.response.content_type,
                "content_length": self.response.content_length,
                "body": base64.b64encode(self.response.content).decode("ascii"),
            },
        }

    @classmethod
    def from_dict(cls, data: dict, filename: str | None = None) -> "HistoryRecord":
        if not isinstance(data, dict):
            raise RecordFormatError("History record must be a JSON object.")
        try:
            resp_data = data["response"]
            response = RequestResult()
            response.status_code = int(resp_data.get("status_code") or 0)
            response.content_type = resp_data.get("content_type", "")
            response.content = base64.b64decode(resp_data.get("body") or "")
            start_time = datetime.fromisoformat(data["start_time"])
            end_raw = data.get("end_time")
            end_time = datetime.fromisoformat(end_raw) if end_raw else None
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RecordFormatError(f"Invalid history record: {e}") from e
        return cls(
            request=RequestDescriptor.from_dict(data.get("request") or {}),
            response=response,
            start_time=start_time,
            end_time=end_time,
            mode=data.get("mode", "http"),
            args=data.get("args") or [],
            input_file_path=data.get("input_file_path", ""),
            output_file_path=data.get("output_file_path", ""),
            filename=filename,
        )


# ── Filenames ────────────────────────────────────────────────────────────


def clean_url(url: str) -> str:
    """Replace anything outside [A-Za-z0-9_] with "_" and collapse runs."""
    cleaned = re.sub(r"[^a-zA-Z0-9_]", "_", url)
    return re.sub(r"_+", "_", cleaned)


def history_filename(start_time: datetime, method: str, url: str) -> str:
    """Timestamp first, so name order is chronological order."""
    stem = f"{start_time.strftime(TIMESTAMP_FORMAT)}__{method}__{clean_url(url)}"
    stem = stem[: MAX_FILENAME_LENGTH - len(RECORD_EXTENSION)]
    return stem + RECORD_EXTENSION


# ── Listing ──────────────────────────────────────────────────────────────


def _walk(history_dir: Path) -> list[tuple[int, str]]:
    """Pair every visible entry with its display index, newest first."""
    try:
        names = os.listdir(history_dir)
    except OSError as e:
        raise StorageError(f"Error reading history directory {history_dir}: {e}") from e
    visible = sorted((n for n in names if n and not n.startswith(".")), reverse=True)
    return list(enumerate(visible, start=1))


def _matches(name: str, find: str, case_insensitive: bool) -> bool:
    if not find or find in name:
        return True
    return case_insensitive and find.lower() in name.lower()


def list_history(
    history_dir: Path,
    skip: int = 0,
    limit: int = 10,
    find: str = "",
    case_insensitive: bool = False,
) -> HistoryPage:
    """List records newest first with skip/limit paging and substring search.

    Entries that are passed over, either to satisfy skip or because they
    don't match find, all count toward ``skipped``. limit <= 0 means no
    limit.
    """
    entries = _walk(history_dir)

    names: list[str] = []
    indexes: list[int] = []
    skipped = 0
    for display_index, name in entries:
        if limit > 0 and len(names) >= limit:
            break
        if skipped >= skip and _matches(name, find, case_insensitive):
            names.append(name)
            indexes.append(display_index)
        else:
            skipped += 1

    return HistoryPage(names, indexes, len(entries), skipped)


def format_listing(page: HistoryPage) -> list[str]:
    """Render a HistoryPage as output lines."""
    if page.total == 0:
        return ["Nothing in history."]
    if not page.names:
        return ["No results matching criteria."]
    first = page.skipped + 1
    lines = [
        f"Displaying {first} to {first + len(page.names)} of {page.total} "
        "- Use skip and limit flags to page.",
        "",
    ]
    lines.extend(f"{index}. {name}" for index, name in zip(page.indexes, page.names))
    return lines


# ── Records ──────────────────────────────────────────────────────────────


def load_by_index(history_dir: Path, index: int) -> HistoryRecord:
    """Load the record shown at display index ``index`` in an unfiltered list."""
    page = list_history(history_dir, skip=max(0, index - 1), limit=1, find="", case_insensitive=True)
    if len(page.names) != 1:
        raise ArgumentError("No history records found.")
    if page.indexes[0] != index:
        raise ArgumentError(f"Invalid history record index: {index}")

    name = page.names[0]
    path = Path(history_dir) / name
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise StorageError(f"Error reading history file {name}: {e}") from e
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise RecordFormatError(f"Error decoding history file {name}: {e}") from e
    return HistoryRecord.from_dict(data, filename=name)


def append_record(history_dir: Path, record: HistoryRecord) -> Path:
    """Write a new record file; never overwrites an existing one.

    The JSON is written to a hidden ``.part`` file first and renamed into
    place, so a failed write never shows up in listings.
    """
    history_dir = Path(history_dir)
    name = history_filename(record.start_time, record.request.method, record.request.url)
    target = history_dir / name
    if target.exists():
        raise StorageError(f"History record {name} already exists.")

    try:
        payload = json.dumps(record.to_dict(), indent=2).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise RecordFormatError(f"Error encoding history record: {e}") from e

    tmp = history_dir / f".{name}.part"
    try:
        with open(tmp, "wb") as f:
            written = f.write(payload)
        if written < len(payload):
            raise StorageError(
                f"Error writing history file {name}: wrote {written} of {len(payload)} bytes."
            )
        os.replace(tmp, target)
    except OSError as e:
        raise StorageError(f"Error writing history file {name}: {e}") from e
    finally:
        if tmp.exists():
            tmp.unlink()

    record.filename = name
    logger.info("Wrote history record %s", target)
    return target


def save_response_body(history_dir: Path, index: int, out_path: str | Path) -> Path:
    """Copy the response body of record ``index`` to out_path."""
    record = load_by_index(history_dir, index)
    return write_output(out_path, record.response.content)


def replay_record(history_dir: Path, index: int, execute, args: list[str] | None = None):
    """Re-send the request stored at ``index`` and append the new exchange.

    ``execute`` has the signature of executor.execute_request. Returns
    (original, replayed, path); the original record file is untouched.
    """
    original = load_by_index(history_dir, index)
    req = original.request
    logger.info("Replaying history record %d: %s %s", index, req.method, req.url)

    started = datetime.now()
    result = execute(
        method=req.method,
        url=req.url,
        headers=req.headers(),
        body=req.body,
        timeout=req.timeout,
    )
    finished = datetime.now()
    if result.error:
        raise NetworkError(result.error)

    replayed = HistoryRecord(
        request=req,
        response=result,
        start_time=started,
        end_time=finished,
        mode="replay",
        args=args,
    )
    path = append_record(history_dir, replayed)
    return original, replayed, path
