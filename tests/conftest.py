"""Shared fixtures for httphist tests."""

from datetime import datetime

import pytest
from click.testing import CliRunner

from httphist import core
from httphist.builder import RequestDescriptor
from httphist.executor import RequestResult
from httphist.history import HistoryRecord


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def global_httphist_dir(tmp_path, monkeypatch):
    """Override the global ~/.httphist directory and run from a temp CWD."""
    fake_global = tmp_path / "fake_home" / ".httphist"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    monkeypatch.delenv("HTTPHIST_LOG_LEVEL", raising=False)
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return fake_global


@pytest.fixture
def history_dir(global_httphist_dir):
    path = global_httphist_dir / "history"
    path.mkdir()
    return path


def make_request_result(
    status_code=200,
    content=b"",
    content_type="application/json",
    elapsed_ms=42.0,
    error=None,
):
    """Factory for mock RequestResult objects."""
    r = RequestResult()
    r.status_code = status_code
    r.content = content
    r.content_type = content_type
    r.elapsed_ms = elapsed_ms
    r.error = error
    return r


def make_record(
    method="GET",
    url="http://localhost:3000/api/items",
    when=None,
    body=b"",
    response_body=b'{"ok": true}',
    status_code=200,
):
    """Factory for HistoryRecord objects with a fixed start time."""
    when = when or datetime(2024, 1, 1, 10, 0, 0)
    request = RequestDescriptor(
        method=method,
        url=url,
        timeout=60,
        content_type="application/json",
        body=body,
    )
    response = make_request_result(status_code=status_code, content=response_body)
    return HistoryRecord(request=request, response=response, start_time=when)
