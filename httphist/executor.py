"""httphist executor - HTTP request execution and output files."""

import logging
import time
from pathlib import Path

import requests

from httphist.core import StorageError

logger = logging.getLogger(__name__)


class RequestResult:
    """Result of an HTTP request."""

    def __init__(self):
        self.status_code: int = 0
        self.content_type: str = ""
        self.content: bytes = b""
        self.elapsed_ms: float = 0
        self.error: str | None = None

    @property
    def content_length(self) -> int:
        return len(self.content)


def execute_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: bytes | None = None,
    timeout: int = 60,
) -> RequestResult:
    """Execute an HTTP request and return structured result.

    - Captures the raw response body as bytes
    - Captures timing
    - Never raises for transport problems - returns RequestResult
      with the error field set instead
    """
    result = RequestResult()

    try:
        logger.info("Sending %s %s (timeout %ss)", method.upper(), url, timeout)
        start = time.monotonic()
        resp = requests.request(
            method=method.upper(),
            url=url,
            headers=headers,
            data=body or None,
            timeout=timeout,
            allow_redirects=True,
        )
        result.elapsed_ms = (time.monotonic() - start) * 1000

        result.status_code = resp.status_code
        result.content_type = resp.headers.get("Content-Type", "")
        result.content = resp.content or b""
        logger.debug(
            "Received %s (%d bytes) in %.0fms",
            result.status_code,
            result.content_length,
            result.elapsed_ms,
        )

    except requests.exceptions.Timeout:
        result.error = f"Request timed out after {timeout}s"
    except requests.exceptions.ConnectionError as e:
        result.error = f"Connection error: {e}"
    except requests.exceptions.RequestException as e:
        result.error = f"Request failed: {e}"

    return result


def write_output(path: str | Path, content: bytes) -> Path:
    """Write a response body to path, creating parent directories.

    A short write is treated as a failure.
    """
    path = Path(path)
    parent = path.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Failed to create directory {parent}: {e}") from e

    try:
        with open(path, "wb") as f:
            written = f.write(content)
    except OSError as e:
        raise StorageError(f"Error writing output file {path}: {e}") from e

    if written < len(content):
        raise StorageError(
            f"Error writing data to output file {path}: "
            f"wrote {written} of {len(content)} bytes."
        )
    logger.debug("Wrote %d bytes to %s", written, path)
    return path
