"""httphist builder - turn command-line options into one outgoing request."""

import base64
import logging
from pathlib import Path
from urllib.parse import urlparse

import requests

from httphist.core import ArgumentError, RecordFormatError, StorageError
from httphist.options import parse_int

logger = logging.getLogger(__name__)

REQUEST_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE")
BODY_METHODS = ("POST", "PATCH", "PUT")

DEFAULT_TIMEOUT = 60
DEFAULT_ACCEPT = "*/*"
JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class RequestDescriptor:
    """Everything needed to send (or re-send) one request."""

    def __init__(
        self,
        method: str,
        url: str,
        timeout: int = DEFAULT_TIMEOUT,
        content_type: str = "",
        accept: str = DEFAULT_ACCEPT,
        body: bytes = b"",
    ):
        self.method = method
        self.url = url
        self.timeout = timeout
        self.content_type = content_type
        self.accept = accept
        self.body = body

    @property
    def content_length(self) -> int:
        return len(self.body)

    def headers(self) -> dict[str, str]:
        headers = {}
        if self.content_type:
            headers["Content-Type"] = self.content_type
        if self.accept:
            headers["Accept"] = self.accept
        return headers

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "url": self.url,
            "timeout": self.timeout,
            "content_type": self.content_type,
            "accept": self.accept,
            "content_length": self.content_length,
            "body": base64.b64encode(self.body).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RequestDescriptor":
        try:
            return cls(
                method=data["method"],
                url=data["url"],
                timeout=parse_int(data.get("timeout"), DEFAULT_TIMEOUT, minimum=1),
                content_type=data.get("content_type", ""),
                accept=data.get("accept", DEFAULT_ACCEPT),
                body=base64.b64decode(data.get("body") or ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RecordFormatError(f"Invalid request section in history record: {e}") from e


def resolve_method(target: str, url: str | None) -> tuple[str, str | None, list[str]]:
    """Split the leading positional tokens into (method, url, leftovers).

    If target is a known verb it becomes the method and url follows it;
    otherwise the method is GET and target itself is the URL.
    """
    if target and target.upper() in REQUEST_METHODS:
        return target.upper(), url, []
    extra = [url] if url else []
    return "GET", target, extra


def resolve_content_type(method: str, json_flag: bool, content_type: str | None) -> str:
    """--json beats --content-type beats the method default."""
    if json_flag:
        return JSON_CONTENT_TYPE
    if content_type:
        return content_type
    if method in BODY_METHODS:
        return JSON_CONTENT_TYPE
    return FORM_CONTENT_TYPE


def normalize_url(url: str, base_url: str | None = None) -> str:
    """Prefix base_url onto relative URLs, then validate and re-quote."""
    if base_url and not url.startswith(("http://", "https://")):
        url = base_url + url
    prepared = requests.PreparedRequest()
    try:
        prepared.prepare_url(url, None)
    except requests.exceptions.RequestException as e:
        raise ArgumentError(f"Error parsing URL: {e}") from e
    if urlparse(prepared.url).scheme not in ("http", "https"):
        raise ArgumentError(f"Error parsing URL: {url!r} is not an http or https URL")
    return prepared.url


def read_request_body(method: str, data: str | None, input_path: str | None) -> tuple[bytes, str]:
    """Return (body, input_path_used) for the request.

    --data wins over --input; a missing input file is ignored. Only
    POST, PATCH and PUT carry a body.
    """
    if method not in BODY_METHODS:
        if data:
            raise ArgumentError("Data flag is only valid for POST, PATCH, and PUT requests.")
        return b"", ""

    if data:
        return data.encode("utf-8"), ""

    if input_path:
        path = Path(input_path)
        if not path.exists():
            logger.debug("Input file %s does not exist, sending empty body", path)
            return b"", ""
        try:
            return path.read_bytes(), input_path
        except OSError as e:
            raise StorageError(f"Error reading input file {path}: {e}") from e

    return b"", ""


def build_request(
    target: str,
    url: str | None = None,
    json_flag: bool = False,
    content_type: str | None = None,
    accept: str | None = None,
    timeout=None,
    data: str | None = None,
    input_path: str | None = None,
    defaults: dict | None = None,
) -> tuple[RequestDescriptor, str]:
    """Build a RequestDescriptor from parsed command-line options.

    Returns (descriptor, input_path_used). Raises ArgumentError before
    any network activity when the options don't describe a valid request.
    """
    defaults = defaults or {}

    method, raw_url, extra = resolve_method(target, url)
    if not raw_url:
        raise ArgumentError("Invalid arguments. Try 'httphist help' for usage details.")
    if extra:
        raise ArgumentError(f"Unexpected argument: {extra[0]}")

    body, input_used = read_request_body(method, data, input_path)

    if timeout in (None, ""):
        timeout = defaults.get("timeout")

    descriptor = RequestDescriptor(
        method=method,
        url=normalize_url(raw_url, defaults.get("base_url")),
        timeout=parse_int(timeout, DEFAULT_TIMEOUT, minimum=1),
        content_type=resolve_content_type(method, json_flag, content_type),
        accept=accept or defaults.get("accept") or DEFAULT_ACCEPT,
        body=body,
    )
    return descriptor, input_used
