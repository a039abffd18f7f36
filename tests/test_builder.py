"""Tests for turning command-line options into a RequestDescriptor."""

import pytest

from httphist.builder import (
    RequestDescriptor,
    build_request,
    normalize_url,
    resolve_content_type,
    resolve_method,
)
from httphist.core import ArgumentError, RecordFormatError

URL = "http://localhost:3000/api/items"


class TestResolveMethod:
    def test_verb_then_url(self):
        assert resolve_method("post", URL) == ("POST", URL, [])

    def test_url_only_defaults_to_get(self):
        assert resolve_method(URL, None) == ("GET", URL, [])

    def test_url_with_stray_token(self):
        assert resolve_method(URL, "extra") == ("GET", URL, ["extra"])


class TestResolveContentType:
    def test_json_flag_wins(self):
        assert resolve_content_type("GET", True, "text/plain") == "application/json"

    def test_explicit_option(self):
        assert resolve_content_type("POST", False, "text/xml") == "text/xml"

    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH"])
    def test_body_methods_default_to_json(self, method):
        assert resolve_content_type(method, False, None) == "application/json"

    @pytest.mark.parametrize("method", ["GET", "HEAD", "DELETE"])
    def test_other_methods_default_to_form(self, method):
        assert resolve_content_type(method, False, None) == "application/x-www-form-urlencoded"


class TestNormalizeUrl:
    def test_absolute_untouched(self):
        assert normalize_url(URL) == URL

    def test_base_url_prefix(self):
        assert normalize_url("/health", "http://localhost:8000") == "http://localhost:8000/health"

    def test_base_url_ignored_for_absolute(self):
        assert normalize_url(URL, "http://other:1") == URL

    def test_spaces_quoted(self):
        assert normalize_url("http://localhost:3000/a b") == "http://localhost:3000/a%20b"

    def test_missing_scheme(self):
        with pytest.raises(ArgumentError, match="Error parsing URL"):
            normalize_url("/api/health")

    @pytest.mark.parametrize("url", ["localhost:3000/a", "ftp://example.com/file"])
    def test_non_http_scheme(self, url):
        with pytest.raises(ArgumentError, match="Error parsing URL"):
            normalize_url(url)


class TestBuildRequest:
    def test_defaults(self):
        req, input_used = build_request(URL)
        assert req.method == "GET"
        assert req.url == URL
        assert req.timeout == 60
        assert req.accept == "*/*"
        assert req.content_type == "application/x-www-form-urlencoded"
        assert req.body == b""
        assert input_used == ""

    def test_data_on_post(self):
        req, _ = build_request("POST", URL, data='{"x":1}')
        assert req.body == b'{"x":1}'
        assert req.content_length == 7
        assert req.content_type == "application/json"

    @pytest.mark.parametrize("method", ["GET", "HEAD", "DELETE"])
    def test_data_rejected_for_non_body_methods(self, method):
        with pytest.raises(ArgumentError, match="only valid for POST, PATCH, and PUT"):
            build_request(method, URL, data='{"x":1}')

    def test_data_rejected_when_method_implied(self):
        with pytest.raises(ArgumentError, match="Data flag"):
            build_request(URL, data="x")

    def test_input_file(self, tmp_path):
        payload = tmp_path / "payload.json"
        payload.write_bytes(b'{"from": "file"}')
        req, input_used = build_request("PUT", URL, input_path=str(payload))
        assert req.body == b'{"from": "file"}'
        assert input_used == str(payload)

    def test_data_beats_input(self, tmp_path):
        payload = tmp_path / "payload.json"
        payload.write_bytes(b"file")
        req, input_used = build_request("PATCH", URL, data="inline", input_path=str(payload))
        assert req.body == b"inline"
        assert input_used == ""

    def test_missing_input_file_ignored(self, tmp_path):
        req, input_used = build_request("POST", URL, input_path=str(tmp_path / "nope.json"))
        assert req.body == b""
        assert input_used == ""

    def test_input_ignored_for_get(self, tmp_path):
        payload = tmp_path / "payload.json"
        payload.write_bytes(b"file")
        req, _ = build_request("GET", URL, input_path=str(payload))
        assert req.body == b""

    @pytest.mark.parametrize("value", ["0", "-5", "abc", ""])
    def test_bad_timeout_falls_back(self, value):
        req, _ = build_request(URL, timeout=value)
        assert req.timeout == 60

    def test_timeout_option(self):
        req, _ = build_request(URL, timeout="5")
        assert req.timeout == 5

    def test_config_defaults(self):
        defaults = {"timeout": 15, "accept": "text/html", "base_url": "http://localhost:4000"}
        req, _ = build_request("GET", "/health", defaults=defaults)
        assert req.url == "http://localhost:4000/health"
        assert req.timeout == 15
        assert req.accept == "text/html"

    def test_cli_overrides_config(self):
        defaults = {"timeout": 15, "accept": "text/html"}
        req, _ = build_request(URL, timeout="3", accept="application/xml", defaults=defaults)
        assert req.timeout == 3
        assert req.accept == "application/xml"

    def test_missing_url(self):
        with pytest.raises(ArgumentError, match="Invalid arguments"):
            build_request("GET")

    def test_unexpected_argument(self):
        with pytest.raises(ArgumentError, match="Unexpected argument: stray"):
            build_request(URL, "stray")


class TestRequestDescriptor:
    def test_headers(self):
        req = RequestDescriptor("POST", URL, content_type="application/json", accept="*/*")
        assert req.headers() == {"Content-Type": "application/json", "Accept": "*/*"}

    def test_dict_keeps_binary_body(self):
        body = bytes(range(256))
        req = RequestDescriptor("POST", URL, timeout=9, content_type="application/octet-stream", body=body)
        data = req.to_dict()
        assert data["content_length"] == 256
        again = RequestDescriptor.from_dict(data)
        assert again.body == body
        assert again.method == "POST"
        assert again.timeout == 9

    def test_from_dict_missing_url(self):
        with pytest.raises(RecordFormatError):
            RequestDescriptor.from_dict({"method": "GET"})
