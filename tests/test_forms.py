"""Tests for lightcore.http.forms — url-encoded and multipart parsing."""

import pytest

from lightcore.http.forms import (
    FORM_URLENCODED,
    FormData,
    UploadFile,
    is_form_content_type,
    parse_form_data,
)

BOUNDARY = "----lightcore-boundary"


def _multipart(*parts: bytes) -> bytes:
    body = b""
    for part in parts:
        body += f"--{BOUNDARY}\r\n".encode() + part + b"\r\n"
    return body + f"--{BOUNDARY}--\r\n".encode()


class TestUrlEncoded:
    def test_parse(self) -> None:
        form = parse_form_data(b"name=Ada&tag=a&tag=b", FORM_URLENCODED)
        assert form["name"] == "Ada"
        assert form.get_list("tag") == ["a", "b"]
        assert form.to_dict() == {"name": "Ada", "tag": "a"}
        assert form.files == {}

    def test_unknown_content_type(self) -> None:
        with pytest.raises(ValueError, match="Cannot parse"):
            parse_form_data(b"{}", "application/json")


class TestMultipart:
    def test_fields_and_files(self) -> None:
        body = _multipart(
            b'Content-Disposition: form-data; name="title"\r\n\r\nHello',
            b'Content-Disposition: form-data; name="avatar"; filename="a.png"\r\n'
            b"Content-Type: image/png\r\n\r\n\x89PNG",
        )
        form = parse_form_data(body, f"multipart/form-data; boundary={BOUNDARY}")
        assert form["title"] == "Hello"
        upload = form.files["avatar"]
        assert upload.filename == "a.png"
        assert upload.content_type == "image/png"
        assert upload.read() == b"\x89PNG"
        assert upload.size == 4
        assert upload.ok

    def test_missing_boundary(self) -> None:
        with pytest.raises(ValueError, match="boundary"):
            parse_form_data(b"", "multipart/form-data")


class TestUploadFile:
    def test_save(self, tmp_path) -> None:
        upload = UploadFile("notes.txt", "text/plain", 5, b"hello")
        target = tmp_path / "notes.txt"
        upload.save(target)
        assert target.read_bytes() == b"hello"

    def test_empty_filename_is_not_ok(self) -> None:
        assert not UploadFile("", "application/octet-stream", 0, b"").ok


class TestHelpers:
    def test_is_form_content_type(self) -> None:
        assert is_form_content_type("application/x-www-form-urlencoded; charset=utf-8")
        assert is_form_content_type("multipart/form-data; boundary=x")
        assert not is_form_content_type("application/json")

    def test_form_data_get_default(self) -> None:
        form = FormData({"a": ["1"]})
        assert form.get("a") == "1"
        assert form.get("b", "x") == "x"
        assert "a" in form
        assert list(form) == ["a"]
