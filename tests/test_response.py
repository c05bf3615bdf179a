"""Tests for lightcore.http.response and lightcore.server.sender."""

import json

import pytest

from lightcore.errors import ResponseAlreadySent
from lightcore.http.response import Response
from lightcore.server.sender import BufferedTransport, WSGITransport, body_allowed, status_line


class TestConstruction:
    def test_defaults(self) -> None:
        response = Response()
        assert response.status == 200
        assert response.content == b""
        assert response.headers == {}

    def test_str_content_encoded(self) -> None:
        assert Response("héllo").content == "héllo".encode()

    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Invalid HTTP status"):
            Response("x", 999)

    def test_fluent_setters_chain(self) -> None:
        response = Response().set_content("ok").set_status(201).set_header("X-Id", "7")
        assert (response.content, response.status) == (b"ok", 201)
        assert response.get_header("x-id") == "7"


class TestFactories:
    def test_json(self) -> None:
        response = Response.json({"name": "Zoë"}, 201)
        assert response.status == 201
        assert response.get_header("Content-Type") == "application/json; charset=utf-8"
        assert json.loads(response.content) == {"name": "Zoë"}

    def test_json_unserializable(self) -> None:
        with pytest.raises(TypeError, match="Failed to encode JSON"):
            Response.json({"x": object()})

    def test_html_text_xml(self) -> None:
        assert Response.html("<p>").get_header("content-type").startswith("text/html")
        assert Response.text("t").get_header("content-type").startswith("text/plain")
        assert Response.xml("<a/>").get_header("content-type").startswith("application/xml")

    def test_redirect(self) -> None:
        response = Response.redirect("/login")
        assert response.status == 302
        assert response.get_header("Location") == "/login"
        assert response.is_redirect()

    def test_not_found_and_error(self) -> None:
        assert json.loads(Response.not_found().content) == {"error": "Not Found"}
        error = Response.error("boom", 503)
        assert error.status == 503
        assert error.is_error()
        assert not error.is_successful()


class TestHeaders:
    def test_case_insensitive_replace_keeps_latest_casing(self) -> None:
        response = Response().set_header("x-token", "a").set_header("X-Token", "b")
        assert response.headers == {"X-Token": "b"}

    def test_remove(self) -> None:
        response = Response(headers={"X-A": "1", "X-B": "2"}).remove_header("x-a")
        assert not response.has_header("X-A")
        assert response.headers == {"X-B": "2"}

    def test_remove_missing_is_noop(self) -> None:
        assert Response().remove_header("nope").headers == {}


class TestSend:
    def test_emits_status_headers_body(self) -> None:
        transport = BufferedTransport()
        Response.text("hi", 201).send(transport)
        assert transport.status == 201
        assert transport.header("content-length") == "2"
        assert transport.body == b"hi"

    def test_no_content_length_for_empty_body(self) -> None:
        transport = BufferedTransport()
        Response(b"", 200).send(transport)
        assert transport.header("Content-Length") is None

    def test_explicit_content_length_kept(self) -> None:
        transport = BufferedTransport()
        Response(b"abc", headers={"Content-Length": "3"}).send(transport)
        assert [name for name, _ in transport.headers].count("Content-Length") == 1

    @pytest.mark.parametrize("status", [101, 204, 304])
    def test_no_body_or_length_for_bodyless_status(self, status: int) -> None:
        transport = BufferedTransport()
        Response(b"ignored", status).send(transport)
        assert transport.body == b""
        assert transport.header("Content-Length") is None

    def test_second_send_rejected(self) -> None:
        transport = BufferedTransport()
        response = Response("once")
        response.send(transport)
        with pytest.raises(ResponseAlreadySent):
            response.send(transport)

    def test_str(self) -> None:
        text = str(Response.text("body"))
        assert text.startswith("HTTP/1.1 200\n")
        assert text.endswith("\n\nbody")


class TestTransports:
    def test_status_line(self) -> None:
        assert status_line(404) == "404 Not Found"
        assert status_line(599) == "599 "

    @pytest.mark.parametrize(("status", "allowed"), [(100, False), (200, True), (204, False), (304, False), (404, True)])
    def test_body_allowed(self, status: int, allowed: bool) -> None:
        assert body_allowed(status) is allowed

    def test_wsgi_transport(self) -> None:
        calls = []
        transport = WSGITransport(lambda status, headers: calls.append((status, headers)))
        assert not transport.headers_sent
        Response.html("<p>x</p>").send(transport)
        assert transport.headers_sent
        status, headers = calls[0]
        assert status == "200 OK"
        assert ("Content-Length", "8") in headers
        assert transport.chunks == [b"<p>x</p>"]
