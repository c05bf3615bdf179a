"""Tests for lightcore.http.request — lazy accessors, body parsing, limits."""

import io

import pytest

from lightcore.errors import RequestBodyTooLarge, UnknownValidationRule, ValidationError
from lightcore.http.request import Request, make_environ
from lightcore.validation import default_rules


def _request(method: str, uri: str = "/", *, headers=None, body: bytes | str = b"", **kw) -> Request:
    return Request(make_environ(method, uri, headers, body), **kw)


# =============================================================================
# Request line
# =============================================================================


class TestRequestLine:
    def test_method_uppercased(self) -> None:
        assert _request("post").method == "POST"

    def test_unknown_method_falls_back_to_get(self) -> None:
        assert _request("OPTIONS").method == "GET"
        assert _request("HEAD").method == "GET"

    def test_missing_method_is_get(self) -> None:
        assert Request({}).method == "GET"

    def test_path_strips_query(self) -> None:
        request = _request("GET", "/users/7?tab=posts")
        assert request.path == "/users/7"
        assert request.query_string == "tab=posts"
        assert request.request_uri == "/users/7?tab=posts"

    def test_empty_path_is_root(self) -> None:
        assert Request({"REQUEST_URI": "?a=1"}).path == "/"

    def test_uri_built_from_path_info(self) -> None:
        request = Request({"PATH_INFO": "/a b", "QUERY_STRING": "x=1"})
        assert request.request_uri == "/a%20b?x=1"

    def test_full_uri(self) -> None:
        request = _request("GET", "/p?q=1", headers={"Host": "example.com"})
        assert request.uri == "http://example.com/p?q=1"

    def test_scheme(self) -> None:
        assert Request({"HTTPS": "on"}).scheme == "https"
        assert Request({"SERVER_PORT": "443"}).scheme == "https"
        assert Request({"wsgi.url_scheme": "https"}).is_secure()
        assert Request({"SERVER_PORT": "8080"}).scheme == "http"

    def test_values_are_memoized(self) -> None:
        environ = make_environ("GET", "/first")
        request = Request(environ)
        assert request.path == "/first"
        environ["REQUEST_URI"] = "/second"
        assert request.path == "/first"


# =============================================================================
# Headers and client info
# =============================================================================


class TestHeadersAndClient:
    def test_header_lookup(self) -> None:
        request = _request("GET", headers={"X-Requested-With": "XMLHttpRequest"})
        assert request.header("x-requested-with") == "XMLHttpRequest"
        assert request.header("missing") == ""
        assert request.header("missing", "d") == "d"
        assert request.is_ajax()

    def test_expects_json(self) -> None:
        assert _request("GET", headers={"Accept": "application/json"}).expects_json()
        assert not _request("GET", headers={"Accept": "text/html"}).expects_json()

    def test_ip_prefers_forwarded_header(self) -> None:
        request = _request("GET", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
        assert request.ip() == "203.0.113.9"

    def test_ip_skips_invalid_forwarded_value(self) -> None:
        request = _request("GET", headers={"X-Forwarded-For": "garbage", "X-Real-Ip": "198.51.100.2"})
        assert request.ip() == "198.51.100.2"

    def test_ip_falls_back_to_remote_addr(self) -> None:
        assert _request("GET").ip() == "127.0.0.1"
        assert Request({}).ip() == "0.0.0.0"

    def test_user_agent(self) -> None:
        assert _request("GET", headers={"User-Agent": "curl/8"}).user_agent() == "curl/8"

    def test_is_method(self) -> None:
        assert _request("DELETE").is_method("delete")


# =============================================================================
# Parameters
# =============================================================================


class TestParameters:
    def test_query(self) -> None:
        request = _request("GET", "/?page=2&sort=name")
        assert request.query("page") == "2"
        assert request.query("missing", "x") == "x"
        assert request.query() == {"page": "2", "sort": "name"}

    def test_get_has_no_body_params(self) -> None:
        request = _request(
            "GET",
            headers={"Content-Type": "application/json"},
            body=b'{"a": 1}',
        )
        assert request.post() == {}

    def test_post_form(self) -> None:
        request = _request(
            "POST",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body="name=Ada&age=36",
        )
        assert request.post("name") == "Ada"
        assert request.post() == {"name": "Ada", "age": "36"}

    def test_post_json(self) -> None:
        request = _request("POST", headers={"Content-Type": "application/json"}, body=b'{"n": 1}')
        assert request.post("n") == 1

    def test_put_json(self) -> None:
        request = _request("PUT", headers={"Content-Type": "application/json"}, body=b'{"n": 2}')
        assert request.post() == {"n": 2}

    def test_patch_form_encoded(self) -> None:
        request = _request(
            "PATCH",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=b"title=new",
        )
        assert request.post("title") == "new"

    def test_json_array_is_not_body_params(self) -> None:
        request = _request("PUT", headers={"Content-Type": "application/json"}, body=b"[1, 2]")
        assert request.post() == {}
        assert request.json() == [1, 2]

    def test_unknown_content_type_yields_empty(self) -> None:
        request = _request("PUT", headers={"Content-Type": "text/plain"}, body=b"hello")
        assert request.post() == {}
        assert request.body() == b"hello"

    def test_all_merges_with_body_winning(self) -> None:
        request = _request(
            "POST",
            "/?a=query&b=query",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=b"b=body",
        )
        assert request.all() == {"a": "query", "b": "body"}

    def test_route_params(self) -> None:
        request = _request("GET")
        assert request.input("id") is None
        request.set_params({"id": "7"})
        assert request.input("id") == "7"
        assert dict(request.params) == {"id": "7"}
        request.set_params({"slug": "x"})
        assert request.input("id") is None

    def test_params_view_is_read_only(self) -> None:
        request = _request("GET")
        request.set_params({"id": "1"})
        with pytest.raises(TypeError):
            request.params["id"] = "2"  # type: ignore[index]


# =============================================================================
# Body and JSON
# =============================================================================


class TestBody:
    def test_json(self) -> None:
        request = _request("POST", headers={"Content-Type": "application/json"}, body=b'{"a": [1]}')
        assert request.json() == {"a": [1]}

    def test_json_wrong_content_type(self) -> None:
        assert _request("POST", headers={"Content-Type": "text/plain"}, body=b"{}").json() is None

    def test_json_malformed(self) -> None:
        request = _request("POST", headers={"Content-Type": "application/json"}, body=b"{nope")
        assert request.json() is None
        assert request.post() == {}

    def test_json_empty(self) -> None:
        assert _request("POST", headers={"Content-Type": "application/json"}).json() is None

    def test_body_read_once(self) -> None:
        request = _request("POST", body=b"payload")
        assert request.body() == b"payload"
        assert request.body() == b"payload"

    def test_no_stream(self) -> None:
        assert Request({"REQUEST_METHOD": "POST"}).body() == b""

    def test_terminated_stream_without_length(self) -> None:
        environ = {
            "REQUEST_METHOD": "POST",
            "wsgi.input": io.BytesIO(b"chunked"),
            "wsgi.input_terminated": True,
        }
        assert Request(environ).body() == b"chunked"


class TestBodyLimit:
    CONTENT_TYPES = [
        "application/json",
        "application/x-www-form-urlencoded",
        "multipart/form-data; boundary=xyz",
        None,
    ]

    @pytest.mark.parametrize("content_type", CONTENT_TYPES)
    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "PATCH", "DELETE"])
    @pytest.mark.parametrize("accessor", ["post", "json", "files", "all"])
    def test_oversize_rejected_for_every_combination(
        self, method: str, content_type: str | None, accessor: str
    ) -> None:
        headers = {"Content-Type": content_type} if content_type else None
        request = _request(method, headers=headers, body=b"x" * 11, max_body_size=10)
        with pytest.raises(RequestBodyTooLarge) as exc_info:
            getattr(request, accessor)()
        assert exc_info.value.size == 11
        assert exc_info.value.limit == 10

    @pytest.mark.parametrize("accessor", ["post", "json", "files"])
    def test_oversize_rejected_with_form_source(self, accessor: str) -> None:
        request = Request.create("POST", "/", {"a": "1"}, body=b"x" * 11, max_body_size=10)
        with pytest.raises(RequestBodyTooLarge):
            getattr(request, accessor)()

    def test_rejected_before_reading(self) -> None:
        stream = io.BytesIO(b"x" * 100)
        environ = {"REQUEST_METHOD": "POST", "CONTENT_LENGTH": "100", "wsgi.input": stream}
        with pytest.raises(RequestBodyTooLarge):
            Request(environ, max_body_size=10).body()
        assert stream.tell() == 0

    def test_oversize_terminated_stream(self) -> None:
        environ = {
            "REQUEST_METHOD": "POST",
            "wsgi.input": io.BytesIO(b"x" * 20),
            "wsgi.input_terminated": True,
        }
        with pytest.raises(RequestBodyTooLarge) as exc_info:
            Request(environ, max_body_size=10).body()
        assert exc_info.value.size is None

    def test_exactly_at_limit(self) -> None:
        assert _request("POST", body=b"x" * 10, max_body_size=10).body() == b"x" * 10


# =============================================================================
# Files
# =============================================================================


class TestFiles:
    BOUNDARY = "xyz"

    def _upload(self) -> Request:
        body = (
            b"--xyz\r\n"
            b'Content-Disposition: form-data; name="caption"\r\n\r\n'
            b"hi\r\n"
            b"--xyz\r\n"
            b'Content-Disposition: form-data; name="doc"; filename="d.txt"\r\n'
            b"Content-Type: text/plain\r\n\r\n"
            b"content\r\n"
            b"--xyz--\r\n"
        )
        return _request(
            "POST",
            headers={"Content-Type": f"multipart/form-data; boundary={self.BOUNDARY}"},
            body=body,
        )

    def test_multipart_fields_and_files(self) -> None:
        request = self._upload()
        assert request.post("caption") == "hi"
        assert request.has_file("doc")
        assert request.file("doc").read() == b"content"
        assert set(request.files()) == {"doc"}
        assert request.files("missing") is None

    def test_no_files_without_multipart(self) -> None:
        assert _request("POST").files() == {}
        assert not _request("POST").has_file("doc")


# =============================================================================
# Factories
# =============================================================================


class TestCreate:
    def test_get_params_become_query(self) -> None:
        request = Request.create("GET", "/search", {"q": "lamp"})
        assert request.query("q") == "lamp"
        assert request.post() == {}

    def test_post_params_become_form(self) -> None:
        request = Request.create("post", "/users", {"name": "Ada"})
        assert request.method == "POST"
        assert request.post("name") == "Ada"
        assert request.content_type == "application/x-www-form-urlencoded"

    def test_headers(self) -> None:
        request = Request.create("GET", "/", headers={"Accept": "application/json"})
        assert request.expects_json()

    def test_query_in_uri(self) -> None:
        request = Request.create("GET", "/list?page=3")
        assert request.path == "/list"
        assert request.query("page") == "3"

    def test_repr(self) -> None:
        assert repr(Request.create("PUT", "/x")) == "<Request PUT /x>"


# =============================================================================
# Validation
# =============================================================================


class TestValidate:
    def test_route_param_first(self) -> None:
        request = Request.create("POST", "/users/5", {"id": "99", "name": "Ada"})
        request.set_params({"id": "5"})
        assert request.validate({"id": "required|integer", "name": "required|string"}) == {
            "id": "5",
            "name": "Ada",
        }

    def test_failure_names_field_and_rule(self) -> None:
        request = Request.create("POST", "/users", {"age": "old"})
        with pytest.raises(ValidationError) as exc_info:
            request.validate({"age": "required|integer"})
        assert exc_info.value.field == "age"
        assert exc_info.value.rule == "integer"

    def test_missing_required(self) -> None:
        with pytest.raises(ValidationError, match="required"):
            Request.create("POST", "/users", {}).validate({"name": "required"})

    def test_unknown_rule(self) -> None:
        with pytest.raises(UnknownValidationRule):
            Request.create("POST", "/", {"a": "1"}).validate({"a": "shiny"})

    def test_own_rule_registry(self) -> None:
        registry = default_rules.copy()
        registry.register("shiny", lambda v: None if v == "gold" else "Must be shiny")
        request = Request.create("POST", "/", {"a": "gold"}, rules=registry)
        assert request.rules is registry
        assert request.validate({"a": "shiny"}) == {"a": "gold"}

    def test_numeric_bounds_on_integer_field(self) -> None:
        request = Request.create("POST", "/users", {"age": "30"})
        assert request.validate({"age": "required|integer|min:18"}) == {"age": "30"}
