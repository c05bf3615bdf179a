"""HTTP request built from a WSGI-style environment snapshot.

Every derived value (method, path, headers, parameters, body) is computed
on first access and cached on the instance. The one mutation a request
sees is ``set_params()``: the matched route injects its path parameters
after matching, and handlers observe the post-injection state.
"""

from __future__ import annotations

import io
import ipaddress
import json as json_module
from collections.abc import Callable, Mapping, Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlsplit

from lightcore.config import DEFAULT_MAX_BODY_SIZE
from lightcore.errors import RequestBodyTooLarge
from lightcore.http.forms import (
    FORM_URLENCODED,
    MULTIPART,
    FormData,
    UploadFile,
    is_form_content_type,
    parse_form_data,
)
from lightcore.http.headers import Headers
from lightcore.http.query import QueryParams

if TYPE_CHECKING:
    from lightcore.validation.rules import RuleRegistry

VALID_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

JSON_CONTENT_TYPE = "application/json"

# Checked in order; the first valid address wins
_PROXY_HEADERS = ("HTTP_X_FORWARDED_FOR", "HTTP_X_REAL_IP", "HTTP_CLIENT_IP")

_MISSING: Any = object()


class Request:
    """An HTTP request with lazy, memoized access to its parts.

    Construct from an environment mapping (``REQUEST_METHOD``,
    ``REQUEST_URI`` or ``PATH_INFO``/``QUERY_STRING``, ``HTTP_*`` headers,
    ``CONTENT_TYPE``, ``CONTENT_LENGTH``, ``HTTPS``, ``SERVER_PORT`` and a
    ``wsgi.input`` stream). Query, form and file collections may be
    supplied separately; when omitted they are derived from the
    environment and the body.

    Usage::

        request = Request(environ)
        request.method            # "POST"
        request.path              # "/users/42"
        request.header("Accept")  # "application/json"
        request.post("name")      # body parameter
        request.input("id")       # route parameter (after matching)
    """

    __slots__ = (
        "_cache",
        "_environ",
        "_files",
        "_form",
        "_max_body_size",
        "_params",
        "_query",
        "_rules",
    )

    def __init__(
        self,
        environ: Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, Any] | None = None,
        form: Mapping[str, Any] | None = None,
        files: Mapping[str, UploadFile] | None = None,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
        rules: RuleRegistry | None = None,
    ) -> None:
        self._environ: Mapping[str, Any] = environ if environ is not None else {}
        self._query = query
        self._form = form
        self._files = files
        self._max_body_size = max_body_size
        self._rules = rules
        self._params: dict[str, Any] = {}
        self._cache: dict[str, Any] = {}

    def _memo(self, key: str, compute: Callable[[], Any]) -> Any:
        value = self._cache.get(key, _MISSING)
        if value is _MISSING:
            value = compute()
            self._cache[key] = value
        return value

    # -- Request line --

    @property
    def method(self) -> str:
        """The uppercased HTTP method, ``GET`` when absent or unrecognized."""

        def compute() -> str:
            method = str(self._environ.get("REQUEST_METHOD") or "GET").upper()
            return method if method in VALID_METHODS else "GET"

        return self._memo("method", compute)

    @property
    def request_uri(self) -> str:
        """The raw request target: path plus query string."""

        def compute() -> str:
            for key in ("REQUEST_URI", "RAW_URI"):
                value = self._environ.get(key)
                if value:
                    return str(value)
            path = quote(
                str(self._environ.get("SCRIPT_NAME", "")) + str(self._environ.get("PATH_INFO", "")),
                safe="/;=,:@!$&'()*+",
            )
            query_string = self._environ.get("QUERY_STRING")
            path = path or "/"
            return f"{path}?{query_string}" if query_string else path

        return self._memo("request_uri", compute)

    @property
    def path(self) -> str:
        """The request URI truncated at the first ``?``; ``/`` when empty."""
        return self._memo("path", lambda: self.request_uri.split("?", 1)[0] or "/")

    @property
    def scheme(self) -> str:
        """``https`` when the HTTPS flag is on or the port is 443, else ``http``."""

        def compute() -> str:
            https = str(self._environ.get("HTTPS", "")).lower()
            if https == "on" or self._environ.get("wsgi.url_scheme") == "https":
                return "https"
            try:
                port = int(self._environ.get("SERVER_PORT") or 80)
            except ValueError:
                port = 80
            return "https" if port == 443 else "http"

        return self._memo("scheme", compute)

    @property
    def host(self) -> str:
        return self.header("host") or str(self._environ.get("SERVER_NAME") or "localhost")

    @property
    def uri(self) -> str:
        """The complete URI: scheme, host, path and query."""
        return self._memo("uri", lambda: f"{self.scheme}://{self.host}{self.request_uri}")

    @property
    def query_string(self) -> str:
        """The raw query string, without the leading ``?``."""

        def compute() -> str:
            value = self._environ.get("QUERY_STRING")
            if value is not None:
                return str(value)
            return urlsplit(self.request_uri).query

        return self._memo("query_string", compute)

    # -- Headers --

    @property
    def headers(self) -> Headers:
        """All request headers, keyed by lowercase hyphenated name."""
        return self._memo("headers", lambda: Headers.from_environ(self._environ))

    def header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        value = self.headers.get(name)
        return default if value is None else value

    @property
    def content_type(self) -> str:
        return self.header("content-type")

    @property
    def content_length(self) -> int | None:
        """The declared body length, or ``None`` when absent or unparseable."""
        value = self._environ.get("CONTENT_LENGTH")
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    # -- Parameters --

    def query(self, key: str | None = None, default: Any = None) -> Any:
        """A query parameter, or every query parameter when *key* is omitted."""
        params = self._query_params()
        if key is None:
            return dict(params)
        return params.get(key, default)

    def post(self, key: str | None = None, default: Any = None) -> Any:
        """A body parameter, or every body parameter when *key* is omitted."""
        params = self._body_params()
        if key is None:
            return dict(params)
        return params.get(key, default)

    def all(self) -> dict[str, Any]:
        """Query and body parameters merged; body values win on conflict."""
        return {**self._query_params(), **self._body_params()}

    def input(self, key: str, default: Any = None) -> Any:
        """A route parameter injected by the matched route."""
        return self._params.get(key, default)

    @property
    def params(self) -> Mapping[str, Any]:
        """Read-only view of the injected route parameters."""
        return MappingProxyType(self._params)

    def set_params(self, params: Mapping[str, Any]) -> None:
        """Inject route-extracted parameters, replacing any previous ones."""
        self._params = dict(params)

    def _query_params(self) -> dict[str, Any]:
        def compute() -> dict[str, Any]:
            if self._query is not None:
                return dict(self._query)
            return QueryParams(self.query_string).to_dict()

        return self._memo("query", compute)

    # -- Body --

    def body(self) -> bytes:
        """The raw request body, capped at the configured maximum.

        Raises ``RequestBodyTooLarge`` before reading anything when the
        declared length exceeds the cap. Without a declared length at most
        ``cap + 1`` bytes are read to detect an oversized body.
        """
        return self._memo("body", self._read_body)

    def _read_body(self) -> bytes:
        limit = self._max_body_size
        declared = self.content_length
        if declared is not None and declared > limit:
            raise RequestBodyTooLarge(declared, limit)

        stream = self._environ.get("wsgi.input")
        if stream is None:
            return b""
        if declared is not None:
            raw = stream.read(declared) if declared > 0 else b""
        elif self._environ.get("wsgi.input_terminated"):
            raw = stream.read(limit + 1)
        else:
            # No declared length on a non-terminated stream: nothing to read
            raw = b""

        if len(raw) > limit:
            raise RequestBodyTooLarge(None if declared is None else len(raw), limit)
        return raw

    def _body_params(self) -> dict[str, Any]:
        return self._memo("body_params", self._parse_body)

    def _parse_body(self) -> dict[str, Any]:
        """Derive body parameters by method and Content-Type.

        - GET / HEAD: empty
        - POST with a form content type: the form source
        - otherwise: the raw body as JSON or form-encoded, else empty

        The size cap is enforced first, for every method.
        """
        raw = self.body()
        method = self.method
        content_type = self.content_type

        if method in ("GET", "HEAD"):
            return {}
        if method == "POST" and is_form_content_type(content_type):
            return self._form_source()
        if not raw:
            return {}
        if JSON_CONTENT_TYPE in content_type:
            data = _loads(raw)
            return data if isinstance(data, dict) else {}
        if is_form_content_type(content_type):
            return self._parsed_form().to_dict()
        return {}

    def _form_source(self) -> dict[str, Any]:
        if self._form is not None:
            return dict(self._form)
        return self._parsed_form().to_dict()

    def _parsed_form(self) -> FormData:
        def compute() -> FormData:
            content_type = self.content_type
            if not is_form_content_type(content_type):
                return FormData()
            return parse_form_data(self.body(), content_type)

        return self._memo("form", compute)

    def json(self) -> Any:
        """The body parsed as JSON.

        Returns ``None`` when the Content-Type is not JSON, when the body
        is empty, or when it is malformed. The size cap applies either way.
        """
        raw = self.body()
        if JSON_CONTENT_TYPE not in self.content_type:
            return None
        if not raw:
            return None
        return _loads(raw)

    # -- Files --

    def files(self, key: str | None = None) -> Any:
        """An uploaded file, or every uploaded file when *key* is omitted."""
        files = self._all_files()
        if key is None:
            return dict(files)
        return files.get(key)

    def file(self, name: str) -> UploadFile | None:
        return self._all_files().get(name)

    def has_file(self, name: str) -> bool:
        """True if *name* carried an actual upload."""
        upload = self.file(name)
        return upload is not None and upload.ok

    def _all_files(self) -> Mapping[str, UploadFile]:
        def compute() -> Mapping[str, UploadFile]:
            if self._files is not None:
                return dict(self._files)
            self.body()
            if MULTIPART not in self.content_type:
                return {}
            return dict(self._parsed_form().files)

        return self._memo("files", compute)

    # -- Predicates and client info --

    def is_secure(self) -> bool:
        return self.scheme == "https"

    def is_ajax(self) -> bool:
        return self.header("x-requested-with").lower() == "xmlhttprequest"

    def is_method(self, method: str) -> bool:
        return method.upper() == self.method

    def expects_json(self) -> bool:
        """True if the Accept header prefers JSON, or the request is AJAX."""
        return JSON_CONTENT_TYPE in self.header("accept") or self.is_ajax()

    def ip(self) -> str:
        """The client address, honoring common proxy headers."""
        for key in _PROXY_HEADERS:
            value = self._environ.get(key)
            if not value:
                continue
            candidate = str(value).split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
            except ValueError:
                continue
            return candidate
        return str(self._environ.get("REMOTE_ADDR") or "0.0.0.0")

    def user_agent(self) -> str:
        return self.header("user-agent")

    # -- Validation --

    @property
    def rules(self) -> RuleRegistry | None:
        """Registry that ``validate()`` resolves rule names in (the default one when None)."""
        return self._rules

    def set_rules(self, rules: RuleRegistry) -> None:
        self._rules = rules

    def validate(self, rules: Mapping[str, str | Sequence[str]]) -> dict[str, Any]:
        """Validate route and body parameters against declarative rules.

        Each field's value is looked up in the route parameters first,
        then in the body parameters. Rules run in the order listed; the
        first failure raises ``ValidationError`` naming the field and rule.
        An unknown rule name raises ``UnknownValidationRule``.

        ::

            request.validate({"id": "required|integer", "name": "required|string"})

        Returns the validated values keyed by field name.
        """
        from lightcore.validation import check_field

        validated: dict[str, Any] = {}
        for field_name, field_rules in rules.items():
            value = self.input(field_name)
            if value is None:
                value = self.post(field_name)
            check_field(field_name, value, field_rules, self._rules)
            validated[field_name] = value
        return validated

    # -- Factories --

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, Any],
        *,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
        rules: RuleRegistry | None = None,
    ) -> Request:
        """Create a Request from a WSGI environ."""
        return cls(environ, max_body_size=max_body_size, rules=rules)

    @classmethod
    def create(
        cls,
        method: str = "GET",
        uri: str = "/",
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        body: bytes | str = b"",
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
        rules: RuleRegistry | None = None,
    ) -> Request:
        """Build a request for tests and tooling.

        GET parameters become the query source, POST parameters the form
        source (with a url-encoded Content-Type unless one is given).
        Headers become ``HTTP_*`` environment keys.
        """
        method = method.upper()
        environ = make_environ(method, uri, headers, body)

        query = None
        form = None
        if params is not None:
            if method == "GET":
                query = dict(params)
            elif method == "POST":
                form = dict(params)
                environ.setdefault("CONTENT_TYPE", FORM_URLENCODED)

        return cls(environ, query=query, form=form, max_body_size=max_body_size, rules=rules)

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"


def _loads(raw: bytes) -> Any:
    try:
        return json_module.loads(raw)
    except ValueError:
        return None


def make_environ(
    method: str = "GET",
    uri: str = "/",
    headers: Mapping[str, str] | None = None,
    body: bytes | str = b"",
) -> dict[str, Any]:
    """A minimal WSGI environ for *method* and *uri* (test client, ``Request.create``)."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    path, _, query_string = uri.partition("?")

    environ: dict[str, Any] = {
        "REQUEST_METHOD": method.upper(),
        "REQUEST_URI": uri,
        "SCRIPT_NAME": "",
        "PATH_INFO": path or "/",
        "QUERY_STRING": query_string,
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "80",
        "SERVER_PROTOCOL": "HTTP/1.1",
        "HTTPS": "off",
        "REMOTE_ADDR": "127.0.0.1",
        "wsgi.url_scheme": "http",
        "wsgi.input": io.BytesIO(body),
        "CONTENT_LENGTH": str(len(body)),
    }
    environ.update(Headers(headers).to_environ())
    return environ
