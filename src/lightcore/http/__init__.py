"""HTTP primitives — Request, Response, headers, query strings and forms."""

from lightcore.http.forms import FormData, UploadFile
from lightcore.http.headers import Headers
from lightcore.http.query import QueryParams
from lightcore.http.request import Request
from lightcore.http.response import Response

__all__ = ["FormData", "Headers", "QueryParams", "Request", "Response", "UploadFile"]
