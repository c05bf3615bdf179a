"""Case-insensitive request headers.

Implements ``Mapping[str, str]``. Built from a WSGI-style environment,
where headers arrive as ``HTTP_*`` keys plus the unprefixed
``CONTENT_TYPE`` and ``CONTENT_LENGTH``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

_UNPREFIXED = ("CONTENT_TYPE", "CONTENT_LENGTH")


def normalize_header_name(key: str) -> str:
    """Turn an environment key into a lowercase hyphenated header name.

    ::

        normalize_header_name("HTTP_X_REQUESTED_WITH")  # "x-requested-with"
        normalize_header_name("CONTENT_TYPE")           # "content-type"
    """
    if key.startswith("HTTP_"):
        key = key[5:]
    return key.replace("_", "-").lower()


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    Keys are stored normalized (lowercase, hyphenated). Lookups accept
    any casing and either ``-`` or ``_`` as separator.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, str] | None = None) -> None:
        normalized = {normalize_header_name(k): str(v) for k, v in (data or {}).items()}
        object.__setattr__(self, "_data", normalized)

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> Headers:
        """Collect headers from ``HTTP_*``, ``CONTENT_TYPE`` and ``CONTENT_LENGTH`` keys."""
        data: dict[str, str] = {}
        for key, value in environ.items():
            if not isinstance(key, str):
                continue
            if key.startswith("HTTP_") or key in _UNPREFIXED:
                data[normalize_header_name(key)] = str(value)
        return cls(data)

    def __getitem__(self, key: str) -> str:
        return self._data[normalize_header_name(key)]

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return normalize_header_name(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {v!r}" for k, v in self._data.items())
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the value for *key*, or *default* if missing."""
        return self._data.get(normalize_header_name(key), default)

    def to_environ(self) -> dict[str, str]:
        """Render back to environment keys (``HTTP_*`` / ``CONTENT_*``)."""
        result: dict[str, str] = {}
        for name, value in self._data.items():
            key = name.upper().replace("-", "_")
            if key not in _UNPREFIXED:
                key = f"HTTP_{key}"
            result[key] = value
        return result
