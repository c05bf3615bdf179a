"""Validation result — immutable container for validated data or errors."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of validating a mapping against a set of rules.

    The result is falsy when invalid, so you can write::

        result = validate(request.all(), rules)
        if not result:
            return Response.json({"errors": result.errors}, 422)

    ``data`` holds the values of every field that passed. ``errors`` maps
    failing field names to their messages::

        {"email": ["Must be a valid email address"]}
    """

    data: dict[str, Any]
    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        """True if validation passed with no errors."""
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid
