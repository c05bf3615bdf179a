"""Built-in validation rules and the rule registry.

Each rule is a callable with the signature::

    def rule(value: Any) -> str | None:
        '''Return an error message, or None if valid.'''

Parameterized rules are factories that take the text after the colon in
a rule token (``"min:3"`` -> ``"3"``) and return a rule::

    def starts_with(argument: str) -> Rule:
        ...

Rule strings refer to registered rules by name: ``"required|string|max:50"``.
Rule names live in a ``RuleRegistry``. ``register_rule()`` adds names to the
default registry that every new ``App`` copies; looking up an unknown name
fails.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sized
from typing import Any, TypeAlias

Rule: TypeAlias = Callable[[Any], str | None]
RuleFactory: TypeAlias = Callable[[str], Rule]


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


def required(value: Any) -> str | None:
    """Value must be present: not None, not blank, not an empty collection."""
    if value is None:
        return "This field is required"
    if isinstance(value, str):
        if not value.strip():
            return "This field is required"
    elif isinstance(value, Sized) and len(value) == 0:
        return "This field is required"
    return None


# ---------------------------------------------------------------------------
# Type
# ---------------------------------------------------------------------------

_INT_RE = re.compile(r"^\s*[+-]?\d+\s*$")


def string(value: Any) -> str | None:
    """Value must be a string."""
    if not isinstance(value, str):
        return "Must be a string"
    return None


def integer(value: Any) -> str | None:
    """Value must be an int, or text that spells one (``"42"``, ``"-7"``)."""
    if isinstance(value, bool):
        return "Must be a whole number"
    if isinstance(value, int):
        return None
    if isinstance(value, float) and value.is_integer():
        return None
    if isinstance(value, str) and _INT_RE.match(value):
        return None
    return "Must be a whole number"


def numeric(value: Any) -> str | None:
    """Value must be a finite number, or text that parses as one."""
    if isinstance(value, bool):
        return "Must be a number"
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return "Must be a number"
    else:
        return "Must be a number"
    if not math.isfinite(number):
        return "Must be a number"
    return None


_BOOLEAN_VALUES = frozenset({"0", "1", "true", "false"})


def boolean(value: Any) -> str | None:
    """Value must be a bool, 0/1, or one of ``"0" "1" "true" "false"``."""
    if isinstance(value, bool) or value in (0, 1):
        return None
    if isinstance(value, str) and value.strip().lower() in _BOOLEAN_VALUES:
        return None
    return "Must be true or false"


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------

# Basic email pattern: structure only, not deliverability
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


def email(value: Any) -> str | None:
    """Value must be a valid email address (basic format check)."""
    if not isinstance(value, str) or not _EMAIL_RE.match(value):
        return "Must be a valid email address"
    return None


# ---------------------------------------------------------------------------
# Size and choice (parameterized)
# ---------------------------------------------------------------------------


def _measure(value: Any) -> float | None:
    """Numbers compare by value, strings and collections by length."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, Sized):
        return float(len(value))
    return None


def _number(value: Any) -> float | None:
    """Numbers and numeric text by value; anything else is unmeasurable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _bound(argument: str) -> float:
    try:
        return float(argument)
    except ValueError:
        msg = f"expected a number, got {argument!r}"
        raise ValueError(msg) from None


def _at_least(argument: str, measure: Callable[[Any], float | None]) -> Rule:
    limit = _bound(argument)

    def check(value: Any) -> str | None:
        size = measure(value)
        if size is None or size < limit:
            return f"Must be at least {argument}"
        return None

    return check


def _at_most(argument: str, measure: Callable[[Any], float | None]) -> Rule:
    limit = _bound(argument)

    def check(value: Any) -> str | None:
        size = measure(value)
        if size is None or size > limit:
            return f"Must be at most {argument}"
        return None

    return check


def min_size(argument: str) -> Rule:
    """``min:n`` — a number at least *n*, or a string/collection of at least *n* items."""
    return _at_least(argument, _measure)


def max_size(argument: str) -> Rule:
    """``max:n`` — a number at most *n*, or a string/collection of at most *n* items."""
    return _at_most(argument, _measure)


def min_value(argument: str) -> Rule:
    """``min:n`` on an ``integer`` or ``numeric`` field: the value itself is at least *n*."""
    return _at_least(argument, _number)


def max_value(argument: str) -> Rule:
    """``max:n`` on an ``integer`` or ``numeric`` field: the value itself is at most *n*."""
    return _at_most(argument, _number)


def one_of(argument: str) -> Rule:
    """``in:a,b,c`` — value (as text) must be one of the listed choices."""
    choices = tuple(choice.strip() for choice in argument.split(",") if choice.strip())
    if not choices:
        msg = "expected a comma-separated list of choices"
        raise ValueError(msg)
    allowed = frozenset(choices)

    def check(value: Any) -> str | None:
        if value is None or str(value) not in allowed:
            return f"Must be one of: {', '.join(choices)}"
        return None

    return check


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

# Rule names that make min/max compare a field's value numerically
NUMERIC_RULES = frozenset({"integer", "numeric"})


class RuleRegistry:
    """Rule names usable in rule strings.

    Every ``App`` owns a registry (``app.rules``) copied from the default
    one, so rules registered on one app never leak into another. The
    module-level ``register_rule()`` and ``resolve_rule()`` work on the
    default registry.

    Parameterized names can have a numeric variant, used instead when the
    same field is declared ``integer`` or ``numeric`` (``min``/``max``).
    """

    __slots__ = ("_factories", "_numeric", "_rules")

    def __init__(
        self,
        rules: dict[str, Rule] | None = None,
        factories: dict[str, RuleFactory] | None = None,
        numeric: dict[str, RuleFactory] | None = None,
    ) -> None:
        self._rules: dict[str, Rule] = dict(rules or {})
        self._factories: dict[str, RuleFactory] = dict(factories or {})
        self._numeric: dict[str, RuleFactory] = dict(numeric or {})

    def copy(self) -> RuleRegistry:
        return RuleRegistry(self._rules, self._factories, self._numeric)

    def register(
        self, name: str, check: Rule | RuleFactory, *, parameterized: bool = False
    ) -> None:
        """Make *check* available in rule strings under *name*.

        Plain rules take the value. With ``parameterized=True``, *check* is
        a factory receiving the text after ``name:`` and returning a rule.
        Re-registering a name replaces the previous rule, numeric variant
        included.
        """
        if not name or "|" in name or ":" in name:
            msg = f"Invalid rule name: {name!r}"
            raise ValueError(msg)
        self._rules.pop(name, None)
        self._factories.pop(name, None)
        self._numeric.pop(name, None)
        if parameterized:
            self._factories[name] = check  # type: ignore[assignment]
        else:
            self._rules[name] = check  # type: ignore[assignment]

    def resolve(self, token: str, *, numeric: bool = False) -> Rule:
        """Look up the rule for a single token such as ``"integer"`` or ``"max:10"``.

        With ``numeric=True`` a parameterized name's numeric variant wins.
        Raises ``LookupError`` for unregistered names and ``ValueError`` for
        a factory rejecting its argument (or a missing argument).
        """
        name, sep, argument = token.partition(":")
        name = name.strip()
        if sep:
            factory = (self._numeric.get(name) if numeric else None) or self._factories.get(name)
            if factory is None:
                raise LookupError(name)
            return factory(argument.strip())
        rule = self._rules.get(name)
        if rule is None:
            if name in self._factories:
                msg = f"rule {name!r} needs an argument, e.g. {name}:<value>"
                raise ValueError(msg)
            raise LookupError(name)
        return rule

    def names(self) -> list[str]:
        """Names usable in rule strings, sorted."""
        return sorted({*self._rules, *self._factories})

    def __contains__(self, name: object) -> bool:
        return name in self._rules or name in self._factories


default_rules = RuleRegistry(
    rules={
        "required": required,
        "string": string,
        "integer": integer,
        "numeric": numeric,
        "boolean": boolean,
        "email": email,
    },
    factories={
        "min": min_size,
        "max": max_size,
        "in": one_of,
    },
    numeric={
        "min": min_value,
        "max": max_value,
    },
)


def register_rule(name: str, check: Rule | RuleFactory, *, parameterized: bool = False) -> None:
    """Register *check* on the default registry, seen by apps created afterwards."""
    default_rules.register(name, check, parameterized=parameterized)


def resolve_rule(token: str, *, numeric: bool = False) -> Rule:
    """Resolve *token* against the default registry."""
    return default_rules.resolve(token, numeric=numeric)


def registered_rules() -> list[str]:
    """Names usable in rule strings on the default registry, sorted."""
    return default_rules.names()
