"""Declarative validation — rule strings, composable rules, clean results.

Rules are given per field as a pipe-separated string or as a list of
tokens and rule callables::

    rules = {
        "id": "required|integer",
        "name": ["required", "string", "max:50"],
        "role": "in:admin,editor",
    }

``check_field()`` raises on the first failure (``Request.validate()``
uses it); ``validate()`` collects every field's errors instead::

    result = validate(request.all(), rules)
    if not result:
        return Response.json({"errors": result.errors}, 422)
"""

from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias

from lightcore.errors import UnknownValidationRule, ValidationError
from lightcore.validation.result import ValidationResult
from lightcore.validation.rules import (
    NUMERIC_RULES,
    Rule,
    RuleFactory,
    RuleRegistry,
    boolean,
    default_rules,
    email,
    integer,
    max_size,
    max_value,
    min_size,
    min_value,
    numeric,
    one_of,
    register_rule,
    registered_rules,
    required,
    resolve_rule,
    string,
)

__all__ = [
    "Rule",
    "RuleFactory",
    "RuleRegistry",
    "UnknownValidationRule",
    "ValidationError",
    "ValidationResult",
    "boolean",
    "check_field",
    "default_rules",
    "email",
    "integer",
    "max_size",
    "max_value",
    "min_size",
    "min_value",
    "numeric",
    "one_of",
    "register_rule",
    "registered_rules",
    "required",
    "resolve_rule",
    "string",
    "validate",
]

FieldRules: TypeAlias = str | Sequence[str | Rule]


def parse_rules(
    field: str, rules: FieldRules, registry: RuleRegistry | None = None
) -> list[tuple[str, Rule]]:
    """Resolve a field's rule spec into ``(token, rule)`` pairs, in order.

    Names are looked up in *registry* (the default registry when omitted).
    On a field declared ``integer`` or ``numeric``, ``min``/``max`` bound
    the value rather than its length.

    Raises ``UnknownValidationRule`` for an unregistered name or a bad
    argument, before any rule is run.
    """
    if registry is None:
        registry = default_rules
    items: Sequence[str | Rule] = rules.split("|") if isinstance(rules, str) else rules
    tokens = [item.strip() for item in items if isinstance(item, str)]
    numeric_field = any(token in NUMERIC_RULES for token in tokens)
    resolved: list[tuple[str, Rule]] = []
    for item in items:
        if callable(item):
            resolved.append((getattr(item, "__name__", repr(item)), item))
            continue
        token = item.strip()
        if not token:
            continue
        try:
            resolved.append((token, registry.resolve(token, numeric=numeric_field)))
        except LookupError:
            raise UnknownValidationRule(field, token) from None
        except ValueError as exc:
            raise UnknownValidationRule(field, token, str(exc)) from exc
    return resolved


def check_field(
    field: str, value: Any, rules: FieldRules, registry: RuleRegistry | None = None
) -> None:
    """Run *rules* against *value* in order; raise on the first failure.

    Raises ``ValidationError(field, rule, message)`` naming the failing
    rule, or ``UnknownValidationRule`` for a rule that doesn't exist.
    """
    for token, rule in parse_rules(field, rules, registry):
        message = rule(value)
        if message is not None:
            raise ValidationError(field, token, message)


def validate(
    data: Mapping[str, Any],
    rules: Mapping[str, FieldRules],
    registry: RuleRegistry | None = None,
) -> ValidationResult:
    """Validate *data* against *rules* without raising on failed rules.

    Every field is checked. A field whose ``required`` rule fails stops
    there; other failures are all collected. Unknown rule names still
    raise ``UnknownValidationRule``.
    """
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, Any] = {}

    for field_name, field_rules in rules.items():
        value = data.get(field_name)
        field_errors: list[str] = []
        for token, rule in parse_rules(field_name, field_rules, registry):
            message = rule(value)
            if message is not None:
                field_errors.append(message)
                # Nothing else is meaningful on a missing value
                if token == "required":
                    break

        if field_errors:
            errors[field_name] = field_errors
        else:
            cleaned[field_name] = value

    return ValidationResult(data=cleaned, errors=errors)
