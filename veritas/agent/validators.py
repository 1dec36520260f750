"""Named validation rules for skill arguments.

Skill declarations reference rules by name (`"meaningful_statement"`), or by
name plus a comma separated parameter (`"require_any_of:file,rules,facts"`).
Plain callables are still accepted for one-off checks.
"""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from veritas.errors import SkillDefinitionError

COMMAND_LIKE = re.compile(r"^(validate|audit|challenge|check)\b", re.IGNORECASE)
MIN_STATEMENT_LENGTH = 12
MIN_DOCUMENT_LENGTH = 50


@dataclass
class ValidationResult:
    """Validator verdict; `value` replaces the raw input when valid."""
    valid: bool
    reason: str | None = None
    value: Any = None

    @classmethod
    def coerce(cls, raw: Any, original: Any) -> "ValidationResult":
        """Accept bools, mappings, None or ValidationResult from a validator."""
        if isinstance(raw, ValidationResult):
            result = raw
        elif raw is None:
            result = cls(valid=True)
        elif isinstance(raw, bool):
            result = cls(valid=raw)
        elif isinstance(raw, Mapping):
            result = cls(valid=bool(raw.get("valid")), reason=raw.get("reason"), value=raw.get("value"))
        else:
            result = cls(valid=bool(raw))
        if result.valid and result.value is None:
            result.value = original
        return result


RuleFn = Callable[..., ValidationResult]


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def meaningful_statement(value: Any, state: Mapping[str, Any]) -> ValidationResult:
    normalized = _text(value)
    if len(normalized) < MIN_STATEMENT_LENGTH:
        return ValidationResult(False, "The statement is too short to analyse.")
    if COMMAND_LIKE.match(normalized):
        return ValidationResult(False, "Input looks like a command, please provide the statement itself.")
    return ValidationResult(True, value=normalized)


def meaningful_document(value: Any, state: Mapping[str, Any]) -> ValidationResult:
    normalized = _text(value)
    if len(normalized) < MIN_DOCUMENT_LENGTH:
        return ValidationResult(False, "Document text is too short for a meaningful analysis.")
    return ValidationResult(True, value=normalized)


def non_empty(value: Any, state: Mapping[str, Any]) -> ValidationResult:
    if value is None or (isinstance(value, str) and not value.strip()):
        return ValidationResult(False, "A value is required.")
    return ValidationResult(True, value=value.strip() if isinstance(value, str) else value)


def positive_int(value: Any, state: Mapping[str, Any], maximum: str | None = None) -> ValidationResult:
    try:
        number = int(str(value).strip())
    except ValueError:
        return ValidationResult(False, f"'{value}' is not a whole number.")
    if number <= 0:
        return ValidationResult(False, "The number must be greater than zero.")
    if maximum and number > int(maximum):
        number = int(maximum)
    return ValidationResult(True, value=number)


def require_any_of(value: Any, state: Mapping[str, Any], names: str | None = None) -> ValidationResult:
    fields = [n.strip() for n in (names or "").split(",") if n.strip()]
    if value or any(state.get(name) for name in fields):
        return ValidationResult(True)
    listed = ", ".join(fields) or "a value"
    return ValidationResult(False, f"Please provide at least one of: {listed}.")


class ValidatorRegistry:
    """Registry of named validation rules."""

    def __init__(self):
        self._rules: dict[str, RuleFn] = {}

    def register(self, name: str, rule: RuleFn) -> None:
        self._rules[name] = rule

    def get(self, name: str) -> RuleFn | None:
        return self._rules.get(name)

    def validate(self, validator: Any, value: Any, state: Mapping[str, Any]) -> ValidationResult:
        """
        Run a validator reference against a value.

        Args:
            validator: Rule name (optionally `name:param`), callable, or None.
            value: The candidate value.
            state: All argument values known so far.

        Raises:
            SkillDefinitionError: If a rule name is not registered.
        """
        if validator is None:
            return ValidationResult(True, value=value)
        if callable(validator):
            return ValidationResult.coerce(validator(value, state), value)
        if isinstance(validator, str):
            name, _, param = validator.partition(":")
            rule = self._rules.get(name.strip())
            if rule is None:
                raise SkillDefinitionError(f"Unknown validation rule '{name.strip()}'.")
            raw = rule(value, state, param) if param else rule(value, state)
            return ValidationResult.coerce(raw, value)
        raise SkillDefinitionError(f"Unsupported validator {validator!r}.")

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: str) -> bool:
        return name in self._rules


def default_validators() -> ValidatorRegistry:
    registry = ValidatorRegistry()
    registry.register("meaningful_statement", meaningful_statement)
    registry.register("meaningful_document", meaningful_document)
    registry.register("non_empty", non_empty)
    registry.register("positive_int", positive_int)
    registry.register("require_any_of", require_any_of)
    return registry
