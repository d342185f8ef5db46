"""Structural validator compiler.

``compile_schema`` turns a FormSchema into a CompiledValidator holding one
check per field. Checks are pure: the same value always yields the same
StructuralOutcome, and a compiled validator can be shared across every
session rendering its schema.

Text-like checks stop at the first violated rule, in this order:
required, type format (email grammar / choice membership), minLength,
maxLength, pattern.
"""

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Protocol

from formforge.core.types import FieldType
from formforge.exceptions import SchemaError
from formforge.schema.loader import FieldDefinition, FormSchema
from formforge.validation.types import VALID, StructuralOutcome


# =============================================================================
# Type-Specific Format Patterns
# =============================================================================

# Email: Basic RFC 5322 compliant pattern
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_TRUTHY = {"true", "1", "yes", "on"}


def is_empty(value: Any) -> bool:
    """Check if a value is considered empty."""
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def _fmt(number: float) -> str:
    """Render a bound without a trailing '.0' for whole numbers."""
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


def _fail(message: str, code: str) -> StructuralOutcome:
    return StructuralOutcome(valid=False, message=message, code=code)


def parse_number(value: Any) -> int | float | None:
    """Coerce a value to a number. Returns None if it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def parse_bool(value: Any) -> bool:
    """Coerce a checkbox value. Strings are checked only for true, 1, yes or on."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def parse_date(value: Any) -> date | None:
    """Coerce a value to a calendar date. Returns None if it is not one."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and ISO_DATE_PATTERN.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


# =============================================================================
# Field Checks
# =============================================================================


class FieldCheck(Protocol):
    """A compiled structural check for one field."""

    field: FieldDefinition

    def check(self, value: Any) -> StructuralOutcome:
        ...

    def coerce(self, value: Any) -> Any:
        ...


@dataclass(frozen=True)
class TextFieldCheck:
    """Check for text, textarea, email, select and radio fields."""

    field: FieldDefinition
    pattern: re.Pattern[str] | None = None
    allowed: frozenset[str] | None = None

    def check(self, value: Any) -> StructuralOutcome:
        label = self.field.label
        rules = self.field.text_constraints

        if is_empty(value):
            if self.field.required:
                return _fail(f"{label} is required", "REQUIRED")
            return VALID

        text = value if isinstance(value, str) else str(value)

        if self.field.type == FieldType.EMAIL and not EMAIL_PATTERN.match(text):
            return _fail(f"{label} must be a valid email address", "INVALID_EMAIL")

        if self.allowed is not None and text not in self.allowed:
            return _fail(f"'{text}' is not a valid option for {label}", "INVALID_OPTION")

        if rules.min_length is not None and len(text) < rules.min_length:
            return _fail(
                f"{label} must be at least {rules.min_length} characters",
                "MIN_LENGTH",
            )

        if rules.max_length is not None and len(text) > rules.max_length:
            return _fail(
                f"{label} must be at most {rules.max_length} characters",
                "MAX_LENGTH",
            )

        if self.pattern is not None and not self.pattern.fullmatch(text):
            return _fail(f"{label} format is invalid", "PATTERN_MISMATCH")

        return VALID

    def coerce(self, value: Any) -> Any:
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class NumberFieldCheck:
    field: FieldDefinition

    def check(self, value: Any) -> StructuralOutcome:
        label = self.field.label
        rules = self.field.numeric_constraints

        if is_empty(value):
            if self.field.required:
                return _fail(f"{label} is required", "REQUIRED")
            return VALID

        number = parse_number(value)
        if number is None:
            return _fail(f"{label} must be a number", "INVALID_NUMBER")

        if rules.min is not None and number < rules.min:
            return _fail(f"{label} must be at least {_fmt(rules.min)}", "MIN_VALUE")

        if rules.max is not None and number > rules.max:
            return _fail(f"{label} must be at most {_fmt(rules.max)}", "MAX_VALUE")

        return VALID

    def coerce(self, value: Any) -> Any:
        if is_empty(value):
            return None
        return parse_number(value)


@dataclass(frozen=True)
class DateFieldCheck:
    field: FieldDefinition

    def check(self, value: Any) -> StructuralOutcome:
        if is_empty(value):
            if self.field.required:
                return _fail(f"{self.field.label} is required", "REQUIRED")
            return VALID

        if parse_date(value) is None:
            return _fail(
                f"{self.field.label} must be a valid date (YYYY-MM-DD)",
                "INVALID_DATE",
            )
        return VALID

    def coerce(self, value: Any) -> Any:
        if is_empty(value):
            return None
        return parse_date(value)


@dataclass(frozen=True)
class CheckboxFieldCheck:
    """Checkboxes default to False and are never required-blocking.

    ``required`` is accepted on a checkbox definition but not enforced.
    """

    field: FieldDefinition

    def check(self, value: Any) -> StructuralOutcome:
        return VALID

    def coerce(self, value: Any) -> bool:
        return parse_bool(value)


def _build_text_check(field: FieldDefinition) -> TextFieldCheck:
    rules = field.text_constraints
    pattern = None
    if rules.pattern is not None:
        try:
            pattern = re.compile(rules.pattern)
        except re.error as exc:
            raise SchemaError(
                f"Field '{field.id}' has an invalid pattern '{rules.pattern}': {exc}",
                field_id=field.id,
            ) from exc

    allowed = None
    if field.type.requires_options:
        allowed = frozenset(o.value for o in field.options)

    return TextFieldCheck(field=field, pattern=pattern, allowed=allowed)


_CHECK_BUILDERS: dict[FieldType, Callable[[FieldDefinition], FieldCheck]] = {
    FieldType.TEXT: _build_text_check,
    FieldType.EMAIL: _build_text_check,
    FieldType.TEXTAREA: _build_text_check,
    FieldType.SELECT: _build_text_check,
    FieldType.RADIO: _build_text_check,
    FieldType.NUMBER: NumberFieldCheck,
    FieldType.DATE: DateFieldCheck,
    FieldType.CHECKBOX: CheckboxFieldCheck,
}

if set(_CHECK_BUILDERS) != set(FieldType):  # pragma: no cover
    raise RuntimeError("_CHECK_BUILDERS must cover every FieldType")


# =============================================================================
# Compiled Validator
# =============================================================================


class CompiledValidator:
    """Structural validator for one schema.

    Read-only after construction; holds no state between calls.
    """

    def __init__(self, schema: FormSchema, checks: dict[str, FieldCheck]):
        self.schema = schema
        self.checks: Mapping[str, FieldCheck] = MappingProxyType(dict(checks))

    def validate_field(self, field_id: str, value: Any) -> StructuralOutcome:
        """Check a single field value.

        Raises:
            KeyError: If the field is not part of the schema
        """
        return self.checks[field_id].check(value)

    def validate(self, values: Mapping[str, Any]) -> dict[str, StructuralOutcome]:
        """Check every schema field. Missing values are treated as empty."""
        return {
            field_id: check.check(values.get(field_id))
            for field_id, check in self.checks.items()
        }

    def failing_fields(self, values: Mapping[str, Any]) -> list[str]:
        """Field ids with a structural failure, in schema order."""
        return [
            field_id
            for field_id, outcome in self.validate(values).items()
            if not outcome.valid
        ]

    def coerce(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Convert raw values to their typed form (numbers, dates, booleans).

        Only meaningful for values that pass validation.
        """
        return {
            field_id: check.coerce(values.get(field_id))
            for field_id, check in self.checks.items()
        }


def compile_schema(schema: FormSchema) -> CompiledValidator:
    """Compile a form schema into a structural validator.

    Args:
        schema: The form schema to compile

    Returns:
        A CompiledValidator with one check per field

    Raises:
        SchemaError: On duplicate field ids, a select/radio field without
            options, or an invalid pattern
    """
    checks: dict[str, FieldCheck] = {}

    for field in schema.fields:
        if field.id in checks:
            raise SchemaError(
                f"Duplicate field id '{field.id}' in form '{schema.id}'",
                field_id=field.id,
            )
        if field.type.requires_options and not field.options:
            raise SchemaError(
                f"Field '{field.id}' of type {field.type.value} requires at least one option",
                field_id=field.id,
            )
        checks[field.id] = _CHECK_BUILDERS[field.type](field)

    return CompiledValidator(schema, checks)


class ValidatorCache:
    """Compiles each distinct schema once.

    Schemas are immutable values, so equal schemas share a validator. A
    changed schema is a different key and is compiled afresh.
    """

    def __init__(self) -> None:
        self._validators: dict[FormSchema, CompiledValidator] = {}

    def get(self, schema: FormSchema) -> CompiledValidator:
        validator = self._validators.get(schema)
        if validator is None:
            validator = compile_schema(schema)
            self._validators[schema] = validator
        return validator

    def clear(self) -> None:
        self._validators.clear()

    def __len__(self) -> int:
        return len(self._validators)
