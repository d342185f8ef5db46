"""Tests for the structural validator compiler."""

from datetime import date

import pytest

from formforge.core.types import FieldType
from formforge.exceptions import SchemaError
from formforge.schema.loader import (
    FieldDefinition,
    FieldOption,
    FormSchema,
    NumericConstraints,
    TextConstraints,
)
from formforge.validation.compiler import (
    EMAIL_PATTERN,
    CompiledValidator,
    ValidatorCache,
    compile_schema,
    parse_date,
    parse_number,
)


def make_field(
    field_id: str = "testField",
    field_type: FieldType = FieldType.TEXT,
    label: str = "Test Field",
    required: bool = False,
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: str | None = None,
    min_val: float | None = None,
    max_val: float | None = None,
    options: list[str] | None = None,
) -> FieldDefinition:
    """Helper to create a FieldDefinition for testing."""
    constraints = None
    if field_type == FieldType.NUMBER:
        constraints = NumericConstraints(min=min_val, max=max_val)
    elif field_type.is_text_like:
        constraints = TextConstraints(
            min_length=min_length, max_length=max_length, pattern=pattern
        )
    return FieldDefinition(
        id=field_id,
        type=field_type,
        label=label,
        required=required,
        constraints=constraints,
        options=tuple(FieldOption(value=o, label=o.title()) for o in options or []),
    )


def make_schema(*fields: FieldDefinition) -> FormSchema:
    return FormSchema(id="test-form", title="Test Form", fields=tuple(fields))


def compile_one(field: FieldDefinition) -> CompiledValidator:
    return compile_schema(make_schema(field))


# =============================================================================
# Pattern / parsing helpers
# =============================================================================


class TestPatterns:
    def test_email_valid(self):
        for email in ["test@example.com", "user.name@domain.co.uk", "user+tag@example.org"]:
            assert EMAIL_PATTERN.match(email), f"{email} should be valid"

    def test_email_invalid(self):
        for email in ["bob", "@example.com", "user@", "user@.com", "user name@example.com"]:
            assert not EMAIL_PATTERN.match(email), f"{email} should be invalid"


class TestParsing:
    def test_parse_number(self):
        assert parse_number("42") == 42
        assert parse_number(" 3.5 ") == 3.5
        assert parse_number(7) == 7
        assert parse_number("abc") is None
        assert parse_number(True) is None
        assert parse_number("nan") is None
        assert parse_number(None) is None

    def test_parse_date(self):
        assert parse_date("2024-02-29") == date(2024, 2, 29)
        assert parse_date(date(2024, 1, 1)) == date(2024, 1, 1)
        assert parse_date("2023-02-29") is None
        assert parse_date("20240101") is None
        assert parse_date("yesterday") is None


# =============================================================================
# Compile-time errors
# =============================================================================


class TestCompileErrors:
    def test_duplicate_field_id_rejected(self):
        schema = make_schema(make_field("email"), make_field("email"))
        with pytest.raises(SchemaError) as exc_info:
            compile_schema(schema)
        assert exc_info.value.field_id == "email"
        assert "Duplicate" in str(exc_info.value)

    @pytest.mark.parametrize("field_type", [FieldType.SELECT, FieldType.RADIO])
    def test_choice_field_without_options_rejected(self, field_type):
        with pytest.raises(SchemaError) as exc_info:
            compile_schema(make_schema(make_field("choice", field_type)))
        assert exc_info.value.field_id == "choice"

    def test_invalid_pattern_rejected(self):
        with pytest.raises(SchemaError):
            compile_schema(make_schema(make_field("code", pattern="[unclosed")))

    def test_valid_schema_accepted(self):
        validator = compile_schema(make_schema(
            make_field("name", required=True),
            make_field("age", FieldType.NUMBER),
            make_field("level", FieldType.SELECT, options=["low", "high"]),
            make_field("agree", FieldType.CHECKBOX),
        ))
        assert list(validator.checks) == ["name", "age", "level", "agree"]

    def test_empty_schema_accepted(self):
        assert compile_schema(make_schema()).validate({}) == {}


# =============================================================================
# Text-like fields
# =============================================================================


class TestTextChecks:
    @pytest.mark.parametrize("value", [None, "", "   ", "\t\n"])
    def test_required_fails_on_blank(self, value):
        validator = compile_one(make_field(required=True, min_length=5, pattern=r"\d+"))
        outcome = validator.validate_field("testField", value)
        assert not outcome.valid
        assert outcome.message == "Test Field is required"
        assert outcome.code == "REQUIRED"

    def test_optional_blank_passes(self):
        validator = compile_one(make_field(min_length=5))
        assert validator.validate_field("testField", "").valid

    def test_min_length_reported_before_pattern(self):
        validator = compile_one(make_field(min_length=5, pattern=r"[0-9]+"))
        outcome = validator.validate_field("testField", "ab")
        assert outcome.code == "MIN_LENGTH"
        assert outcome.message == "Test Field must be at least 5 characters"

    def test_max_length(self):
        validator = compile_one(make_field(max_length=3))
        assert validator.validate_field("testField", "abc").valid
        outcome = validator.validate_field("testField", "abcd")
        assert outcome.code == "MAX_LENGTH"

    def test_length_bounds_inclusive(self):
        validator = compile_one(make_field(min_length=2, max_length=4))
        assert validator.validate_field("testField", "ab").valid
        assert validator.validate_field("testField", "abcd").valid

    def test_pattern_must_fully_match(self):
        validator = compile_one(make_field(pattern=r"\d{3}"))
        assert validator.validate_field("testField", "123").valid
        outcome = validator.validate_field("testField", "1234")
        assert outcome.code == "PATTERN_MISMATCH"
        assert outcome.message == "Test Field format is invalid"

    def test_email_format(self):
        validator = compile_one(make_field("email", FieldType.EMAIL, label="Email", required=True))
        outcome = validator.validate_field("email", "bob")
        assert not outcome.valid
        assert "valid email" in outcome.message
        assert validator.validate_field("email", "bob@x.com").valid

    def test_email_format_before_length(self):
        validator = compile_one(make_field("email", FieldType.EMAIL, min_length=20))
        assert validator.validate_field("email", "bob").code == "INVALID_EMAIL"

    def test_select_rejects_unknown_option(self):
        validator = compile_one(make_field("level", FieldType.SELECT, options=["low", "high"]))
        assert validator.validate_field("level", "low").valid
        assert validator.validate_field("level", "medium").code == "INVALID_OPTION"

    def test_radio_required(self):
        validator = compile_one(
            make_field("size", FieldType.RADIO, required=True, options=["s", "m"])
        )
        assert validator.validate_field("size", None).code == "REQUIRED"
        assert validator.validate_field("size", "m").valid


# =============================================================================
# Number, date and checkbox fields
# =============================================================================


class TestNumberChecks:
    def test_not_a_number(self):
        validator = compile_one(make_field("age", FieldType.NUMBER, label="Age"))
        outcome = validator.validate_field("age", "abc")
        assert outcome.code == "INVALID_NUMBER"
        assert outcome.message == "Age must be a number"

    def test_bounds_inclusive(self):
        validator = compile_one(make_field("age", FieldType.NUMBER, min_val=13, max_val=120))
        assert validator.validate_field("age", "13").valid
        assert validator.validate_field("age", 120).valid
        assert validator.validate_field("age", "12").code == "MIN_VALUE"

    def test_max_exceeded_message(self):
        validator = compile_one(
            make_field("age", FieldType.NUMBER, label="Age", min_val=13, max_val=120)
        )
        outcome = validator.validate_field("age", "200")
        assert outcome.code == "MAX_VALUE"
        assert outcome.message == "Age must be at most 120"

    def test_required_number(self):
        validator = compile_one(make_field("qty", FieldType.NUMBER, required=True))
        assert validator.validate_field("qty", "").code == "REQUIRED"
        assert validator.validate_field("qty", 0).valid

    def test_boolean_is_not_a_number(self):
        validator = compile_one(make_field("qty", FieldType.NUMBER))
        assert validator.validate_field("qty", True).code == "INVALID_NUMBER"


class TestDateChecks:
    def test_required_date(self):
        validator = compile_one(make_field("start", FieldType.DATE, required=True))
        assert validator.validate_field("start", None).code == "REQUIRED"
        assert validator.validate_field("start", "2025-06-01").valid
        assert validator.validate_field("start", date(2025, 6, 1)).valid

    def test_invalid_calendar_date(self):
        validator = compile_one(make_field("start", FieldType.DATE, required=True))
        assert validator.validate_field("start", "2025-02-30").code == "INVALID_DATE"

    def test_optional_date_still_checks_format(self):
        validator = compile_one(make_field("start", FieldType.DATE))
        assert validator.validate_field("start", "").valid
        assert validator.validate_field("start", "soon").code == "INVALID_DATE"


class TestCheckboxChecks:
    def test_required_checkbox_not_enforced(self):
        validator = compile_one(make_field("terms", FieldType.CHECKBOX, required=True))
        assert validator.validate_field("terms", None).valid
        assert validator.validate_field("terms", False).valid

    def test_checkbox_coerces_to_bool(self):
        validator = compile_one(make_field("terms", FieldType.CHECKBOX))
        assert validator.coerce({}) == {"terms": False}
        assert validator.coerce({"terms": "true"}) == {"terms": True}
        assert validator.coerce({"terms": True}) == {"terms": True}


# =============================================================================
# Whole-form behaviour
# =============================================================================


class TestCompiledValidator:
    def test_validate_is_idempotent(self):
        validator = compile_schema(make_schema(
            make_field("name", required=True, min_length=2),
            make_field("age", FieldType.NUMBER, max_val=120),
        ))
        values = {"name": "J", "age": "200"}
        first = validator.validate(values)
        second = validator.validate(values)
        assert first == second
        assert values == {"name": "J", "age": "200"}

    def test_failing_fields_in_schema_order(self):
        validator = compile_schema(make_schema(
            make_field("a", required=True),
            make_field("b"),
            make_field("c", required=True),
        ))
        assert validator.failing_fields({"b": "x"}) == ["a", "c"]

    def test_coerce(self):
        validator = compile_schema(make_schema(
            make_field("name"),
            make_field("age", FieldType.NUMBER),
            make_field("start", FieldType.DATE),
        ))
        coerced = validator.coerce({"name": "Ann", "age": "31", "start": "2025-01-02"})
        assert coerced == {"name": "Ann", "age": 31, "start": date(2025, 1, 2)}

    def test_unknown_field_raises(self):
        validator = compile_one(make_field())
        with pytest.raises(KeyError):
            validator.validate_field("missing", "x")

    def test_checks_are_read_only(self):
        validator = compile_one(make_field())
        with pytest.raises(TypeError):
            validator.checks["other"] = None


class TestValidatorCache:
    def test_same_schema_compiled_once(self):
        cache = ValidatorCache()
        schema = make_schema(make_field("name"))
        assert cache.get(schema) is cache.get(schema)
        assert len(cache) == 1

    def test_changed_schema_recompiled(self):
        cache = ValidatorCache()
        schema = make_schema(make_field("name"))
        changed = make_schema(make_field("name", required=True))
        assert cache.get(schema) is not cache.get(changed)
        assert not cache.get(changed).validate_field("name", "").valid
        assert cache.get(schema).validate_field("name", "").valid

    def test_bad_schema_not_cached(self):
        cache = ValidatorCache()
        with pytest.raises(SchemaError):
            cache.get(make_schema(make_field("x"), make_field("x")))
        assert len(cache) == 0
