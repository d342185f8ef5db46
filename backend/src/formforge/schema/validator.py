"""
schema/validator.py — validation for FormForge YAML form definitions.

Each file is checked in two passes:

1. JSON Schema (``form.schema.json``) for shape and field types.
2. The validator compiler, so duplicate field ids, choice fields without
   options and broken patterns are reported here instead of at render time.

Constraint keys that have no meaning for a field's type (``min`` on a text
field, ``pattern`` on a number field) are reported as warnings; they are
dropped when the schema is built.

Usage:
    from formforge.schema.validator import validate_forms_dir

    issues = validate_forms_dir(Path("forms"))
    for issue in issues:
        print(issue)
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from formforge.core.types import FieldType
from formforge.exceptions import SchemaError
from formforge.schema.loader import schema_from_dict
from formforge.validation.compiler import compile_schema

logger = logging.getLogger(__name__)

_SCHEMAS_DIR = Path(__file__).parent / "schemas"
FORM_SCHEMA_NAME = "form.schema.json"

_TEXT_KEYS = {"minLength", "maxLength", "pattern"}
_NUMERIC_KEYS = {"min", "max"}


# ---------------------------------------------------------------------------
# Public data types
# ---------------------------------------------------------------------------


@dataclass
class ValidationIssue:
    """A single validation finding for a form YAML file."""

    file: Path
    message: str
    path: str = ""          # location within the document, e.g. "fields[2]/options"
    severity: str = "error" # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_schema(name: str = FORM_SCHEMA_NAME) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _constraint_warnings(yaml_path: Path, doc: dict[str, Any]) -> list[ValidationIssue]:
    """Report constraint keys that do not apply to their field's type."""
    issues: list[ValidationIssue] = []
    for index, field_data in enumerate(doc.get("fields") or []):
        field_type = FieldType(field_data["type"])
        keys = set((field_data.get("validation") or {}).keys())

        if field_type.is_text_like:
            ignored = keys - _TEXT_KEYS
        elif field_type == FieldType.NUMBER:
            ignored = keys - _NUMERIC_KEYS
        else:
            ignored = keys

        for key in sorted(ignored):
            issues.append(
                ValidationIssue(
                    file=yaml_path,
                    message=f"'{key}' has no effect on {field_type.value} field "
                    f"'{field_data['id']}'",
                    path=f"fields[{index}]/validation",
                    severity="warning",
                )
            )
    return issues


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_yaml_file(
    yaml_path: Path,
    *,
    validator: Draft202012Validator | None = None,
) -> list[ValidationIssue]:
    """
    Validate a single form YAML file.

    Args:
        yaml_path: Path to the YAML file to validate.
        validator: Pre-built JSON Schema validator.  Built automatically if omitted.

    Returns:
        A list of :class:`ValidationIssue` objects (empty on success).
    """
    # 1. Parse YAML
    try:
        with yaml_path.open() as fh:
            doc = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [ValidationIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    if doc is None:
        return [
            ValidationIssue(file=yaml_path, message="File is empty or contains only whitespace")
        ]

    # 2. JSON Schema
    if validator is None:
        validator = Draft202012Validator(_load_schema())

    issues = [
        ValidationIssue(file=yaml_path, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(doc), key=lambda e: list(e.path))
    ]
    if issues:
        # The compile pass assumes a well-formed document
        return issues

    # 3. Compile
    try:
        compile_schema(schema_from_dict(doc))
    except SchemaError as exc:
        # Point at the last occurrence: for duplicates that is the offending one
        positions = [
            i for i, f in enumerate(doc.get("fields") or []) if f.get("id") == exc.field_id
        ]
        path = f"fields[{positions[-1]}]" if positions else ""
        issues.append(ValidationIssue(file=yaml_path, message=str(exc), path=path))

    issues.extend(_constraint_warnings(yaml_path, doc))
    return issues


def validate_forms_dir(
    forms_dir: Path,
    *,
    strict: bool = False,
) -> list[ValidationIssue]:
    """
    Validate all ``*.yaml`` files in *forms_dir*.

    Args:
        forms_dir: Directory holding form definitions.
        strict:    If ``True``, warnings are escalated to errors.

    Returns:
        A flat list of :class:`ValidationIssue` objects across all files.
        Empty list means all files are valid.
    """
    if not forms_dir.is_dir():
        return [
            ValidationIssue(
                file=forms_dir,
                message=f"Forms directory does not exist: {forms_dir}",
            )
        ]

    # Build the validator once, shared across all files
    try:
        validator = Draft202012Validator(_load_schema())
    except (FileNotFoundError, json.JSONDecodeError) as exc:
        return [
            ValidationIssue(
                file=_SCHEMAS_DIR,
                message=f"Failed to load JSON Schema file: {exc}",
            )
        ]

    all_issues: list[ValidationIssue] = []
    for yaml_file in sorted(forms_dir.glob("*.yaml")):
        file_issues = validate_yaml_file(yaml_file, validator=validator)
        if strict:
            for issue in file_issues:
                if issue.severity == "warning":
                    issue.severity = "error"
        all_issues.extend(file_issues)

    logger.debug("Validated form definitions in %s: %d issue(s)", forms_dir, len(all_issues))
    return all_issues
