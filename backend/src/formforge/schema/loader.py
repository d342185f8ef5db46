"""Form schema model and YAML loading.

A form schema is an immutable value: fields and options are tuples and
every dataclass is frozen. Changing a form means building a new schema
(``dataclasses.replace`` or the builder) and compiling it again.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from formforge.core.types import FieldType
from formforge.exceptions import SchemaError


@dataclass(frozen=True)
class FieldOption:
    value: str
    label: str


@dataclass(frozen=True)
class TextConstraints:
    """Constraints for text-like fields (text, email, textarea, select, radio)."""

    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None


@dataclass(frozen=True)
class NumericConstraints:
    """Constraints for number fields. Bounds are inclusive."""

    min: float | None = None
    max: float | None = None


Constraints = TextConstraints | NumericConstraints


@dataclass(frozen=True)
class FieldDefinition:
    id: str
    type: FieldType
    label: str
    placeholder: str | None = None
    required: bool = False
    constraints: Constraints | None = None
    options: tuple[FieldOption, ...] = ()
    icon: str | None = None

    @property
    def text_constraints(self) -> TextConstraints:
        if isinstance(self.constraints, TextConstraints):
            return self.constraints
        return TextConstraints()

    @property
    def numeric_constraints(self) -> NumericConstraints:
        if isinstance(self.constraints, NumericConstraints):
            return self.constraints
        return NumericConstraints()

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase dict used in YAML and API payloads."""
        result: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "required": self.required,
        }
        if self.placeholder is not None:
            result["placeholder"] = self.placeholder
        if self.icon is not None:
            result["icon"] = self.icon
        if self.options:
            result["options"] = [
                {"value": o.value, "label": o.label} for o in self.options
            ]

        validation: dict[str, Any] = {}
        if isinstance(self.constraints, TextConstraints):
            validation = {
                "minLength": self.constraints.min_length,
                "maxLength": self.constraints.max_length,
                "pattern": self.constraints.pattern,
            }
        elif isinstance(self.constraints, NumericConstraints):
            validation = {"min": self.constraints.min, "max": self.constraints.max}
        validation = {k: v for k, v in validation.items() if v is not None}
        if validation:
            result["validation"] = validation
        return result


@dataclass(frozen=True)
class FormSchema:
    id: str
    title: str
    fields: tuple[FieldDefinition, ...] = ()
    description: str | None = None
    submit_label: str | None = None
    advisory_enabled: bool = True

    def get_field(self, field_id: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    @property
    def field_ids(self) -> list[str]:
        return [f.id for f in self.fields]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "submitLabel": self.submit_label,
            "advisoryValidation": {"enabled": self.advisory_enabled},
            "fields": [f.to_dict() for f in self.fields],
        }
        return result


# =============================================================================
# Dict conversion
# =============================================================================


def to_display_name(name: str) -> str:
    """Convert camelCase to Title Case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append(" ")
        result.append(char)
    return "".join(result).title()


def _resolve_constraints(
    field_type: FieldType, data: dict[str, Any]
) -> Constraints | None:
    """Pick the constraint subset that is meaningful for the field type.

    Keys that do not apply to the type are dropped.
    """
    if field_type.is_text_like:
        constraints = TextConstraints(
            min_length=data.get("minLength"),
            max_length=data.get("maxLength"),
            pattern=data.get("pattern"),
        )
        return constraints if constraints != TextConstraints() else None

    if field_type == FieldType.NUMBER:
        constraints = NumericConstraints(min=data.get("min"), max=data.get("max"))
        return constraints if constraints != NumericConstraints() else None

    return None


def field_from_dict(data: dict[str, Any]) -> FieldDefinition:
    """Convert a field dict (YAML/JSON shape) to a FieldDefinition."""
    if "id" not in data:
        raise SchemaError("Field definition is missing 'id'")
    field_id = str(data["id"])

    try:
        field_type = FieldType(data.get("type", "text"))
    except ValueError:
        raise SchemaError(
            f"Field '{field_id}' has unknown type '{data.get('type')}'",
            field_id=field_id,
        ) from None

    # "validation" is the YAML key; "constraints" is accepted as an alias
    constraint_data = data.get("validation") or data.get("constraints") or {}

    options = tuple(
        FieldOption(value=str(o["value"]), label=str(o.get("label", o["value"])))
        for o in data.get("options") or []
    )

    return FieldDefinition(
        id=field_id,
        type=field_type,
        label=data.get("label") or to_display_name(field_id),
        placeholder=data.get("placeholder"),
        required=bool(data.get("required", False)),
        constraints=_resolve_constraints(field_type, constraint_data),
        options=options,
        icon=data.get("icon"),
    )


def schema_from_dict(data: dict[str, Any]) -> FormSchema:
    """Convert a form dict (YAML/JSON shape) to a FormSchema.

    Accepts either ``form`` (YAML files) or ``id`` as the form identifier.
    """
    form_id = data.get("form") or data.get("id")
    if not form_id:
        raise SchemaError("Form definition is missing 'form' id")

    advisory = data.get("advisoryValidation") or {}

    return FormSchema(
        id=str(form_id),
        title=data.get("title", str(form_id)),
        description=data.get("description"),
        submit_label=data.get("submitLabel"),
        advisory_enabled=bool(advisory.get("enabled", True)),
        fields=tuple(field_from_dict(f) for f in data.get("fields") or []),
    )


# =============================================================================
# Loader
# =============================================================================


class FormSchemaLoader:
    """Loads form definitions from YAML files in a directory."""

    def __init__(self, forms_path: Path):
        self.forms_path = forms_path
        self.forms: dict[str, FormSchema] = {}
        self.sources: dict[str, Path] = {}

    def load_all(self) -> None:
        """Load every ``*.yaml`` form definition.

        Raises:
            SchemaError: If a file is malformed or two files share a form id
        """
        self.forms.clear()
        self.sources.clear()
        if not self.forms_path.exists():
            return

        for yaml_file in sorted(self.forms_path.glob("*.yaml")):
            with open(yaml_file) as f:
                data = yaml.safe_load(f)
            if not data or "form" not in data:
                continue

            schema = schema_from_dict(data)
            if schema.id in self.forms:
                raise SchemaError(
                    f"Duplicate form id '{schema.id}' in {yaml_file.name} "
                    f"and {self.sources[schema.id].name}"
                )
            self.forms[schema.id] = schema
            self.sources[schema.id] = yaml_file

    def get_form(self, form_id: str) -> FormSchema | None:
        """Get a loaded form by id."""
        return self.forms.get(form_id)

    def list_forms(self) -> list[str]:
        """List all form ids."""
        return list(self.forms.keys())
