"""Field type registry with validation families and UI defaults."""

from dataclasses import dataclass
from enum import Enum


class FieldType(Enum):
    """The closed set of field types a form schema may use."""

    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"

    @property
    def is_text_like(self) -> bool:
        return self in TEXT_LIKE_TYPES

    @property
    def requires_options(self) -> bool:
        return self in CHOICE_TYPES


TEXT_LIKE_TYPES = frozenset({
    FieldType.TEXT,
    FieldType.EMAIL,
    FieldType.TEXTAREA,
    FieldType.SELECT,
    FieldType.RADIO,
})

CHOICE_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO})


@dataclass(frozen=True)
class UIDefaults:
    edit_component: str
    input_type: str | None = None
    icon: str = "user"
    alignment: str = "left"
    format: str | None = None


@dataclass(frozen=True)
class FieldTypeInfo:
    type: FieldType
    ui: UIDefaults


# Built-in field types
FIELD_TYPES: dict[FieldType, FieldTypeInfo] = {
    FieldType.TEXT: FieldTypeInfo(
        type=FieldType.TEXT,
        ui=UIDefaults(edit_component="TextInput", input_type="text"),
    ),
    FieldType.EMAIL: FieldTypeInfo(
        type=FieldType.EMAIL,
        ui=UIDefaults(edit_component="TextInput", input_type="email", icon="mail"),
    ),
    FieldType.NUMBER: FieldTypeInfo(
        type=FieldType.NUMBER,
        ui=UIDefaults(
            edit_component="NumberInput",
            input_type="number",
            icon="hash",
            alignment="right",
        ),
    ),
    FieldType.TEXTAREA: FieldTypeInfo(
        type=FieldType.TEXTAREA,
        ui=UIDefaults(edit_component="TextArea", icon="message"),
    ),
    FieldType.SELECT: FieldTypeInfo(
        type=FieldType.SELECT,
        ui=UIDefaults(edit_component="Select"),
    ),
    FieldType.CHECKBOX: FieldTypeInfo(
        type=FieldType.CHECKBOX,
        ui=UIDefaults(edit_component="Checkbox"),
    ),
    FieldType.RADIO: FieldTypeInfo(
        type=FieldType.RADIO,
        ui=UIDefaults(edit_component="RadioGroup"),
    ),
    FieldType.DATE: FieldTypeInfo(
        type=FieldType.DATE,
        ui=UIDefaults(
            edit_component="DatePicker",
            icon="calendar",
            format="MMM D, YYYY",
        ),
    ),
}

if set(FIELD_TYPES) != set(FieldType):  # pragma: no cover
    raise RuntimeError("FIELD_TYPES must cover every FieldType")


def get_field_type(type_name: str | FieldType) -> FieldTypeInfo:
    """Get field type info by enum or name.

    Raises:
        ValueError: If the name is not a known field type
    """
    return FIELD_TYPES[FieldType(type_name)]


def list_field_types() -> list[str]:
    """List all field type names in declaration order."""
    return [t.value for t in FieldType]
