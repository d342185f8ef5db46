"""Builder-time suggestions.

Canned field templates and validation hints offered while a form is being
designed. Like the advisory engine these are fixed heuristics with fixed
confidences, not model output.
"""

import uuid
from dataclasses import dataclass
from typing import Any

from formforge.core.types import FieldType
from formforge.schema.loader import FieldDefinition, field_from_dict


@dataclass(frozen=True)
class ValidationSuggestion:
    validation_type: str
    suggestion: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "validationType": self.validation_type,
            "suggestion": self.suggestion,
            "confidence": self.confidence,
        }


FIELD_TEMPLATES: dict[str, dict[str, Any]] = {
    "personal_info": {
        "type": "text",
        "label": "Full Name",
        "placeholder": "Enter your full name",
        "required": True,
        "validation": {"minLength": 2},
        "icon": "user",
    },
    "contact": {
        "type": "email",
        "label": "Email Address",
        "placeholder": "your.email@example.com",
        "required": True,
        "icon": "mail",
    },
    "feedback": {
        "type": "textarea",
        "label": "Comments",
        "placeholder": "Share your thoughts...",
        "required": False,
        "validation": {"maxLength": 500},
        "icon": "message",
    },
}

DEFAULT_CONTEXT = "personal_info"

VALIDATION_SUGGESTIONS: dict[FieldType, tuple[ValidationSuggestion, ...]] = {
    FieldType.EMAIL: (
        ValidationSuggestion("format", "Validate email format with regex", 0.95),
        ValidationSuggestion("domain", "Check for common domain typos", 0.75),
    ),
    FieldType.TEXT: (
        ValidationSuggestion("length", "Set minimum length of 2 characters", 0.8),
        ValidationSuggestion("pattern", "Use alphabetic characters only for names", 0.7),
    ),
    FieldType.NUMBER: (
        ValidationSuggestion("range", "Set reasonable min/max values", 0.85),
        ValidationSuggestion("format", "Validate numeric input only", 0.9),
    ),
}


def new_field_id() -> str:
    return f"field_{uuid.uuid4().hex[:8]}"


def suggest_field(context: str, field_id: str | None = None) -> FieldDefinition:
    """Suggest a field for a builder context.

    Unknown contexts fall back to ``personal_info``.
    """
    template = FIELD_TEMPLATES.get(context, FIELD_TEMPLATES[DEFAULT_CONTEXT])
    return field_from_dict({"id": field_id or new_field_id(), **template})


def suggest_validations(field_type: str | FieldType) -> list[ValidationSuggestion]:
    """Validation hints for a field type; empty for types without any."""
    return list(VALIDATION_SUGGESTIONS.get(FieldType(field_type), ()))
