"""Form builder and builder-time suggestions."""

from formforge.builder.form_builder import FormBuilder
from formforge.builder.suggestions import (
    ValidationSuggestion,
    suggest_field,
    suggest_validations,
)

__all__ = [
    "FormBuilder",
    "ValidationSuggestion",
    "suggest_field",
    "suggest_validations",
]
