"""Incremental form builder.

Collects field definitions while a form is being designed and produces a
new immutable FormSchema on every ``build()``. A built schema is compiled
straight away so that mistakes surface in the builder, not when the form
is rendered.
"""

import logging
import uuid
from dataclasses import replace
from typing import Any

from formforge.core.types import FieldType
from formforge.schema.loader import FieldDefinition, FormSchema
from formforge.builder.suggestions import new_field_id, suggest_field
from formforge.validation.compiler import compile_schema

logger = logging.getLogger(__name__)


class FormBuilder:
    """Mutable draft of a form. Never shared with a live session."""

    def __init__(
        self,
        title: str = "",
        description: str | None = None,
        advisory_enabled: bool = True,
        submit_label: str | None = None,
    ):
        self.title = title
        self.description = description
        self.advisory_enabled = advisory_enabled
        self.submit_label = submit_label
        self.fields: list[FieldDefinition] = []

    @classmethod
    def from_schema(cls, schema: FormSchema) -> "FormBuilder":
        """Start a draft from an existing schema (the schema itself is untouched)."""
        builder = cls(
            title=schema.title,
            description=schema.description,
            advisory_enabled=schema.advisory_enabled,
            submit_label=schema.submit_label,
        )
        builder.fields = list(schema.fields)
        return builder

    def add_field(
        self,
        type: str | FieldType = FieldType.TEXT,
        label: str = "",
        **kwargs: Any,
    ) -> FieldDefinition:
        """Append a field and return it."""
        definition = FieldDefinition(
            id=kwargs.pop("id", None) or new_field_id(),
            type=FieldType(type),
            label=label,
            **kwargs,
        )
        self.fields.append(definition)
        return definition

    def add_suggested_field(self, context: str) -> FieldDefinition:
        """Append the suggested field for a builder context."""
        definition = suggest_field(context)
        self.fields.append(definition)
        return definition

    def update_field(self, field_id: str, **changes: Any) -> FieldDefinition:
        """Replace a field with an updated copy.

        Raises:
            KeyError: If no field has this id
        """
        index = self._index(field_id)
        if "type" in changes:
            changes["type"] = FieldType(changes["type"])
        updated = replace(self.fields[index], **changes)
        self.fields[index] = updated
        return updated

    def remove_field(self, field_id: str) -> None:
        del self.fields[self._index(field_id)]

    def build(self, form_id: str | None = None) -> FormSchema:
        """Produce a new schema from the draft.

        Raises:
            SchemaError: If the draft does not compile
        """
        schema = FormSchema(
            id=form_id or f"form_{uuid.uuid4().hex[:8]}",
            title=self.title,
            description=self.description,
            submit_label=self.submit_label,
            advisory_enabled=self.advisory_enabled,
            fields=tuple(self.fields),
        )
        compile_schema(schema)
        logger.debug("Built form '%s' with %d field(s)", schema.id, len(schema.fields))
        return schema

    def _index(self, field_id: str) -> int:
        for i, f in enumerate(self.fields):
            if f.id == field_id:
                return i
        raise KeyError(field_id)
