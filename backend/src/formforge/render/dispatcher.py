"""Render dispatcher.

Maps each field type to a rendering strategy and turns a FieldState into a
RenderInstruction: a toolkit-neutral description of what to show. The UI
toolkit that paints it is an external collaborator, and edits coming back
from it are forwarded to the session's orchestrator.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from formforge.core.types import FieldType, get_field_type
from formforge.schema.loader import FormSchema
from formforge.validation.compiler import parse_bool
from formforge.validation.orchestrator import ValidationOrchestrator
from formforge.validation.types import (
    AdvisoryStatus,
    FieldState,
    FieldValue,
    Severity,
)


@dataclass(frozen=True)
class RenderInstruction:
    """What the UI should show for one field."""

    field_id: str
    component: str
    label: str
    required: bool
    value: Any = None
    placeholder: str | None = None
    input_type: str | None = None
    icon: str | None = None
    options: tuple[tuple[str, str], ...] = ()
    error: str | None = None
    advisory_status: str = AdvisoryStatus.IDLE.value
    advisory_tone: str | None = None  # "ok" | "error" | "warning" | "info"
    suggestions: tuple[str, ...] = ()
    confidence: float | None = None
    props: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field_id,
            "component": self.component,
            "label": self.label,
            "required": self.required,
            "value": self.value.isoformat() if isinstance(self.value, date) else self.value,
            "placeholder": self.placeholder,
            "inputType": self.input_type,
            "icon": self.icon,
            "options": [{"value": v, "label": l} for v, l in self.options],
            "error": self.error,
            "advisory": {
                "status": self.advisory_status,
                "tone": self.advisory_tone,
                "suggestions": list(self.suggestions),
                "confidence": self.confidence,
            },
            "props": dict(self.props),
        }


Strategy = Callable[[FieldState], dict[str, Any]]


def _choice_props(state: FieldState) -> dict[str, Any]:
    return {"options": tuple((o.value, o.label) for o in state.definition.options)}


def _checkbox_props(state: FieldState) -> dict[str, Any]:
    # The checkbox caption is the placeholder when one is given
    return {
        "value": parse_bool(state.value),
        "props": {"caption": state.definition.placeholder or state.definition.label},
    }


def _date_props(state: FieldState) -> dict[str, Any]:
    return {"props": {"format": get_field_type(FieldType.DATE).ui.format}}


def _textarea_props(state: FieldState) -> dict[str, Any]:
    max_length = state.definition.text_constraints.max_length
    return {"props": {"maxLength": max_length}} if max_length is not None else {}


def _number_props(state: FieldState) -> dict[str, Any]:
    rules = state.definition.numeric_constraints
    props = {k: v for k, v in (("min", rules.min), ("max", rules.max)) if v is not None}
    return {"props": props} if props else {}


def _no_props(state: FieldState) -> dict[str, Any]:
    return {}


STRATEGIES: dict[FieldType, Strategy] = {
    FieldType.TEXT: _no_props,
    FieldType.EMAIL: _no_props,
    FieldType.NUMBER: _number_props,
    FieldType.TEXTAREA: _textarea_props,
    FieldType.SELECT: _choice_props,
    FieldType.RADIO: _choice_props,
    FieldType.CHECKBOX: _checkbox_props,
    FieldType.DATE: _date_props,
}

if set(STRATEGIES) != set(FieldType):  # pragma: no cover
    raise RuntimeError("STRATEGIES must cover every FieldType")

_TONE_ORDER = (Severity.ERROR, Severity.WARNING, Severity.INFO)


class RenderDispatcher:
    """Builds render instructions and routes edits back to the session."""

    def __init__(self, session: ValidationOrchestrator | None = None):
        self.session = session

    def render(self, state: FieldState) -> RenderInstruction:
        definition = state.definition
        ui = get_field_type(definition.type).ui
        advisory = state.outcome.advisory

        tone = None
        if advisory.status == AdvisoryStatus.RESOLVED:
            tone = "ok"
            for severity in _TONE_ORDER:
                if any(f.severity == severity for f in advisory.findings):
                    tone = severity.value
                    break

        confidence = None
        if advisory.findings:
            confidence = max(f.confidence for f in advisory.findings)

        instruction: dict[str, Any] = {
            "field_id": definition.id,
            "component": ui.edit_component,
            "label": definition.label,
            "required": definition.required,
            "value": state.value,
            "placeholder": definition.placeholder,
            "input_type": ui.input_type,
            "icon": definition.icon or ui.icon,
            "error": state.outcome.structural.message,
            "advisory_status": advisory.status.value,
            "advisory_tone": tone,
            "suggestions": tuple(f.message for f in advisory.findings),
            "confidence": confidence,
        }
        instruction.update(STRATEGIES[definition.type](state))
        return RenderInstruction(**instruction)

    def render_form(self) -> list[RenderInstruction]:
        """Render every field of the bound session, in schema order."""
        if self.session is None:
            raise RuntimeError("RenderDispatcher has no session")
        return [self.render(s) for s in self.session.states().values()]

    def on_edit(self, field_id: str, value: FieldValue) -> RenderInstruction:
        """Forward a user edit to the session and return the updated instruction."""
        if self.session is None:
            raise RuntimeError("RenderDispatcher has no session")
        return self.render(self.session.set_value(field_id, value))

    def render_schema(self, schema: FormSchema) -> list[RenderInstruction]:
        """Render a schema's fields in their initial, untouched state."""
        return [self.render(FieldState(definition=f)) for f in schema.fields]
