"""Tests for the render dispatcher."""

from dataclasses import replace
from datetime import date

import pytest

from formforge.core.types import FieldType
from formforge.render import RenderDispatcher
from formforge.schema.loader import (
    FieldDefinition,
    FieldOption,
    FormSchema,
    NumericConstraints,
    TextConstraints,
)
from formforge.validation.compiler import compile_schema
from formforge.validation.orchestrator import ValidationOrchestrator
from formforge.validation.types import (
    AdvisoryOutcome,
    AdvisoryStatus,
    FieldPhase,
    FieldState,
    Finding,
    Severity,
    StructuralOutcome,
    ValidationOutcome,
)


def state_for(definition: FieldDefinition, value=None, **outcome) -> FieldState:
    return FieldState(
        definition=definition,
        value=value,
        outcome=ValidationOutcome(**outcome),
    )


@pytest.fixture
def dispatcher():
    return RenderDispatcher()


class TestComponents:
    @pytest.mark.parametrize(
        "field_type,component",
        [
            (FieldType.TEXT, "TextInput"),
            (FieldType.EMAIL, "TextInput"),
            (FieldType.NUMBER, "NumberInput"),
            (FieldType.TEXTAREA, "TextArea"),
            (FieldType.CHECKBOX, "Checkbox"),
            (FieldType.DATE, "DatePicker"),
        ],
    )
    def test_component_per_type(self, dispatcher, field_type, component):
        definition = FieldDefinition(id="f", type=field_type, label="F")
        assert dispatcher.render(state_for(definition)).component == component

    def test_select_carries_options(self, dispatcher):
        definition = FieldDefinition(
            id="level",
            type=FieldType.SELECT,
            label="Level",
            options=(FieldOption("beginner", "Beginner"), FieldOption("expert", "Expert")),
        )
        instruction = dispatcher.render(state_for(definition))
        assert instruction.component == "Select"
        assert instruction.options == (("beginner", "Beginner"), ("expert", "Expert"))

    def test_checkbox_value_is_bool(self, dispatcher):
        definition = FieldDefinition(
            id="terms", type=FieldType.CHECKBOX, label="Terms", placeholder="I agree"
        )
        instruction = dispatcher.render(state_for(definition))
        assert instruction.value is False
        assert instruction.props == {"caption": "I agree"}

    @pytest.mark.parametrize("value", ["false", "0", "off", "", "true", "on", True, False, 1])
    def test_checkbox_value_matches_submitted_value(self, dispatcher, value):
        definition = FieldDefinition(id="terms", type=FieldType.CHECKBOX, label="Terms")
        schema = FormSchema(id="f", title="F", fields=(definition,))
        submitted = compile_schema(schema).coerce({"terms": value})["terms"]
        assert dispatcher.render(state_for(definition, value=value)).value is submitted

    def test_textarea_and_number_props(self, dispatcher):
        textarea = FieldDefinition(
            id="bio",
            type=FieldType.TEXTAREA,
            label="Bio",
            constraints=TextConstraints(max_length=500),
        )
        number = FieldDefinition(
            id="age",
            type=FieldType.NUMBER,
            label="Age",
            constraints=NumericConstraints(min=13),
        )
        assert dispatcher.render(state_for(textarea)).props == {"maxLength": 500}
        assert dispatcher.render(state_for(number)).props == {"min": 13}

    def test_icon_falls_back_to_type_default(self, dispatcher):
        email = FieldDefinition(id="email", type=FieldType.EMAIL, label="Email")
        custom = FieldDefinition(id="email", type=FieldType.EMAIL, label="Email", icon="at")
        assert dispatcher.render(state_for(email)).icon == "mail"
        assert dispatcher.render(state_for(custom)).icon == "at"


class TestOutcomeRendering:
    @pytest.fixture
    def name_field(self):
        return FieldDefinition(id="name", type=FieldType.TEXT, label="Name")

    def test_structural_error_shown(self, dispatcher, name_field):
        state = state_for(
            name_field,
            value="",
            structural=StructuralOutcome(False, "Name is required", "REQUIRED"),
        )
        assert dispatcher.render(state).error == "Name is required"

    def test_resolved_without_findings_is_ok(self, dispatcher, name_field):
        state = state_for(
            name_field,
            value="Ann",
            advisory=AdvisoryOutcome(status=AdvisoryStatus.RESOLVED),
        )
        instruction = dispatcher.render(state)
        assert instruction.advisory_tone == "ok"
        assert instruction.confidence is None

    def test_tone_is_most_severe_finding(self, dispatcher, name_field):
        findings = (
            Finding(Severity.INFO, "Brief", 0.6, "BRIEF", "name"),
            Finding(Severity.WARNING, "Too short", 0.8, "SHORT", "name"),
        )
        state = state_for(
            name_field,
            value="A",
            advisory=AdvisoryOutcome(status=AdvisoryStatus.RESOLVED, findings=findings),
        )
        instruction = dispatcher.render(state)
        assert instruction.advisory_tone == "warning"
        assert instruction.suggestions == ("Brief", "Too short")
        assert instruction.confidence == 0.8

    def test_pending_has_no_tone(self, dispatcher, name_field):
        state = state_for(
            name_field,
            value="Ann",
            advisory=AdvisoryOutcome(status=AdvisoryStatus.PENDING),
        )
        instruction = dispatcher.render(state)
        assert instruction.advisory_status == "pending"
        assert instruction.advisory_tone is None

    def test_to_dict_serialises_dates(self, dispatcher):
        definition = FieldDefinition(id="start", type=FieldType.DATE, label="Start")
        body = dispatcher.render(state_for(definition, value=date(2025, 3, 1))).to_dict()
        assert body["value"] == "2025-03-01"
        assert body["advisory"]["status"] == "idle"
        assert body["props"]["format"] == "MMM D, YYYY"


class TestSessionBinding:
    @pytest.fixture
    def schema(self):
        return FormSchema(
            id="contact",
            title="Contact",
            fields=(
                FieldDefinition(id="name", type=FieldType.TEXT, label="Name", required=True),
                FieldDefinition(id="email", type=FieldType.EMAIL, label="Email"),
            ),
            advisory_enabled=False,
        )

    def test_render_schema(self, dispatcher, schema):
        instructions = dispatcher.render_schema(schema)
        assert [i.field_id for i in instructions] == ["name", "email"]
        assert all(i.error is None for i in instructions)

    def test_on_edit_routes_to_session(self, schema):
        session = ValidationOrchestrator(schema)
        dispatcher = RenderDispatcher(session)
        instruction = dispatcher.on_edit("email", "bob")
        assert "valid email" in instruction.error
        assert session.values["email"] == "bob"
        assert [i.field_id for i in dispatcher.render_form()] == ["name", "email"]

    def test_unbound_dispatcher_rejects_edits(self, dispatcher):
        with pytest.raises(RuntimeError):
            dispatcher.on_edit("name", "x")

    @pytest.mark.asyncio
    async def test_listener_driven_rendering(self, schema):
        session = ValidationOrchestrator(replace(schema, advisory_enabled=True), field_debounce=0.01)
        dispatcher = RenderDispatcher(session)
        rendered = []
        session.add_listener(lambda state: rendered.append(dispatcher.render(state)))
        session.set_value("email", "bob")
        await session.wait_idle()
        assert rendered[-1].advisory_tone == "error"
        assert session.state("email").phase == FieldPhase.RESOLVED
