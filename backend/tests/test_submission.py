"""Tests for the submission controller."""

from datetime import date

import pytest

from formforge.core.types import FieldType
from formforge.schema.loader import (
    FieldDefinition,
    FormSchema,
    NumericConstraints,
    TextConstraints,
)
from formforge.validation.advisory import AdvisoryEngine
from formforge.validation.submission import SubmissionController
from formforge.validation.types import Finding, Severity


def make_schema(advisory_enabled: bool = True) -> FormSchema:
    return FormSchema(
        id="survey",
        title="Survey",
        fields=(
            FieldDefinition(
                id="name",
                type=FieldType.TEXT,
                label="Name",
                required=True,
                constraints=TextConstraints(min_length=2),
            ),
            FieldDefinition(id="email", type=FieldType.EMAIL, label="Email", required=True),
            FieldDefinition(
                id="age",
                type=FieldType.NUMBER,
                label="Age",
                constraints=NumericConstraints(min=0, max=150),
            ),
            FieldDefinition(id="birthDate", type=FieldType.DATE, label="Birth Date"),
            FieldDefinition(id="newsletter", type=FieldType.CHECKBOX, label="Newsletter"),
        ),
        advisory_enabled=advisory_enabled,
    )


class StubEvaluator:
    """Returns canned findings per field and records every call."""

    def __init__(self, findings: dict[str, list[Finding]] | None = None):
        self.findings = findings or {}
        self.calls: list[str] = []

    async def evaluate(self, field_id, field_type, value, hint=None):
        self.calls.append(field_id)
        return list(self.findings.get(field_id, []))


VALID_VALUES = {
    "name": "Ann Lee",
    "email": "ann@example.com",
    "age": "34",
    "birthDate": "1990-05-01",
    "newsletter": "true",
}


class TestStructuralGate:
    @pytest.mark.asyncio
    async def test_structural_failure_rejects_without_advisory(self):
        evaluator = StubEvaluator()
        controller = SubmissionController(make_schema(), evaluator)
        result = await controller.submit({"name": "", "email": "bob"})

        assert not result.accepted
        assert result.blocking_errors == ["name", "email"]
        assert result.messages["name"] == "Name is required"
        assert evaluator.calls == []

    @pytest.mark.asyncio
    async def test_rejection_does_not_call_collaborator(self):
        submitted = []
        controller = SubmissionController(
            make_schema(), StubEvaluator(), on_submit=submitted.append
        )
        await controller.submit({"name": "A", "email": "ann@example.com"})
        assert submitted == []


class TestAdvisoryGate:
    @pytest.mark.asyncio
    async def test_advisory_error_blocks(self):
        evaluator = StubEvaluator({
            "email": [Finding(Severity.ERROR, "Mailbox does not exist", 0.9, "NO_MAILBOX", "email")],
        })
        submitted = []
        controller = SubmissionController(make_schema(), evaluator, on_submit=submitted.append)
        result = await controller.submit(VALID_VALUES)

        assert not result.accepted
        assert result.blocking_errors == ["email"]
        assert result.messages == {"email": "Mailbox does not exist"}
        assert result.confidence == pytest.approx(0.9)
        assert submitted == []

    @pytest.mark.asyncio
    async def test_warnings_and_info_do_not_block(self):
        evaluator = StubEvaluator({
            "name": [Finding(Severity.WARNING, "Unusual name", 0.8, "NAME", "name")],
            "email": [Finding(Severity.INFO, "Free provider", 0.6, "FREE", "email")],
        })
        controller = SubmissionController(make_schema(), evaluator)
        result = await controller.submit(VALID_VALUES)

        assert result.accepted
        assert result.blocking_errors == []
        assert set(result.findings) == {"name", "email"}
        assert result.confidence == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_no_findings_means_no_confidence(self):
        controller = SubmissionController(make_schema(), StubEvaluator())
        result = await controller.submit(VALID_VALUES)
        assert result.accepted
        assert result.findings == {}
        assert result.confidence is None

    @pytest.mark.asyncio
    async def test_advisory_disabled_skips_evaluator(self):
        evaluator = StubEvaluator({
            "email": [Finding(Severity.ERROR, "blocked", 0.9, "X", "email")],
        })
        controller = SubmissionController(make_schema(advisory_enabled=False), evaluator)
        result = await controller.submit(VALID_VALUES)
        assert result.accepted
        assert evaluator.calls == []

    @pytest.mark.asyncio
    async def test_builtin_engine_short_name_is_warning_only(self):
        controller = SubmissionController(make_schema(), AdvisoryEngine())
        values = dict(VALID_VALUES, name="J0")
        result = await controller.submit(values)
        assert result.accepted
        assert [f.code for f in result.findings["name"]] == ["NAME_SPECIAL_CHARACTERS"]


class TestHandOff:
    @pytest.mark.asyncio
    async def test_sync_collaborator_receives_coerced_data(self):
        submitted = []
        controller = SubmissionController(
            make_schema(), StubEvaluator(), on_submit=submitted.append
        )
        result = await controller.submit(VALID_VALUES)

        assert result.accepted
        assert submitted == [{
            "name": "Ann Lee",
            "email": "ann@example.com",
            "age": 34,
            "birthDate": date(1990, 5, 1),
            "newsletter": True,
        }]
        assert result.data == submitted[0]

    @pytest.mark.asyncio
    async def test_async_collaborator_awaited(self):
        submitted = []

        async def on_submit(data):
            submitted.append(data)

        controller = SubmissionController(make_schema(), StubEvaluator(), on_submit=on_submit)
        await controller.submit(VALID_VALUES)
        assert len(submitted) == 1

    @pytest.mark.asyncio
    async def test_collaborator_failure_propagates_and_retry_succeeds(self):
        attempts = []

        def on_submit(data):
            attempts.append(data)
            if len(attempts) == 1:
                raise ConnectionError("backend unavailable")

        controller = SubmissionController(make_schema(), StubEvaluator(), on_submit=on_submit)
        with pytest.raises(ConnectionError):
            await controller.submit(VALID_VALUES)

        result = await controller.submit(VALID_VALUES)
        assert result.accepted
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_result_serialises_dates(self):
        controller = SubmissionController(make_schema(), StubEvaluator())
        result = await controller.submit(VALID_VALUES)
        body = result.to_dict()
        assert body["accepted"] is True
        assert body["data"]["birthDate"] == "1990-05-01"
        assert body["blockingErrors"] == []
