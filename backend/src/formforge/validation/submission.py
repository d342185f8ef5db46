"""Submission controller.

Final gate before a form's data reaches the host application:

1. Structural validation over every field. Any failure rejects at once,
   without an advisory call.
2. A final advisory pass over all fields, with no debounce.
3. ERROR findings block; WARNING and INFO findings are surfaced with their
   confidence but do not block.
4. On acceptance the coerced values are handed to the ``on_submit``
   collaborator.

Rejections are returned as data, never raised. The controller keeps no
state between calls, so retrying a submission only repeats the
collaborator call.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from formforge.schema.loader import FormSchema
from formforge.validation.advisory import AdvisoryEngine, evaluate_form
from formforge.validation.compiler import CompiledValidator, compile_schema
from formforge.validation.types import (
    AdvisoryEvaluator,
    Finding,
    FormSubmissionResult,
    Severity,
)

logger = logging.getLogger(__name__)

SubmitHandler = Callable[[dict[str, Any]], Awaitable[None] | None]


class SubmissionController:
    """Runs final validation and hands accepted data to the host."""

    def __init__(
        self,
        schema: FormSchema,
        evaluator: AdvisoryEvaluator | None = None,
        *,
        validator: CompiledValidator | None = None,
        on_submit: SubmitHandler | None = None,
    ):
        self.schema = schema
        self.validator = validator or compile_schema(schema)
        self.evaluator: AdvisoryEvaluator = evaluator or AdvisoryEngine()
        self.on_submit = on_submit

    async def submit(self, values: Mapping[str, Any]) -> FormSubmissionResult:
        """Validate and, if acceptable, submit the form values.

        Args:
            values: Raw values keyed by field id

        Returns:
            FormSubmissionResult; ``accepted`` is False with the blocking
            field ids when structural or advisory errors were found
        """
        # Phase 1: Structural
        structural = self.validator.validate(values)
        failing = {
            field_id: outcome.message or "Invalid value"
            for field_id, outcome in structural.items()
            if not outcome.valid
        }
        if failing:
            logger.info(
                "Submission of form '%s' rejected: structural errors in %s",
                self.schema.id,
                ", ".join(failing),
            )
            return FormSubmissionResult(
                accepted=False,
                data=dict(values),
                blocking_errors=list(failing),
                messages=failing,
            )

        # Phase 2: Advisory (no debounce)
        findings: dict[str, list[Finding]] = {}
        if self.schema.advisory_enabled:
            all_findings = await evaluate_form(self.evaluator, self.schema, values)
            findings = {k: v for k, v in all_findings.items() if v}

        surfaced = [f for field_findings in findings.values() for f in field_findings]
        confidence = (
            sum(f.confidence for f in surfaced) / len(surfaced) if surfaced else None
        )

        # Phase 3: Decision
        blocking = {
            field_id: next(f.message for f in field_findings if f.severity == Severity.ERROR)
            for field_id, field_findings in findings.items()
            if any(f.severity == Severity.ERROR for f in field_findings)
        }
        if blocking:
            logger.info(
                "Submission of form '%s' rejected: advisory errors in %s",
                self.schema.id,
                ", ".join(blocking),
            )
            return FormSubmissionResult(
                accepted=False,
                data=dict(values),
                blocking_errors=list(blocking),
                findings=findings,
                confidence=confidence,
                messages=blocking,
            )

        # Phase 4: Hand off
        data = self.validator.coerce(values)
        if self.on_submit is not None:
            result = self.on_submit(data)
            if inspect.isawaitable(result):
                await result

        logger.info(
            "Form '%s' submitted with %d advisory finding(s)",
            self.schema.id,
            len(surfaced),
        )
        return FormSubmissionResult(
            accepted=True,
            data=data,
            findings=findings,
            confidence=confidence,
        )
