"""Core types for the FormForge validation system.

Two independent validation paths produce these types:
- Structural: deterministic checks compiled from schema constraints
- Advisory: heuristic findings from the rule engine (never blocking on
  their own except for ERROR severity at submission time)
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Protocol

from formforge.core.types import FieldType
from formforge.schema.loader import FieldDefinition

FieldValue = str | int | float | bool | date | None


class Severity(Enum):
    """Advisory finding severity.

    ERROR: Blocks submission
    WARNING: Surfaced to the user, submission proceeds
    INFO: Suggestion only
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class AdvisoryStatus(Enum):
    IDLE = "idle"
    PENDING = "pending"
    RESOLVED = "resolved"


class FieldPhase(Enum):
    """Orchestrator state of a single field."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    PENDING = "pending"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class Finding:
    """A single advisory observation.

    Attributes:
        severity: ERROR, WARNING or INFO
        message: Human-readable suggestion
        confidence: Fixed per rule, in [0, 1]
        code: Machine-readable code (e.g., "NAME_TOO_SHORT")
        field_id: Field this finding relates to
    """

    severity: Severity
    message: str
    confidence: float
    code: str = ""
    field_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "confidence": self.confidence,
            "code": self.code,
            "field": self.field_id,
        }


@dataclass(frozen=True)
class StructuralOutcome:
    valid: bool
    message: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "message": self.message, "code": self.code}


VALID = StructuralOutcome(valid=True)


@dataclass(frozen=True)
class AdvisoryOutcome:
    status: AdvisoryStatus = AdvisoryStatus.IDLE
    findings: tuple[Finding, ...] = ()

    @property
    def has_errors(self) -> bool:
        return any(f.severity == Severity.ERROR for f in self.findings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "findings": [f.to_dict() for f in self.findings],
        }


@dataclass(frozen=True)
class ValidationOutcome:
    """Merged structural and advisory result for one field."""

    structural: StructuralOutcome = VALID
    advisory: AdvisoryOutcome = field(default_factory=AdvisoryOutcome)

    def to_dict(self) -> dict[str, Any]:
        return {
            "structural": self.structural.to_dict(),
            "advisory": self.advisory.to_dict(),
        }


@dataclass(frozen=True)
class FieldState:
    """Everything a renderer needs to present one field."""

    definition: FieldDefinition
    value: FieldValue = None
    outcome: ValidationOutcome = field(default_factory=ValidationOutcome)
    phase: FieldPhase = FieldPhase.IDLE

    @property
    def field_id(self) -> str:
        return self.definition.id

    def to_dict(self) -> dict[str, Any]:
        value = self.value.isoformat() if isinstance(self.value, date) else self.value
        return {
            "field": self.definition.id,
            "value": value,
            "phase": self.phase.value,
            **self.outcome.to_dict(),
        }


@dataclass
class FormSubmissionResult:
    """Result of a submission attempt.

    Attributes:
        accepted: True if the form was handed to the submit collaborator
        data: Coerced values on acceptance, the raw values otherwise
        blocking_errors: Field ids that blocked submission, in schema order
        findings: Advisory findings by field id (non-empty lists only)
        confidence: Mean confidence of the surfaced findings, None if none
        messages: Blocking message per field id
    """

    accepted: bool
    data: dict[str, Any] = field(default_factory=dict)
    blocking_errors: list[str] = field(default_factory=list)
    findings: dict[str, list[Finding]] = field(default_factory=dict)
    confidence: float | None = None
    messages: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {
            k: v.isoformat() if isinstance(v, date) else v
            for k, v in self.data.items()
        }
        return {
            "accepted": self.accepted,
            "data": data,
            "blockingErrors": list(self.blocking_errors),
            "messages": dict(self.messages),
            "findings": {
                k: [f.to_dict() for f in v] for k, v in self.findings.items()
            },
            "confidence": self.confidence,
        }


class AdvisoryEvaluator(Protocol):
    """The async boundary for advisory evaluation.

    The built-in rule engine implements this; a remote service can be
    substituted without changing the orchestrator or the submission
    controller.
    """

    async def evaluate(
        self,
        field_id: str,
        field_type: FieldType,
        value: Any,
        hint: FieldDefinition | None = None,
    ) -> list[Finding]:
        """Evaluate one field value.

        Args:
            field_id: The field being evaluated
            field_type: The field's declared type
            value: The value as entered
            hint: The field definition, for evaluators that need more context

        Returns:
            Findings for the value. Empty list means nothing to report.

        Raises:
            AdvisoryEvaluationFailure: If the evaluation cannot complete
        """
        ...
