"""FormForge validation system.

Two validation paths run side by side for every field:
- Structural: checks compiled from schema constraints (required, length,
  numeric bounds, pattern, type format). Synchronous, blocking.
- Advisory: heuristic rule findings evaluated asynchronously with debounce
  and stale-result suppression. Only ERROR findings block submission.

Usage:
    from formforge.validation import (
        AdvisoryEngine,
        SubmissionController,
        ValidationOrchestrator,
        compile_schema,
    )

    validator = compile_schema(schema)
    session = ValidationOrchestrator(schema, AdvisoryEngine(), validator=validator)
"""

from formforge.validation.advisory import (
    AdvisoryEngine,
    AdvisoryRule,
    AdvisoryRuleRegistry,
    advisory_rule,
    evaluate_form,
    register_builtin_rules,
)
from formforge.validation.compiler import (
    CompiledValidator,
    FieldCheck,
    ValidatorCache,
    compile_schema,
)
from formforge.validation.orchestrator import AdvisoryMode, ValidationOrchestrator
from formforge.validation.submission import SubmissionController
from formforge.validation.types import (
    AdvisoryEvaluator,
    AdvisoryOutcome,
    AdvisoryStatus,
    FieldPhase,
    FieldState,
    FieldValue,
    Finding,
    FormSubmissionResult,
    Severity,
    StructuralOutcome,
    ValidationOutcome,
)

__all__ = [
    # Types
    "AdvisoryEvaluator",
    "AdvisoryOutcome",
    "AdvisoryStatus",
    "FieldPhase",
    "FieldState",
    "FieldValue",
    "Finding",
    "FormSubmissionResult",
    "Severity",
    "StructuralOutcome",
    "ValidationOutcome",
    # Compiler
    "CompiledValidator",
    "FieldCheck",
    "ValidatorCache",
    "compile_schema",
    # Advisory
    "AdvisoryEngine",
    "AdvisoryRule",
    "AdvisoryRuleRegistry",
    "advisory_rule",
    "evaluate_form",
    "register_builtin_rules",
    # Session and submission
    "AdvisoryMode",
    "SubmissionController",
    "ValidationOrchestrator",
]
