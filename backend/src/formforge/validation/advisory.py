"""Advisory rule engine.

Heuristic, deterministic field checks that run alongside structural
validation. Each rule maps (field id, field type, value) to zero or more
findings with a fixed confidence. Rules are registered by name, following
the same explicit-registration pattern as the structural layer.

Usage:
    engine = AdvisoryEngine()
    findings = await engine.evaluate("email", FieldType.EMAIL, "bob")
"""

import asyncio
import logging
import re
from collections.abc import Callable, Mapping
from typing import Any

from formforge.core.types import FieldType
from formforge.exceptions import AdvisoryEvaluationFailure
from formforge.schema.loader import FieldDefinition, FormSchema
from formforge.validation.compiler import is_empty, parse_number
from formforge.validation.types import AdvisoryEvaluator, Finding, Severity

logger = logging.getLogger(__name__)

# Rule signature: (field_id, field_type, value, hint) -> findings
AdvisoryRule = Callable[[str, FieldType, Any, FieldDefinition | None], list[Finding]]

AGE_RANGE = (13, 120)


class AdvisoryRuleRegistry:
    """Registry for advisory rules.

    Rules run in registration order. Registration is idempotent.

    Example:
        @advisory_rule("myapp.phoneDigits")
        def phone_digits(field_id, field_type, value, hint):
            ...
    """

    _rules: dict[str, AdvisoryRule] = {}

    @classmethod
    def register(cls, name: str, rule: AdvisoryRule) -> None:
        """Register a rule function by name. Re-registering is a no-op."""
        if name in cls._rules:
            return
        cls._rules[name] = rule

    @classmethod
    def get(cls, name: str) -> AdvisoryRule:
        """Get a registered rule by name.

        Raises:
            ValueError: If the rule is not registered
        """
        if name not in cls._rules:
            raise ValueError(f"Advisory rule '{name}' is not registered")
        return cls._rules[name]

    @classmethod
    def all(cls) -> list[AdvisoryRule]:
        """All registered rules, in registration order."""
        return list(cls._rules.values())

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._rules

    @classmethod
    def list_registered(cls) -> list[str]:
        return list(cls._rules.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._rules.clear()


def advisory_rule(name: str) -> Callable[[AdvisoryRule], AdvisoryRule]:
    """Decorator to register an advisory rule."""

    def decorator(fn: AdvisoryRule) -> AdvisoryRule:
        AdvisoryRuleRegistry.register(name, fn)
        return fn

    return decorator


# =============================================================================
# Field id semantics
# =============================================================================


def id_tokens(field_id: str) -> list[str]:
    """Split a field id into lowercase words (camelCase, snake_case, kebab-case)."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", field_id)
    return [t for t in re.split(r"[\s_\-.]+", spaced.lower()) if t]


# Qualifiers that make a "...name" id refer to a thing rather than a person
NON_PERSON_QUALIFIERS = frozenset({
    "app", "branch", "bucket", "business", "brand", "class", "column", "company",
    "device", "dir", "domain", "event", "field", "file", "folder", "group", "host",
    "key", "machine", "org", "package", "path", "product", "project", "queue",
    "role", "schema", "screen", "server", "table", "tag", "team", "user",
})


def is_name_like(field_id: str) -> bool:
    """True for ids such as ``name``, ``firstName``, ``full_name``, ``surname``.

    The word before ``name`` (``user`` in both ``username`` and ``userName``)
    must not be a non-person qualifier, so ``fileName`` or ``hostname`` do
    not match.
    """
    tokens = id_tokens(field_id)
    for i, token in enumerate(tokens):
        if not token.endswith("name"):
            continue
        qualifier = token[: -len("name")]
        if not qualifier and i > 0:
            qualifier = tokens[i - 1]
        if qualifier not in NON_PERSON_QUALIFIERS:
            return True
    return False


def is_age_like(field_id: str) -> bool:
    """True for ids such as ``age`` or ``userAge``; not ``page``."""
    return "age" in id_tokens(field_id)


# =============================================================================
# Built-in rules
# =============================================================================


def email_separator_rule(field_id, field_type, value, hint):
    if field_type != FieldType.EMAIL or "@" in str(value):
        return []
    return [
        Finding(
            severity=Severity.ERROR,
            message="Email format appears invalid. Consider using a proper email format.",
            confidence=0.95,
            code="EMAIL_MISSING_AT",
            field_id=field_id,
        )
    ]


def person_name_rule(field_id, field_type, value, hint):
    if field_type not in (FieldType.TEXT, FieldType.TEXTAREA) or not is_name_like(field_id):
        return []

    text = str(value)
    findings = []
    if len(text.strip()) < 2:
        findings.append(
            Finding(
                severity=Severity.WARNING,
                message="Name seems too short. Consider adding more characters.",
                confidence=0.8,
                code="NAME_TOO_SHORT",
                field_id=field_id,
            )
        )
    if not all(c.isalpha() or c.isspace() for c in text):
        findings.append(
            Finding(
                severity=Severity.WARNING,
                message="Name contains special characters. Consider using only letters.",
                confidence=0.7,
                code="NAME_SPECIAL_CHARACTERS",
                field_id=field_id,
            )
        )
    return findings


def brief_content_rule(field_id, field_type, value, hint):
    if field_type != FieldType.TEXTAREA:
        return []
    if 0 < len(str(value)) < 10:
        return [
            Finding(
                severity=Severity.INFO,
                message="Content seems brief. Consider adding more detail for better context.",
                confidence=0.6,
                code="BRIEF_CONTENT",
                field_id=field_id,
            )
        ]
    return []


def age_range_rule(field_id, field_type, value, hint):
    if field_type != FieldType.NUMBER or not is_age_like(field_id):
        return []
    age = parse_number(value)
    # Non-numeric input is a structural problem, not an advisory one
    if age is None:
        return []
    low, high = AGE_RANGE
    if age < low or age > high:
        return [
            Finding(
                severity=Severity.WARNING,
                message="Age value seems unusual. Please verify the entered age.",
                confidence=0.85,
                code="AGE_UNUSUAL",
                field_id=field_id,
            )
        ]
    return []


BUILTIN_RULES: dict[str, AdvisoryRule] = {
    "emailSeparator": email_separator_rule,
    "personName": person_name_rule,
    "briefContent": brief_content_rule,
    "ageRange": age_range_rule,
}


def register_builtin_rules() -> None:
    """Register the built-in advisory rules. Safe to call more than once."""
    for name, rule in BUILTIN_RULES.items():
        AdvisoryRuleRegistry.register(name, rule)


# =============================================================================
# Engine
# =============================================================================


class AdvisoryEngine:
    """Rule-based AdvisoryEvaluator.

    Stateless across calls. ``latency`` (seconds) simulates the round trip
    of a remote evaluation service; callers must not assume it is bounded.
    """

    def __init__(
        self,
        latency: float = 0.0,
        rules: list[AdvisoryRule] | None = None,
    ):
        self.latency = latency
        if rules is None:
            register_builtin_rules()
            rules = AdvisoryRuleRegistry.all()
        self.rules = list(rules)

    async def evaluate(
        self,
        field_id: str,
        field_type: FieldType,
        value: Any,
        hint: FieldDefinition | None = None,
    ) -> list[Finding]:
        """Run every rule against one value.

        Empty or blank values produce no findings and skip the simulated
        round trip entirely.

        Raises:
            AdvisoryEvaluationFailure: If a rule raises
        """
        if is_empty(value):
            return []

        if self.latency > 0:
            await asyncio.sleep(self.latency)

        findings: list[Finding] = []
        for rule in self.rules:
            try:
                findings.extend(rule(field_id, field_type, value, hint))
            except Exception as e:
                raise AdvisoryEvaluationFailure(
                    f"Advisory rule failed for field '{field_id}': {e}",
                    field_id=field_id,
                ) from e
        return findings


async def evaluate_form(
    evaluator: AdvisoryEvaluator,
    schema: FormSchema,
    values: Mapping[str, Any],
) -> dict[str, list[Finding]]:
    """Evaluate every field of a form concurrently.

    A failed field evaluation is logged and reported as no findings; it never
    affects the other fields.

    Returns:
        Findings by field id, for every field in the schema
    """
    findings: dict[str, list[Finding]] = {f.id: [] for f in schema.fields}

    # Empty values are never sent to the evaluator
    fields = [f for f in schema.fields if not is_empty(values.get(f.id))]
    tasks = [
        evaluator.evaluate(f.id, f.type, values.get(f.id), f) for f in fields
    ]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    for f, result in zip(fields, results):
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            logger.warning("Advisory evaluation failed for field '%s': %s", f.id, result)
            findings[f.id] = []
        else:
            findings[f.id] = list(result)
    return findings
