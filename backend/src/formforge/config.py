"""Runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from formforge.schema.loader import FormSchema
from formforge.validation.advisory import AdvisoryEngine
from formforge.validation.compiler import CompiledValidator
from formforge.validation.orchestrator import (
    DEFAULT_FIELD_DEBOUNCE,
    DEFAULT_FORM_DEBOUNCE,
    AdvisoryMode,
    ValidationOrchestrator,
)
from formforge.validation.types import AdvisoryEvaluator


def resolve_base_path() -> Path:
    """Project root, whether running from the repository root or ``backend/``."""
    cwd = Path.cwd()
    if cwd.name == "backend":
        return cwd.parent
    return cwd


def _ms_env(name: str, default_seconds: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default_seconds
    try:
        return int(raw) / 1000
    except ValueError:
        raise ValueError(f"{name} must be an integer number of milliseconds, got '{raw}'") from None


@dataclass
class FormForgeConfig:
    """Settings shared by the API and the CLI.

    Debounce windows and latency are stored in seconds.
    """

    forms_path: Path
    field_debounce: float = DEFAULT_FIELD_DEBOUNCE
    form_debounce: float = DEFAULT_FORM_DEBOUNCE
    advisory_latency: float = 0.0
    advisory_mode: AdvisoryMode = AdvisoryMode.FIELD

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> FormForgeConfig:
        """Create config from environment variables.

        Resolution:
        1. FORMFORGE_FORMS_PATH, else {base_path}/forms
        2. FORMFORGE_FIELD_DEBOUNCE_MS (default 300)
        3. FORMFORGE_FORM_DEBOUNCE_MS (default 1000)
        4. FORMFORGE_ADVISORY_LATENCY_MS (default 0)
        5. FORMFORGE_ADVISORY_MODE: "field" or "form" (default "field")

        Raises:
            ValueError: On malformed values
        """
        if base_path is None:
            base_path = resolve_base_path()

        forms_path = os.environ.get("FORMFORGE_FORMS_PATH")

        return cls(
            forms_path=Path(forms_path) if forms_path else base_path / "forms",
            field_debounce=_ms_env("FORMFORGE_FIELD_DEBOUNCE_MS", DEFAULT_FIELD_DEBOUNCE),
            form_debounce=_ms_env("FORMFORGE_FORM_DEBOUNCE_MS", DEFAULT_FORM_DEBOUNCE),
            advisory_latency=_ms_env("FORMFORGE_ADVISORY_LATENCY_MS", 0.0),
            advisory_mode=AdvisoryMode(os.environ.get("FORMFORGE_ADVISORY_MODE", "field")),
        )

    def create_engine(self) -> AdvisoryEngine:
        """The built-in rule engine with the configured simulated latency."""
        return AdvisoryEngine(latency=self.advisory_latency)

    def create_session(
        self,
        schema: FormSchema,
        evaluator: AdvisoryEvaluator | None = None,
        *,
        validator: CompiledValidator | None = None,
        initial_values: dict[str, Any] | None = None,
    ) -> ValidationOrchestrator:
        """Open a validation session using the configured mode and debounce windows."""
        return ValidationOrchestrator(
            schema,
            evaluator or self.create_engine(),
            validator=validator,
            mode=self.advisory_mode,
            field_debounce=self.field_debounce,
            form_debounce=self.form_debounce,
            initial_values=initial_values,
        )
