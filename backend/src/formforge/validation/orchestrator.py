"""Validation orchestrator for a single form session.

Coordinates the two validation paths for every field:

- Structural checks run synchronously on every value change, so the
  inline error message is never stale.
- Advisory evaluation is debounced and asynchronous. Per field the phases
  are IDLE -> DEBOUNCING -> PENDING -> RESOLVED; an empty value returns the
  field to IDLE from any phase.

Every advisory request carries a per-field token taken from a monotonic
counter. A completed evaluation is committed only if its token is still
the latest one issued for the field and the field still holds the value
that was evaluated. Anything else is stale and dropped, whatever order the
evaluations finish in.

All state changes happen on the event loop thread; the orchestrator is not
thread-safe and needs no locks.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from formforge.schema.loader import FieldDefinition, FormSchema
from formforge.validation.advisory import AdvisoryEngine
from formforge.validation.compiler import CompiledValidator, compile_schema, is_empty
from formforge.validation.types import (
    VALID,
    AdvisoryEvaluator,
    AdvisoryOutcome,
    AdvisoryStatus,
    FieldPhase,
    FieldState,
    FieldValue,
    StructuralOutcome,
    ValidationOutcome,
)

logger = logging.getLogger(__name__)

FieldStateListener = Callable[[FieldState], None]

DEFAULT_FIELD_DEBOUNCE = 0.3
DEFAULT_FORM_DEBOUNCE = 1.0


class AdvisoryMode(Enum):
    """How advisory evaluation is scheduled.

    FIELD: each field has its own debounce timer and is evaluated alone
    FORM: one timer for the whole form; when it elapses every non-empty
        field is evaluated
    """

    FIELD = "field"
    FORM = "form"


@dataclass
class _FieldSlot:
    """Live state of one field. Owned by the orchestrator."""

    definition: FieldDefinition
    value: FieldValue = None
    structural: StructuralOutcome = VALID
    advisory: AdvisoryOutcome = field(default_factory=AdvisoryOutcome)
    last_resolved: AdvisoryOutcome = field(default_factory=AdvisoryOutcome)
    phase: FieldPhase = FieldPhase.IDLE
    token: int = 0
    timer: asyncio.Task | None = None
    inflight: asyncio.Task | None = None


class ValidationOrchestrator:
    """Owns the per-field validation state of one form session.

    Must be driven from inside a running event loop when advisory
    evaluation is enabled, since value changes schedule timers.

    Example:
        session = ValidationOrchestrator(schema, AdvisoryEngine())
        session.add_listener(renderer.update)
        session.set_value("email", "bob")
        await session.wait_idle()
    """

    def __init__(
        self,
        schema: FormSchema,
        evaluator: AdvisoryEvaluator | None = None,
        *,
        validator: CompiledValidator | None = None,
        mode: AdvisoryMode = AdvisoryMode.FIELD,
        field_debounce: float = DEFAULT_FIELD_DEBOUNCE,
        form_debounce: float = DEFAULT_FORM_DEBOUNCE,
        cancel_stale: bool = True,
        initial_values: Mapping[str, Any] | None = None,
    ):
        """Create a session.

        Args:
            schema: The form schema (compiled here unless ``validator`` is given)
            evaluator: Advisory evaluator; defaults to the built-in rule engine
            validator: A compiled validator for ``schema``, e.g. from a ValidatorCache
            mode: Per-field or whole-form advisory scheduling
            field_debounce: Debounce window in seconds for FIELD mode
            form_debounce: Debounce window in seconds for FORM mode
            cancel_stale: Cancel a superseded in-flight evaluation. Stale
                results are dropped by the token check either way.
            initial_values: Prefilled values; checked structurally, not advised
        """
        self.schema = schema
        self.validator = validator or compile_schema(schema)
        self.evaluator: AdvisoryEvaluator = evaluator or AdvisoryEngine()
        self.mode = mode
        self.field_debounce = field_debounce
        self.form_debounce = form_debounce
        self.cancel_stale = cancel_stale

        self._slots: dict[str, _FieldSlot] = {
            f.id: _FieldSlot(definition=f) for f in schema.fields
        }
        self._form_timer: asyncio.Task | None = None
        self._listeners: list[FieldStateListener] = []
        self._closed = False

        for field_id, value in (initial_values or {}).items():
            slot = self._slot(field_id)
            slot.value = value
            slot.structural = self.validator.validate_field(field_id, value)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def advisory_enabled(self) -> bool:
        return self.schema.advisory_enabled

    @property
    def values(self) -> dict[str, FieldValue]:
        return {field_id: slot.value for field_id, slot in self._slots.items()}

    def add_listener(self, listener: FieldStateListener) -> None:
        """Register a callback invoked with every changed FieldState."""
        self._listeners.append(listener)

    def remove_listener(self, listener: FieldStateListener) -> None:
        self._listeners.remove(listener)

    def set_value(self, field_id: str, value: FieldValue) -> FieldState:
        """Record a user edit.

        Runs the structural check immediately and (re)starts the advisory
        debounce. An empty value cancels any advisory work for the field.

        Raises:
            ValueError: If the field is not part of the schema
            RuntimeError: If the session has been closed
        """
        if self._closed:
            raise RuntimeError("Validation session is closed")

        slot = self._slot(field_id)
        slot.value = value
        slot.structural = self.validator.validate_field(field_id, value)
        self._cancel(slot.timer)
        slot.timer = None

        if is_empty(value):
            self._reset(slot)
        elif self.advisory_enabled:
            # Any in-flight request is now stale; show the last committed result
            slot.advisory = slot.last_resolved
            slot.phase = FieldPhase.DEBOUNCING
            if self.mode == AdvisoryMode.FIELD:
                slot.timer = asyncio.get_running_loop().create_task(
                    self._debounce_field(field_id)
                )
            else:
                self._cancel(self._form_timer)
                self._form_timer = asyncio.get_running_loop().create_task(
                    self._debounce_form()
                )

        state = self._state(slot)
        self._notify(state)
        return state

    def state(self, field_id: str) -> FieldState:
        """Current state of one field.

        Raises:
            ValueError: If the field is not part of the schema
        """
        return self._state(self._slot(field_id))

    def states(self) -> dict[str, FieldState]:
        """Current state of every field, in schema order."""
        return {field_id: self._state(slot) for field_id, slot in self._slots.items()}

    def outcome(self, field_id: str) -> ValidationOutcome:
        return self.state(field_id).outcome

    def validate_all(self) -> dict[str, StructuralOutcome]:
        """Run the structural check over every field and record the outcomes.

        Used before submission to surface errors on untouched fields.
        """
        results = self.validator.validate(self.values)
        for field_id, outcome in results.items():
            slot = self._slots[field_id]
            if outcome != slot.structural:
                slot.structural = outcome
                self._notify(self._state(slot))
        return results

    async def flush(self) -> None:
        """Evaluate every debouncing field now and wait for the results."""
        self._cancel(self._form_timer)
        self._form_timer = None
        for field_id, slot in self._slots.items():
            if slot.phase == FieldPhase.DEBOUNCING:
                self._cancel(slot.timer)
                slot.timer = None
                self._dispatch(field_id)
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until no debounce timer or evaluation is outstanding."""
        while True:
            pending = [t for t in self._tasks() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        """Cancel all outstanding work. The session cannot be used afterwards."""
        self._closed = True
        tasks = self._tasks()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    async def _debounce_field(self, field_id: str) -> None:
        await asyncio.sleep(self.field_debounce)
        self._slots[field_id].timer = None
        self._dispatch(field_id)

    async def _debounce_form(self) -> None:
        await asyncio.sleep(self.form_debounce)
        self._form_timer = None
        for field_id, slot in self._slots.items():
            if not is_empty(slot.value):
                self._dispatch(field_id)

    def _dispatch(self, field_id: str) -> None:
        """Issue a new advisory request for the field's current value."""
        slot = self._slots[field_id]
        slot.token += 1
        if self.cancel_stale:
            self._cancel(slot.inflight)

        slot.phase = FieldPhase.PENDING
        slot.advisory = replace(slot.advisory, status=AdvisoryStatus.PENDING)
        slot.inflight = asyncio.get_running_loop().create_task(
            self._evaluate(field_id, slot.token, slot.value)
        )
        logger.debug("Advisory request %d for field '%s'", slot.token, field_id)
        self._notify(self._state(slot))

    async def _evaluate(self, field_id: str, token: int, requested: FieldValue) -> None:
        slot = self._slots[field_id]
        try:
            findings = await self.evaluator.evaluate(
                field_id, slot.definition.type, requested, slot.definition
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "Advisory evaluation failed for field '%s': %s", field_id, e
            )
            if self._is_current(slot, token, requested):
                slot.advisory = slot.last_resolved
                slot.phase = (
                    FieldPhase.RESOLVED
                    if slot.last_resolved.status == AdvisoryStatus.RESOLVED
                    else FieldPhase.IDLE
                )
                self._notify(self._state(slot))
            return
        finally:
            if slot.inflight is asyncio.current_task():
                slot.inflight = None

        if not self._is_current(slot, token, requested):
            logger.debug(
                "Discarding stale advisory result %d for field '%s' (latest %d)",
                token,
                field_id,
                slot.token,
            )
            return

        slot.advisory = AdvisoryOutcome(
            status=AdvisoryStatus.RESOLVED, findings=tuple(findings)
        )
        slot.last_resolved = slot.advisory
        slot.phase = FieldPhase.RESOLVED
        self._notify(self._state(slot))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _slot(self, field_id: str) -> _FieldSlot:
        slot = self._slots.get(field_id)
        if slot is None:
            raise ValueError(
                f"Field '{field_id}' is not part of form '{self.schema.id}'"
            )
        return slot

    def _reset(self, slot: _FieldSlot) -> None:
        """Return a field to IDLE and invalidate any outstanding request."""
        slot.token += 1
        self._cancel(slot.inflight)
        slot.inflight = None
        slot.advisory = AdvisoryOutcome()
        slot.last_resolved = slot.advisory
        slot.phase = FieldPhase.IDLE

    @staticmethod
    def _is_current(slot: _FieldSlot, token: int, requested: FieldValue) -> bool:
        return token == slot.token and slot.value == requested

    @staticmethod
    def _cancel(task: asyncio.Task | None) -> None:
        if task is not None and not task.done():
            task.cancel()

    def _tasks(self) -> list[asyncio.Task]:
        tasks = [self._form_timer] if self._form_timer else []
        for slot in self._slots.values():
            tasks.extend(t for t in (slot.timer, slot.inflight) if t is not None)
        return tasks

    def _state(self, slot: _FieldSlot) -> FieldState:
        return FieldState(
            definition=slot.definition,
            value=slot.value,
            outcome=ValidationOutcome(structural=slot.structural, advisory=slot.advisory),
            phase=slot.phase,
        )

    def _notify(self, state: FieldState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception(
                    "Field state listener failed for field '%s'", state.field_id
                )
