"""Exception hierarchy for FormForge.

Only compile-time problems are raised to callers. Per-field structural
failures and submission rejections are returned as data, and advisory
failures are logged by the orchestrator and never reach the host.
"""


class FormForgeError(Exception):
    """Base class for all FormForge errors."""
    pass


class SchemaError(FormForgeError):
    """A form schema cannot be compiled.

    Raised before any field is rendered (duplicate field ids, a choice
    field without options, an invalid pattern).
    """

    def __init__(self, message: str, field_id: str | None = None):
        super().__init__(message)
        self.field_id = field_id


class AdvisoryEvaluationFailure(FormForgeError):
    """An advisory evaluation for a single field failed."""

    def __init__(self, message: str, field_id: str | None = None):
        super().__init__(message)
        self.field_id = field_id
