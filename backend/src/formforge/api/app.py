"""FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from formforge.builder.suggestions import suggest_field, suggest_validations
from formforge.config import FormForgeConfig
from formforge.core.types import list_field_types
from formforge.exceptions import SchemaError
from formforge.render.dispatcher import RenderDispatcher
from formforge.schema.loader import FormSchema, FormSchemaLoader
from formforge.schema.validator import validate_forms_dir
from formforge.validation import (
    AdvisoryEngine,
    AdvisoryOutcome,
    AdvisoryStatus,
    CompiledValidator,
    SubmissionController,
    ValidationOutcome,
    ValidatorCache,
    evaluate_form,
    register_builtin_rules,
)
from formforge.validation.compiler import is_empty

logger = logging.getLogger(__name__)


# Global instances (initialized on startup)
config: FormForgeConfig | None = None
form_loader: FormSchemaLoader | None = None
validator_cache: ValidatorCache | None = None
advisory_engine: AdvisoryEngine | None = None
dispatcher = RenderDispatcher()
# Forms that failed to compile: form id -> error message
form_errors: dict[str, str] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize on startup."""
    global config, form_loader, validator_cache, advisory_engine

    register_builtin_rules()
    config = FormForgeConfig.from_env()

    # Validate form YAML files (warn on errors, don't block startup)
    issues = validate_forms_dir(config.forms_path)
    if issues:
        error_count = sum(1 for i in issues if i.severity == "error")
        warn_count = sum(1 for i in issues if i.severity == "warning")
        for issue in issues:
            if issue.severity == "error":
                logger.error("Form definition error: %s", issue)
            else:
                logger.warning("Form definition warning: %s", issue)
        logger.warning(
            "Form validation: %d error(s), %d warning(s). "
            "Run 'formforge forms validate' for details.",
            error_count,
            warn_count,
        )

    form_loader = FormSchemaLoader(config.forms_path)
    form_loader.load_all()

    # Compile every form up front; a broken form is never rendered
    validator_cache = ValidatorCache()
    form_errors.clear()
    for form_id in form_loader.list_forms():
        try:
            validator_cache.get(form_loader.get_form(form_id))
        except SchemaError as exc:
            logger.error("Form '%s' failed to compile: %s", form_id, exc)
            form_errors[form_id] = str(exc)

    advisory_engine = config.create_engine()

    yield


app = FastAPI(title="FormForge API", lifespan=lifespan)

# CORS for frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_form(form_id: str) -> tuple[FormSchema, CompiledValidator]:
    if not form_loader or not validator_cache:
        raise HTTPException(500, "Form loader not initialized")

    schema = form_loader.get_form(form_id)
    if not schema:
        raise HTTPException(404, f"Form '{form_id}' not found")
    if form_id in form_errors:
        raise HTTPException(422, f"Form '{form_id}' is invalid: {form_errors[form_id]}")

    return schema, validator_cache.get(schema)


def _check_fields(schema: FormSchema, data: dict[str, Any]) -> None:
    unknown = sorted(set(data) - set(schema.field_ids))
    if unknown:
        raise HTTPException(400, f"Unknown field(s) for form '{schema.id}': {', '.join(unknown)}")


# --- Form Endpoints ---


@app.get("/api/forms")
async def list_forms() -> dict[str, Any]:
    """List all available forms."""
    if not form_loader:
        raise HTTPException(500, "Form loader not initialized")

    forms = []
    for form_id in form_loader.list_forms():
        schema = form_loader.get_form(form_id)
        forms.append({
            "id": schema.id,
            "title": schema.title,
            "description": schema.description,
            "fieldCount": len(schema.fields),
            "advisoryEnabled": schema.advisory_enabled,
            "valid": form_id not in form_errors,
        })

    return {"forms": forms}


@app.get("/api/forms/{form_id}")
async def get_form(form_id: str) -> dict[str, Any]:
    """Get a form definition with render instructions for every field."""
    schema, _ = _get_form(form_id)
    return {
        "form": schema.to_dict(),
        "fields": [i.to_dict() for i in dispatcher.render_schema(schema)],
    }


class FormDataRequest(BaseModel):
    """Request body carrying field values."""
    data: dict[str, Any]


@app.post("/api/forms/{form_id}/validate")
async def validate_form(form_id: str, request: FormDataRequest) -> dict[str, Any]:
    """Structural and advisory validation of every field, without submitting."""
    schema, validator = _get_form(form_id)
    _check_fields(schema, request.data)

    structural = validator.validate(request.data)
    findings: dict[str, list] = {}
    if schema.advisory_enabled:
        findings = await evaluate_form(advisory_engine, schema, request.data)

    fields = {}
    for field_id, outcome in structural.items():
        advisory = AdvisoryOutcome()
        if schema.advisory_enabled and not is_empty(request.data.get(field_id)):
            advisory = AdvisoryOutcome(
                status=AdvisoryStatus.RESOLVED,
                findings=tuple(findings.get(field_id, [])),
            )
        fields[field_id] = ValidationOutcome(structural=outcome, advisory=advisory).to_dict()

    return {
        "valid": all(o.valid for o in structural.values()),
        "fields": fields,
    }


@app.post("/api/forms/{form_id}/submit")
async def submit_form(form_id: str, request: FormDataRequest):
    """Submit a form. 200 when accepted, 422 with blocking fields otherwise."""
    schema, validator = _get_form(form_id)
    _check_fields(schema, request.data)

    controller = SubmissionController(schema, advisory_engine, validator=validator)
    result = await controller.submit(request.data)

    return JSONResponse(
        status_code=200 if result.accepted else 422,
        content=result.to_dict(),
    )


# --- Builder Endpoints ---


class SuggestRequest(BaseModel):
    """Request body for builder field suggestions."""
    context: str = "personal_info"
    fieldId: str | None = None


@app.post("/api/builder/suggest")
async def suggest(request: SuggestRequest) -> dict[str, Any]:
    """Suggest a field for a builder context, with validation hints."""
    definition = suggest_field(request.context, request.fieldId)
    return {
        "field": definition.to_dict(),
        "validationSuggestions": [s.to_dict() for s in suggest_validations(definition.type)],
    }


@app.get("/api/field-types")
async def field_types() -> dict[str, Any]:
    """List the field types a form may use."""
    return {"types": list_field_types()}
