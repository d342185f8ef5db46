"""Form CLI commands: validate, list, check, replay and suggest."""

import asyncio
import json
from pathlib import Path

import click

from formforge.builder.suggestions import FIELD_TEMPLATES, suggest_field, suggest_validations
from formforge.config import FormForgeConfig
from formforge.exceptions import SchemaError
from formforge.schema.loader import FormSchemaLoader
from formforge.schema.validator import validate_forms_dir, validate_yaml_file
from formforge.validation.submission import SubmissionController
from formforge.validation.types import FieldPhase, FieldState


def _load_forms(config: FormForgeConfig) -> FormSchemaLoader:
    if not config.forms_path.exists():
        click.echo(f"Error: Forms directory not found at {config.forms_path}", err=True)
        raise SystemExit(1)
    loader = FormSchemaLoader(config.forms_path)
    try:
        loader.load_all()
    except SchemaError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    return loader


def _parse_assignment(raw: str) -> tuple[str, str]:
    if "=" not in raw:
        raise click.BadParameter(f"expected field=value, got '{raw}'")
    field_id, value = raw.split("=", 1)
    return field_id.strip(), value


@click.group()
def forms():
    """Form definition commands."""
    pass


@forms.command()
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors.",
)
@click.option(
    "--path",
    "target_path",
    default=None,
    type=click.Path(exists=True, path_type=Path),
    help="Validate a single YAML file instead of the whole forms directory.",
)
def validate(strict: bool, target_path: Path | None):
    """Validate form YAML files (JSON Schema and compile checks)."""
    config = FormForgeConfig.from_env()

    if target_path is not None:
        issues = validate_yaml_file(target_path)
        if strict:
            for issue in issues:
                issue.severity = "error"
    else:
        if not config.forms_path.exists():
            click.echo(f"Error: Forms directory not found at {config.forms_path}", err=True)
            raise SystemExit(1)
        issues = validate_forms_dir(config.forms_path, strict=strict)

    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]

    for issue in issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(
            click.style(f"\n{len(errors)} error(s), {len(warnings)} warning(s)", fg="red"),
            err=True,
        )
        raise SystemExit(1)

    if target_path is None:
        loader = _load_forms(config)
        for form_id in loader.list_forms():
            schema = loader.get_form(form_id)
            click.echo(f"  {form_id}: {len(schema.fields)} fields")

    click.echo(click.style("All form definitions are valid", fg="green"))


@forms.command(name="list")
def list_forms():
    """List forms with their field counts."""
    loader = _load_forms(FormForgeConfig.from_env())
    for form_id in loader.list_forms():
        schema = loader.get_form(form_id)
        advisory = "advisory on" if schema.advisory_enabled else "advisory off"
        click.echo(f"{form_id}\t{schema.title}\t{len(schema.fields)} fields\t{advisory}")


@forms.command()
@click.argument("form_id")
@click.option(
    "--value",
    "-v",
    "assignments",
    multiple=True,
    help="Field value as field=value. Repeatable.",
)
def check(form_id: str, assignments: tuple[str, ...]):
    """Run submission checks for FORM_ID against the given values."""
    config = FormForgeConfig.from_env()
    loader = _load_forms(config)
    schema = loader.get_form(form_id)
    if schema is None:
        click.echo(f"Error: Unknown form '{form_id}'", err=True)
        raise SystemExit(1)

    values = dict(_parse_assignment(a) for a in assignments)
    unknown = sorted(set(values) - set(schema.field_ids))
    if unknown:
        click.echo(f"Error: Unknown field(s) for '{form_id}': {', '.join(unknown)}", err=True)
        raise SystemExit(1)

    try:
        controller = SubmissionController(schema, config.create_engine())
    except SchemaError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    result = asyncio.run(controller.submit(values))
    click.echo(json.dumps(result.to_dict(), indent=2))
    if not result.accepted:
        raise SystemExit(1)


async def _replay(session, edits: list[tuple[str, str]], pause: float) -> list[FieldState]:
    requests: list[FieldState] = []

    def record(state: FieldState) -> None:
        if state.phase == FieldPhase.PENDING:
            requests.append(state)

    session.add_listener(record)
    try:
        for i, (field_id, value) in enumerate(edits):
            if i and pause:
                await asyncio.sleep(pause)
            session.set_value(field_id, value)
        await session.wait_idle()
    finally:
        await session.close()
    return requests


@forms.command()
@click.argument("form_id")
@click.option(
    "--value",
    "-v",
    "assignments",
    multiple=True,
    help="Edit as field=value, applied in order. Repeat a field to type into it.",
)
@click.option(
    "--pause-ms",
    default=0,
    type=click.IntRange(min=0),
    help="Delay between edits in milliseconds.",
)
def replay(form_id: str, assignments: tuple[str, ...], pause_ms: int):
    """Replay edits on FORM_ID through a live validation session.

    Debounce windows and advisory mode come from the FORMFORGE_* environment,
    so edits closer together than the debounce window share one advisory
    request. Prints the final state of every edited field as JSON.
    """
    config = FormForgeConfig.from_env()
    loader = _load_forms(config)
    schema = loader.get_form(form_id)
    if schema is None:
        click.echo(f"Error: Unknown form '{form_id}'", err=True)
        raise SystemExit(1)

    edits = [_parse_assignment(a) for a in assignments]
    unknown = sorted({field_id for field_id, _ in edits} - set(schema.field_ids))
    if unknown:
        click.echo(f"Error: Unknown field(s) for '{form_id}': {', '.join(unknown)}", err=True)
        raise SystemExit(1)

    async def run() -> tuple[list[FieldState], dict[str, FieldState]]:
        session = config.create_session(schema)
        requests = await _replay(session, edits, pause_ms / 1000)
        return requests, session.states()

    try:
        requests, states = asyncio.run(run())
    except SchemaError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    edited = list(dict.fromkeys(field_id for field_id, _ in edits))
    payload = {
        "mode": config.advisory_mode.value,
        "advisoryRequests": [{"field": s.field_id, "value": s.value} for s in requests],
        "fields": [states[field_id].to_dict() for field_id in edited],
    }
    click.echo(json.dumps(payload, indent=2))


@forms.command()
@click.argument("context", type=click.Choice(sorted(FIELD_TEMPLATES)), default="personal_info")
def suggest(context: str):
    """Print a suggested field (and validation hints) for CONTEXT."""
    definition = suggest_field(context)
    payload = {
        "field": definition.to_dict(),
        "validationSuggestions": [s.to_dict() for s in suggest_validations(definition.type)],
    }
    click.echo(json.dumps(payload, indent=2))
