"""FormForge CLI entry point."""

import logging

import click


@click.group()
@click.option("--verbose", "-V", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool):
    """FormForge — schema-driven forms CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register subcommand groups
from formforge.cli.forms_cmd import forms  # noqa: E402

cli.add_command(forms)
