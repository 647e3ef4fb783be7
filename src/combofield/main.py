import asyncio
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

import typer

# Import logger setup first to ensure logging is configured
from combofield.logger import get_logger, setup_logger
from combofield.application import ComboboxRegistry
from combofield.config import load_settings
from combofield.domain.exceptions import ComboboxError
from combofield.infrastructure.resolvers import HttpRowResolver, InMemoryRowResolver
from combofield.presentation.app import DEMO_TABLES, DemoApp

load_dotenv()

cli = typer.Typer(
    name="combofield",
    help="Combobox fields resolving identifiers to labels, in the terminal",
    epilog="""
    Examples:
    $ combofield demo
    $ combofield demo --data tables.json
    $ combofield demo --base-url https://example.org/autocomplete
    """,
    add_completion=False,
)


@cli.callback()
def main() -> None:
    """combofield command line."""


@cli.command()
def demo(
    data: Optional[Path] = typer.Option(None, "--data", help="JSON file mapping commands to row lists"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Lookup endpoint (overrides COMBOFIELD_BASE_URL)"),
    company_id: str = typer.Option("42", "--company-id", help="Initial company identifier"),
    debug: bool = typer.Option(os.getenv("DEBUG", "false").lower() == "true", "--debug", help="Enable debug mode"),
):
    """Run the demo form."""
    try:
        settings = load_settings(dotenv=False)
    except ComboboxError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    setup_logger(log_file=settings.log_file, log_level="DEBUG" if debug else settings.log_level)
    logger = get_logger("main")

    base_url = base_url or settings.base_url
    if data is not None:
        try:
            resolver = InMemoryRowResolver.from_json_file(data)
        except ComboboxError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)
    elif base_url:
        resolver = HttpRowResolver(base_url, timeout=settings.timeout)
    else:
        resolver = InMemoryRowResolver(DEMO_TABLES)

    logger.info(f"Starting demo with {type(resolver).__name__}")
    registry = ComboboxRegistry(resolver=resolver, settings=settings)
    app = DemoApp(registry, company_id=company_id)
    try:
        asyncio.run(app.run_async())
    finally:
        registry.unbind_all()
        logger.info("Demo finished")


def run():
    """Entry point for the combofield command."""
    cli()


if __name__ == "__main__":
    run()
