"""CLI entry point for chat2portfolio."""

import json

import click
import uvicorn

from chat2portfolio.config import settings
from chat2portfolio.controllers import ConversationController, RegenerationController
from chat2portfolio.errors import PortfolioError
from chat2portfolio.orchestrator import GenerationOrchestrator
from chat2portfolio.store import DocumentStore
from chat2portfolio.utils.llm_client import OpenAIGenerator
from chat2portfolio.utils.logging_setup import setup_logging


def _open_store() -> DocumentStore:
    store = DocumentStore.from_settings(settings)
    store.init_defaults()
    return store


def _orchestrator() -> GenerationOrchestrator:
    return GenerationOrchestrator(OpenAIGenerator(settings), settings)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
def main(verbose: bool):
    """Chat2Portfolio - build a profile by chatting, then generate a portfolio site from it."""
    if verbose:
        settings.log_level = "DEBUG"
    setup_logging(settings)


@main.command()
@click.option("--host", default=None, help="Bind address (default: HOST setting)")
@click.option("--port", type=int, default=None, help="Port (default: PORT setting)")
def serve(host: str | None, port: int | None):
    """Run the HTTP service."""
    from chat2portfolio.api import create_app

    app = create_app(settings)
    uvicorn.run(app, host=host or settings.host, port=port or settings.port, log_config=None)


@main.command()
def init():
    """Create the store directories and default documents."""
    store = _open_store()
    click.echo(f"Data directory: {store.data_dir}")
    click.echo(f"Site directory: {store.site_dir}")


@main.command()
def reset():
    """Clear the chat history and restore the default profile."""
    ConversationController(_open_store(), _orchestrator(), settings).reset()
    click.echo("Files reset successfully")


@main.command()
def history():
    """Print the chat history as JSON."""
    turns = ConversationController(_open_store(), _orchestrator(), settings).history()
    click.echo(json.dumps(turns, indent=2, ensure_ascii=False))


@main.command()
def profile():
    """Print the user profile as JSON."""
    document = ConversationController(_open_store(), _orchestrator(), settings).profile()
    click.echo(json.dumps(document, indent=2, ensure_ascii=False))


@main.command()
def regenerate():
    """Regenerate the portfolio site from the current profile and history."""
    controller = RegenerationController(_open_store(), _orchestrator(), settings)
    try:
        outcome = controller.regenerate()
    except PortfolioError as e:
        click.echo(f"Regeneration failed ({e.kind}): {e.message}", err=True)
        raise SystemExit(1)

    click.echo(f"\n{outcome.message}")
    for filename, content in outcome.code.as_files().items():
        click.echo(f"  {filename}: {len(content)} chars")


if __name__ == "__main__":
    main()
