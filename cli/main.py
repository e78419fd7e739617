"""Merchant scan CLI: entry-point for every pipeline stage.

Usage:
    python cli/main.py --help

Stages run separately and resume from the previous stage's checkpoint:
    search    → discover candidate storefronts   (data/search-results.json)
    scrape    → scrape them for evidence          (data/scraped-results.json)
    classify  → classify each scraped site        (data/classified-results.json)
    run       → all three, in order
    single    → scrape + classify one URL         (data/single-result.json)
    summary   → headline counts from the last classify run
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from pipeline.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
from functools import wraps
from typing import Callable, Optional

import typer

from cli.rendering import (
    render_classification,
    render_scrape,
    render_search,
    render_summary,
    render_violations,
)
from pipeline.classifier import summarize
from pipeline.config import Settings
from pipeline.errors import ConfigurationError, PipelineError, ValidationError
from pipeline.log import setup_logging
from pipeline.runner import PipelineOrchestrator, normalize_url
from pipeline.store import SEARCH_FILE, SINGLE_FILE, StageStore

app = typer.Typer(
    name="merchant-scan",
    help="Find and classify storefronts selling controlled substances via card payments.",
    no_args_is_help=True,
)

EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def handle_errors(func: Callable) -> Callable:
    """Decorator turning pipeline errors into a message and an exit code."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ValidationError as exc:
            typer.echo(f"❌ {exc}", err=True)
            raise typer.Exit(code=EXIT_INVALID_INPUT)
        except ConfigurationError as exc:
            typer.echo(f"❌ Configuration error: {exc}", err=True)
            raise typer.Exit(code=EXIT_FAILURE)
        except PipelineError as exc:
            typer.echo(f"❌ {exc}", err=True)
            raise typer.Exit(code=EXIT_FAILURE)

    return wrapper


def _load_settings() -> Settings:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    return settings


def build_orchestrator(settings: Settings) -> PipelineOrchestrator:
    return PipelineOrchestrator.from_settings(settings)


# ---------------------------------------------------------------------------
# Stage commands
# ---------------------------------------------------------------------------

@app.command("search")
@handle_errors
def search() -> None:
    """Discover candidate storefronts and save them."""
    settings = _load_settings()
    settings.require_search()

    typer.echo("🔍 Discovering candidate sites …")
    results = asyncio.run(build_orchestrator(settings).run_discovery())
    typer.echo(render_search(results))
    typer.echo(f"💾 Saved to {StageStore(settings.data_dir).path(SEARCH_FILE)}")


@app.command("scrape")
@handle_errors
def scrape(
    limit: Optional[int] = typer.Option(
        None, "--limit", min=0, help="Maximum number of sites to scrape (default: PIPELINE_ITEM_LIMIT)."
    ),
) -> None:
    """Scrape the saved search results for evidence."""
    settings = _load_settings()
    settings.require_scrape()

    typer.echo("🌐 Scraping candidate sites …")
    sites = asyncio.run(build_orchestrator(settings).run_scrape(limit=limit))
    typer.echo(render_scrape(sites))


@app.command("classify")
@handle_errors
def classify(
    limit: Optional[int] = typer.Option(
        None, "--limit", min=0, help="Maximum number of sites to classify (default: PIPELINE_ITEM_LIMIT)."
    ),
) -> None:
    """Classify the saved scrape results."""
    settings = _load_settings()
    settings.require_classify()

    typer.echo("🧠 Classifying scraped sites …")
    results = asyncio.run(build_orchestrator(settings).run_classify(limit=limit))
    typer.echo(render_summary(summarize(results)))
    typer.echo(render_violations(results))


@app.command("run")
@handle_errors
def run() -> None:
    """Run search, scrape and classify back to back."""
    settings = _load_settings()
    settings.require_search()
    settings.require_scrape()
    settings.require_classify()

    typer.echo("🚀 Running full pipeline …")
    results = asyncio.run(build_orchestrator(settings).run_all())
    typer.echo(render_summary(summarize(results)))
    typer.echo(render_violations(results))


@app.command("single")
@handle_errors
def single(url: str = typer.Argument(..., help="URL to scrape and classify.")) -> None:
    """Scrape and classify one URL without touching the stage checkpoints."""
    target = normalize_url(url)
    settings = _load_settings()
    settings.require_scrape()
    settings.require_classify()

    typer.echo(f"🧪 Single-site run: {target}")
    result = asyncio.run(build_orchestrator(settings).run_single(target))
    typer.echo(render_classification(result.classification))
    typer.echo(f"💾 Saved to {StageStore(settings.data_dir).path(SINGLE_FILE)}")


@app.command("summary")
@handle_errors
def summary() -> None:
    """Print headline counts from the last classify run."""
    settings = _load_settings()
    results = StageStore(settings.data_dir).load_classified()
    typer.echo(render_summary(summarize(results)))
    typer.echo(render_violations(results))


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
