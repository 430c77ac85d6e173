"""CLI commands for running migrations and querying the guide corpus."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import yaml

from .config import DEFAULT_CONFIG_NAME, config_section, default_config, load_config
from .errors import ConfigError, CorpusLoadError
from .guides.assembler import assemble_full_context, assemble_issue_context
from .guides.corpus import GuideCorpus
from .guides.index import RelevanceIndex
from .orchestrator import MigrationResult, SessionOrchestrator

APP_HELP = "Plugin migration runner backed by a curated guide corpus."

app = typer.Typer(help=APP_HELP)


def _configure_logging(config: Dict[str, Any], verbose: bool) -> None:
    """Apply the configured log level, forcing DEBUG when verbose."""
    level_name = str(config_section(config, "logging").get("level", "WARNING")).upper()
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load(config_path: Optional[Path], guides: Optional[Path], verbose: bool) -> Dict[str, Any]:
    """Load configuration and apply command line overrides."""
    if config_path is None and Path(DEFAULT_CONFIG_NAME).exists():
        config_path = Path(DEFAULT_CONFIG_NAME)
    try:
        config = load_config(config_path)
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error
    if guides is not None:
        config["guides"]["path"] = str(guides.resolve())
    if verbose:
        config["verbose"] = True
    _configure_logging(config, bool(config.get("verbose")))
    return config


def _load_corpus(config: Dict[str, Any]) -> GuideCorpus:
    try:
        return GuideCorpus.from_config(config)
    except CorpusLoadError as error:
        typer.echo(f"Cannot initialize migration system without guide access: {error}")
        raise typer.Exit(code=1) from error


def _render_result(result: MigrationResult) -> None:
    typer.echo("Migration result:")
    typer.echo(f"- State: {result.state.value}")
    typer.echo(f"- Repository: {result.repo_path}")
    typer.echo(f"- Duration: {result.duration_ms / 1000:.1f}s")
    typer.echo(f"- Messages: {result.message_count}")
    if result.guides_used:
        typer.echo(f"- Guides used: {', '.join(result.guides_used)}")
    if result.error:
        typer.echo(f"- Error: {result.error}")


async def _run_session(orchestrator: SessionOrchestrator) -> MigrationResult:
    """Await the session, routing Ctrl-C to a cooperative abort."""
    loop = asyncio.get_running_loop()
    installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, orchestrator.abort)
        installed = True
    except (NotImplementedError, RuntimeError):
        pass
    try:
        return await orchestrator.migrate()
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


ConfigOption = typer.Option(None, "--config", "-c", help="Path to a migrator YAML config.")
GuidesOption = typer.Option(None, "--guides", "-g", help="Directory holding the migration guides.")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Show debug logging and event errors.")


@app.command()
def migrate(
    repo: Path = typer.Argument(Path("."), help="Repository to migrate."),
    config_path: Optional[Path] = ConfigOption,
    guides: Optional[Path] = GuidesOption,
    verbose: bool = VerboseOption,
) -> None:
    """Run a full migration session against ``repo``."""
    config = _load(config_path, guides, verbose)
    corpus = _load_corpus(config)
    orchestrator = SessionOrchestrator.from_config(config, repo.resolve(), corpus=corpus)
    result = asyncio.run(_run_session(orchestrator))
    _render_result(result)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def issue(
    description: str = typer.Argument(..., help="Free-form description of the migration issue."),
    config_path: Optional[Path] = ConfigOption,
    guides: Optional[Path] = GuidesOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show the guides relevant to a migration issue."""
    config = _load(config_path, guides, verbose)
    orchestrator = SessionOrchestrator.from_config(config, Path.cwd(), corpus=_load_corpus(config))
    typer.echo(orchestrator.get_migration_help(description))


@app.command()
def search(
    query: str = typer.Argument(..., help="Search terms."),
    limit: int = typer.Option(3, "--limit", "-n", min=1, help="Maximum number of guides to list."),
    config_path: Optional[Path] = ConfigOption,
    guides: Optional[Path] = GuidesOption,
    verbose: bool = VerboseOption,
) -> None:
    """Search the guide corpus."""
    config = _load(config_path, guides, verbose)
    orchestrator = SessionOrchestrator.from_config(config, Path.cwd(), corpus=_load_corpus(config))
    typer.echo(orchestrator.search_guides(query, limit))


@app.command()
def context(
    issue_text: Optional[str] = typer.Option(None, "--issue", "-i", help="Only include guides relevant to this issue."),
    config_path: Optional[Path] = ConfigOption,
    guides: Optional[Path] = GuidesOption,
    verbose: bool = VerboseOption,
) -> None:
    """Print the assembled guide context."""
    config = _load(config_path, guides, verbose)
    corpus = _load_corpus(config)
    if issue_text:
        rendered = assemble_issue_context(RelevanceIndex(corpus), issue_text)
        typer.echo(rendered or f"No specific guidance found for: {issue_text}")
        return
    typer.echo(assemble_full_context(corpus.get_all()))


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path(DEFAULT_CONFIG_NAME), help="Where to write the config file."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Write the default configuration to ``path``."""
    if path.exists() and not force:
        typer.echo(f"Config already exists at {path}; use --force to overwrite.")
        raise typer.Exit(code=1)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(default_config(), handle, sort_keys=False)
    typer.echo(f"Wrote default configuration to {path}.")


def main() -> None:  # pragma: no cover - console entry point
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
