"""CLI interface for running the poll service."""

from __future__ import annotations

import logging
import secrets
from typing import Optional

import typer
import uvicorn

from datasource.base import FetchError
from datasource.providers import create_source
from poll_core.coverage import compute_assignment
from poll_core.errors import CapacityError
from service.app import create_app
from service.config import ServiceConfig, apply_env, load_config
from service.runtime import build_engine
from snapshots import PeriodicSaver, SnapshotError, TallyFile, parse_records

app = typer.Typer(help="Hot-or-not poll service CLI")

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _resolve_config(config_path: Optional[str]) -> ServiceConfig:
    try:
        config = load_config(config_path) if config_path else ServiceConfig()
    except FileNotFoundError as e:
        typer.secho(f"❌ Config file not found: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(f"❌ Invalid config: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    return apply_env(config)


@app.command()
def serve(
    config_path: Optional[str] = typer.Argument(None, help="Path to service YAML config"),
    host: Optional[str] = typer.Option(None, help="Bind address (overrides config)"),
    port: Optional[int] = typer.Option(None, help="Bind port (overrides config)"),
    log_level: str = typer.Option("info", help="Logging level"),
) -> None:
    """Fetch candidates, restore tallies, and serve the poll over HTTP."""
    _configure_logging(log_level)
    config = _resolve_config(config_path)

    try:
        engine, source = build_engine(config)
    except CapacityError as e:
        typer.secho(f"❌ Candidate set does not fit: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except SnapshotError as e:
        typer.secho(f"❌ Could not restore tallies: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(f"❌ Invalid data source: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    session_secret = config.session_secret
    if not session_secret:
        logger.warning("No session secret configured; sessions will not survive a restart")
        session_secret = secrets.token_hex(32)

    saver = PeriodicSaver(engine.save_snapshot, config.save_interval_s)
    web_app = create_app(engine, session_secret=session_secret, source=source, saver=saver)
    uvicorn.run(
        web_app,
        host=host or config.host,
        port=port or config.port,
        log_level=log_level.lower(),
    )


@app.command()
def fetch(
    config_path: Optional[str] = typer.Argument(None, help="Path to service YAML config"),
) -> None:
    """Fetch candidates from the data source and list their slugs."""
    config = _resolve_config(config_path)
    try:
        source = create_source(config.data_source)
    except ValueError as e:
        typer.secho(f"❌ Invalid data source: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    try:
        details = source.fetch()
    except FetchError as e:
        typer.secho(f"❌ Fetch failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    slugs = sorted({item.slug for item in details})
    typer.secho(f"✅ Fetched {len(details)} record(s), {len(slugs)} candidate(s)", fg=typer.colors.GREEN)
    for slug in slugs:
        typer.echo(f"   {slug}")

    try:
        _ = compute_assignment(slugs, capacity=config.coverage_bits)
    except CapacityError as e:
        typer.secho(f"⚠️  {e}", fg=typer.colors.YELLOW)
        raise typer.Exit(1)


@app.command()
def tallies(
    config_path: Optional[str] = typer.Argument(None, help="Path to service YAML config"),
    save_file: Optional[str] = typer.Option(None, help="Snapshot file (overrides config)"),
) -> None:
    """Print the saved vote tallies."""
    config = _resolve_config(config_path)
    tally_file = TallyFile(save_file or config.save_file)

    try:
        text = tally_file.read()
    except SnapshotError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    if text is None:
        typer.secho(f"No snapshot at {tally_file.path}", fg=typer.colors.YELLOW)
        return

    records = parse_records(text)
    typer.secho(f"\n📊 {len(records)} tally record(s) in {tally_file.path}:\n", fg=typer.colors.BLUE)
    for record in sorted(records, key=lambda r: r.slug):
        typer.echo(f"  {record.slug}: hot={record.hot} not={record.not_} score={record.hot - record.not_}")


if __name__ == "__main__":
    app()
