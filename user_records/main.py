from __future__ import annotations

import sys
from typing import Optional

import typer
import uvicorn

from user_records.api import create_app
from user_records.config import get_settings
from user_records.domain.errors import RecordServiceError
from user_records.infrastructure.schema import SchemaInitializer
from user_records.utils.logging import configure_logging, get_logger

app = typer.Typer(help="User records service CLI.")
log = get_logger(__name__)


def _run_initializer() -> None:
    settings = get_settings()
    try:
        report = SchemaInitializer(settings).initialize()
    except RecordServiceError as exc:
        log.error("Database initialization failed: %s (%s)", exc.message, getattr(exc, "details", None))
        raise typer.Exit(code=1)
    if report.seed is not None and report.seed.failed:
        log.warning("Sample data partially failed; continuing")


@app.command()
def info() -> None:
    """
    Show effective configuration values (password omitted).
    """
    settings = get_settings()
    summary = settings.safe_summary()
    typer.echo(
        f"DB={summary['user']}@{summary['host']}:{summary['port']}/{summary['database']} "
        f"table={summary['table']} | listen={settings.app_host}:{settings.app_port} "
        f"pool=({settings.db_pool_min_size},{settings.db_pool_max_size})"
    )


@app.command("init-db")
def init_db() -> None:
    """
    Create the database, table and sample rows if they are absent.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    _run_initializer()


@app.command()
def serve(
    init: bool = typer.Option(
        True,
        "--init/--skip-init",
        help="Run the schema initializer before accepting traffic.",
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Override APP_HOST."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Override PORT."),
) -> None:
    """
    Serve the HTTP API until terminated.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    if init:
        _run_initializer()

    bind_host = host or settings.app_host
    bind_port = port or settings.app_port
    log.info("Server running on port %d", bind_port)
    # uvicorn exits non-zero on its own if the lifespan startup fails.
    uvicorn.run(create_app(settings), host=bind_host, port=bind_port, log_config=None)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
