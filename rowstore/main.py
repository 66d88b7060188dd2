from __future__ import annotations

import sys

import typer

from rowstore.config import get_settings
from rowstore.infrastructure.storage import PsycopgStorageClient
from rowstore.utils.logging import configure_logging

app = typer.Typer(help="rowstore CLI.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool=({settings.db_pool_min_size},{settings.db_pool_max_size}) "
        f"statement_timeout_ms={settings.db_statement_timeout_ms} | "
        f"table_prefix={settings.db_table_prefix!r} "
        f"record_table_prefix={settings.record_table_prefix!r}"
    )


@app.command()
def ping() -> None:
    """
    Run a single round trip through the storage client.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    storage = PsycopgStorageClient.from_settings(settings)
    row = storage.get_row("SELECT 1 AS ok", ())
    if not row:
        typer.echo(f"Storage unreachable: {storage.last_error or 'no row returned'}", err=True)
        raise typer.Exit(code=1)
    typer.echo("Storage OK.")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
