"""
``migspine`` command line: inspect and initialise the discovery cache.
"""

from __future__ import annotations

import json

import typer

from migspine.cli.utils import (
    console,
    fail,
    make_table,
    output_records,
    parse_labels,
)
from migspine.core.dialect import SQLiteDialect
from migspine.core.errors import MigSpineError
from migspine.core.logging import configure_logging
from migspine.core.settings import MigSpineSettings
from migspine.discovery.models import ALL_MODELS, model_for
from migspine.model import ListOptions, Page, schema

app = typer.Typer(no_args_is_help=True, help="Discovery cache tools.")
db_app = typer.Typer(no_args_is_help=True, help="Database management.")
app.add_typer(db_app, name="db")


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override MIGSPINE_LOG_LEVEL"),
) -> None:
    settings = MigSpineSettings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.log_json)


@app.command()
def ddl(
    kinds: list[str] = typer.Argument(None, help="Record kinds (default: all)"),
) -> None:
    """Print the DDL of discovery record types."""
    try:
        models = [model_for(k) for k in kinds] if kinds else list(ALL_MODELS)
        dialect = SQLiteDialect()
        for model in models:
            for stmt in schema.ddl(model, dialect):
                console.print(f"{stmt};\n", highlight=False, markup=False, soft_wrap=True)
    except MigSpineError as e:
        fail(e.message)


@db_app.command()
def init(
    database: str = typer.Option(None, "--database", "-d", help="Database path or URL"),
) -> None:
    """Create every discovery table (idempotent)."""
    try:
        _table, store = make_table(database)
    except MigSpineError as e:
        fail(e.message)
    store.close()
    console.print(f"[green]Initialised[/green] {len(ALL_MODELS)} kinds")


@app.command("list")
def list_records(
    kind: str = typer.Argument(..., help="Record kind, e.g. Cluster"),
    label: list[str] = typer.Option(None, "--label", "-l", help="NAME=VALUE (repeatable)"),
    limit: int = typer.Option(None, "--limit", help="Page size"),
    offset: int = typer.Option(0, "--offset", help="Page offset"),
    sort: list[int] = typer.Option(None, "--sort", help="1-based column position (repeatable)"),
    database: str = typer.Option(None, "--database", "-d", help="Database path or URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List records of a kind, filtered by labels."""
    options = ListOptions(
        labels=parse_labels(label),
        page=Page(limit=limit, offset=offset) if limit is not None else None,
        sort=list(sort or []),
    )
    try:
        model = model_for(kind)
        table, store = make_table(database)
        try:
            records = table.list(model(), options)
        finally:
            store.close()
    except MigSpineError as e:
        fail(e.message)
    output_records(records, as_json=json_out, title=model.__name__)


@app.command()
def count(
    kind: str = typer.Argument(..., help="Record kind, e.g. Cluster"),
    label: list[str] = typer.Option(None, "--label", "-l", help="NAME=VALUE (repeatable)"),
    database: str = typer.Option(None, "--database", "-d", help="Database path or URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Count records of a kind, filtered by labels."""
    try:
        model = model_for(kind)
        table, store = make_table(database)
        try:
            n = table.count(model(), ListOptions(labels=parse_labels(label)))
        finally:
            store.close()
    except MigSpineError as e:
        fail(e.message)
    if json_out:
        console.print_json(json.dumps({"kind": model.__name__, "count": n}))
    else:
        console.print(n)
