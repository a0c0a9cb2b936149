"""
CLI utility helpers: store access and output formatting.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table as RichTable

from migspine.core.settings import MigSpineSettings
from migspine.discovery.models import ALL_MODELS
from migspine.model import Store, Table, open_store
from migspine.model import fields as fm

console = Console()
err_console = Console(stderr=True)


# ── Store helper ─────────────────────────────────────────────────────────


def database_url(database: str | None) -> str:
    """Map ``--database`` (URL or file path) to a SQLAlchemy URL."""
    if database is None:
        return MigSpineSettings().database_url
    if database.startswith("sqlite:"):
        return database
    return f"sqlite:///{database}"


def make_table(database: str | None = None) -> tuple[Table, Store]:
    """Open the discovery store with every discovery table created."""
    store = open_store(database_url(database), models=ALL_MODELS)
    return Table(store), store


def parse_labels(values: list[str] | None) -> dict[str, str]:
    """``["app=web", "tier=db"]`` -> ``{"app": "web", "tier": "db"}``."""
    labels: dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"label must be NAME=VALUE, got {item!r}")
        labels[name] = value
    return labels


# ── Output helpers ───────────────────────────────────────────────────────


def record_dict(record: Any) -> dict[str, Any]:
    """Flattened column -> value mapping of a record."""
    return {f.name: f.get(record) for f in fm.fields(record)}


def output_records(records: list[Any], *, as_json: bool = False, title: str = "") -> None:
    rows = [record_dict(r) for r in records]
    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = RichTable(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)


def fail(message: str) -> None:
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=1)
