from __future__ import annotations
from functools import wraps
from pathlib import Path
from typing import List, Optional
import logging
import re

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from . import db
from .config import Config, config_path
from .editor import EditorBridge
from .errors import ParseError, QnoteError
from .logging_setup import setup_logging
from .models import NoteDraft, SortMode
from .services import (
    create_note, list_notes, resolve_note, edit_note, update_from_draft,
    delete_note, search_notes, list_tags, note_stats, export_note, import_markdown,
)

app = typer.Typer(help="qnote — quick notes from the terminal")
console = Console()
err = Console(stderr=True)
log = logging.getLogger(__name__)


def split_tags(raw: Optional[str]) -> list[str]:
    """`--tags "a, b c"` -> ["a", "b", "c"]; tags never contain spaces."""
    return [t for t in re.split(r"[,\s]+", raw or "") if t]


def guarded(fn):
    """Turn QnoteError into a red message and exit status 1."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except QnoteError as exc:
            log.warning("%s failed: %s", fn.__name__, exc)
            err.print(f"[red]Error:[/] {exc}")
            raise typer.Exit(1)
    return wrapper


def _config(ctx: typer.Context) -> Config:
    return ctx.obj or Config()


@app.callback(invoke_without_command=True)
def _boot(ctx: typer.Context):
    setup_logging()
    try:
        cfg = Config.load()
        db.configure(cfg.database)
        db.init_db()
    except QnoteError as exc:
        err.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)
    ctx.obj = cfg
    if ctx.invoked_subcommand is None:
        _run_tui(cfg)


def _run_tui(cfg: Config) -> None:
    # curses is only needed for the interactive session
    from .tui import run_tui

    try:
        run_tui(cfg)
    except QnoteError as exc:
        err.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)


@app.command()
def tui(ctx: typer.Context):
    """Open the interactive browser (same as running qnote with no command)."""
    _run_tui(_config(ctx))


@app.command()
@guarded
def add(
    title: str = typer.Argument(..., help="note title"),
    content: str = typer.Argument("", help="note body (markdown)"),
    tags: Optional[str] = typer.Option(None, "--tags", "-t", help="comma separated"),
):
    n = create_note(title, content, split_tags(tags))
    console.print(f"[green]Created[/] #{n.id}: {n.title}")


@app.command("list")
@guarded
def _list(
    tag: Optional[str] = typer.Option(None, "--tag"),
    oneline: bool = typer.Option(False, "--oneline", help="id and title only"),
    sort: SortMode = typer.Option(SortMode.UPDATED, "--sort"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1),
):
    notes = list_notes(sort=sort, tag=tag, limit=limit)
    if not notes:
        console.print("[dim]No notes.[/]")
        return
    if oneline:
        for n in notes:
            typer.echo(f"{n.id}\t{n.title}")
        return
    table = Table(title="qnote")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Tags", style="magenta")
    table.add_column("Updated")
    for n in notes:
        table.add_row(str(n.id), n.title, ", ".join(n.tags), n.updated_at.isoformat(timespec="minutes"))
    console.print(table)


@app.command()
@guarded
def show(identifier: str = typer.Argument(..., help="id or title fragment")):
    n = resolve_note(identifier)
    console.rule(f"#{n.id} {n.title}")
    if n.tags:
        console.print(f"[dim]tags:[/] {', '.join(n.tags)}")
    console.print(
        f"[dim]created {n.created_at.isoformat(timespec='minutes')}"
        f" · updated {n.updated_at.isoformat(timespec='minutes')}[/]"
    )
    console.print(Markdown(n.content or "_<empty>_"))


@app.command()
@guarded
def edit(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="id or title fragment"),
    title: Optional[str] = typer.Option(None, "--title"),
    content: Optional[str] = typer.Option(None, "--content", "-c"),
    tags: Optional[str] = typer.Option(None, "--tags", "-t"),
):
    """Change fields in place, or open $EDITOR when no field is given."""
    n = resolve_note(identifier)
    if title is None and content is None and tags is None:
        draft = EditorBridge(_config(ctx).editor).edit(NoteDraft.from_note(n))
        if draft is None:
            console.print("[yellow]Cancelled[/] (empty title)")
            return
        n = update_from_draft(n.id, draft)
    else:
        n = edit_note(n.id, title=title, content=content, tags=None if tags is None else split_tags(tags))
    console.print(f"[green]Updated[/] #{n.id}: {n.title}")


@app.command()
@guarded
def delete(
    identifier: str = typer.Argument(..., help="id or title fragment"),
    yes: bool = typer.Option(False, "--yes", "-y", help="skip confirmation"),
):
    n = resolve_note(identifier)
    if not yes:
        typer.confirm(f"Delete #{n.id} '{n.title}'?", abort=True)
    delete_note(n.id)
    console.print(f"[yellow]Deleted[/] #{n.id}: {n.title}")


@app.command()
@guarded
def search(query: str):
    notes = search_notes(query)
    if not notes:
        console.print(f"[dim]No notes match[/] '{query}'")
        return
    table = Table(title=f"search: {query}")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Tags", style="magenta")
    for n in notes:
        table.add_row(str(n.id), n.title, ", ".join(n.tags))
    console.print(table)


@app.command()
@guarded
def export(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="id or title fragment"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="target file"),
):
    n = resolve_note(identifier)
    try:
        if output is None:
            path = export_note(n, _config(ctx).export.directory)
        else:
            path = export_note(n, output.parent, output.name)
    except OSError as exc:
        err.print(f"[red]Export failed:[/] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]Exported[/] #{n.id} → {path}")


@app.command("import")
@guarded
def import_(files: List[Path] = typer.Argument(..., help="markdown files in qnote format")):
    imported = 0
    for path in files:
        if not path.is_file():
            err.print(f"[yellow]Warning:[/] file not found: {path}")
            continue
        try:
            n = import_markdown(path)
        except (OSError, ParseError) as exc:
            err.print(f"[yellow]Warning:[/] cannot read {path}: {exc}")
            continue
        if n is None:
            err.print(f"[yellow]Warning:[/] no title in {path}, skipped")
            continue
        imported += 1
        console.print(f"Imported #{n.id}: {n.title}")
    console.print(f"[green]Imported[/] {imported} note(s)")


@app.command()
@guarded
def tags():
    counts = list_tags()
    if not counts:
        console.print("[dim]No tags.[/]")
        return
    table = Table(title="tags")
    table.add_column("Tag", style="magenta")
    table.add_column("Notes", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


@app.command()
@guarded
def stats():
    s = note_stats()
    console.print(f"Notes: [bold]{s['total']}[/]")
    if not s["total"]:
        return
    console.print(f"Unique tags: {s['tags']}")
    console.print(f"Total size: {s['size_kb']:.1f} KB")
    console.print(f"Oldest: #{s['oldest'].id} {s['oldest'].title} ({s['oldest'].created_at:%Y-%m-%d})")
    console.print(f"Last updated: #{s['newest'].id} {s['newest'].title} ({s['newest'].updated_at:%Y-%m-%d})")


@app.command()
@guarded
def config(
    ctx: typer.Context,
    show_: bool = typer.Option(False, "--show", help="print the effective configuration"),
    force: bool = typer.Option(False, "--force", help="overwrite an existing file"),
):
    """Write a commented default config file, or show the current one."""
    path = config_path()
    if show_:
        console.print(_config(ctx).to_toml(), markup=False, highlight=False)
        console.print(f"[dim]config file: {path}[/]")
        return
    if path.exists() and not force:
        typer.confirm(f"{path} exists. Overwrite with defaults?", abort=True)
    try:
        Config().save(path)
    except OSError as exc:
        err.print(f"[red]Cannot write config:[/] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]Wrote[/] default configuration → {path}")


def main():
    app()


if __name__ == "__main__":
    main()
