"""Command-line interface for the LDAP phonebook."""

import logging
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from ldap_phonebook import ldap

from .config import load_config, user_config_path, write_default_config
from .directory import Directory
from .exceptions import ImproperlyConfigured, InvalidPath
from .paths import resolve_path
from .records import DirectoryRecord
from .session import PhonebookSession
from .tree import ROOT_COORDINATE, TreeModel

logger = logging.getLogger(__name__)

app = typer.Typer(help="Browse and search an LDAP organizational phonebook.")

#: Result table columns: heading and record field.
COLUMNS: list[tuple[str, str]] = [
    ("Name", "cn"),
    ("Phone", "telephone_number"),
    ("Email", "mail"),
    ("Title", "title"),
    ("Department", "ou"),
    ("Organization", "o"),
]


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Configuration file to use"),
    ] = None,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s %(message)s",
    )
    ctx.obj = config


def fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def open_session(ctx: typer.Context) -> PhonebookSession:
    try:
        config = load_config(ctx.obj)
    except ImproperlyConfigured as e:
        fail(str(e))
    return PhonebookSession(Directory(config))


def wait(session: PhonebookSession, future) -> None:
    """Wait for a request, apply it and exit on failure."""
    future.result()
    session.process_events()
    if session.last_error is not None:
        fail(describe_error(session.last_error))


def describe_error(error: Exception) -> str:
    """python-ldap errors carry a dict with a 'desc' key; others are plain."""
    if isinstance(error, ldap.LDAPError):  # type: ignore[attr-defined]
        info = error.args[0] if error.args else {}
        if isinstance(info, dict):
            return f"directory request failed: {info.get('desc', error)}"
    return str(error)


def load_tree(session: PhonebookSession) -> TreeModel:
    wait(session, session.reload())
    if session.model is None:
        fail("the organization tree could not be loaded")
    return session.model


def print_records(records: list[DirectoryRecord]) -> None:
    if not records:
        typer.echo("No matches.")
        return
    rows = [[getattr(record, name) for _, name in COLUMNS] for record in records]
    widths = [
        max(len(heading), *(len(row[i]) for row in rows))
        for i, (heading, _) in enumerate(COLUMNS)
    ]
    typer.echo("  ".join(h.ljust(w) for (h, _), w in zip(COLUMNS, widths)).rstrip())
    for row in rows:
        typer.echo("  ".join(v.ljust(w) for v, w in zip(row, widths)).rstrip())


@app.command()
def tree(
    ctx: typer.Context,
    coordinates: bool = typer.Option(
        False, "--coordinates", help="Prefix each row with its tree coordinate"
    ),
) -> None:
    """Print the organization tree."""
    session = open_session(ctx)
    try:
        model = load_tree(session)
        for coordinate, node in model.rows():
            line = "  " * node.depth + node.name
            if coordinates:
                line = f"{coordinate:<12} {line}"
            typer.echo(line)
    finally:
        session.close()


@app.command()
def search(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="Part of a name, mail address or phone")],
) -> None:
    """Find people by name, mail address or telephone number."""
    session = open_session(ctx)
    try:
        wait(session, session.search(text))
        if session.fallback_text:
            typer.echo(f"No matches for {text!r}; showing matches for {session.fallback_text!r}.")
        print_records(session.results)
    finally:
        session.close()


@app.command()
def browse(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help='Tree path, e.g. "Acme:Sales:EMEA"')],
) -> None:
    """List the people in a department or unit."""
    session = open_session(ctx)
    try:
        model = load_tree(session)
        try:
            coordinate = resolve_path(path, model)
        except InvalidPath as e:
            fail(str(e))
        future = session.browse(coordinate)
        if future is None:
            name = model.tree.logical_path(model.node_at(coordinate))
            fail(f"{name or 'the root'!r} is not a department or unit")
        wait(session, future)
        print_records(session.results)
    finally:
        session.close()


@app.command()
def show(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="Search text, as for 'search'")],
    index: int = typer.Option(0, "--index", "-i", help="Which result to show"),
) -> None:
    """Show one person's details and where they sit in the tree."""
    session = open_session(ctx)
    try:
        model = load_tree(session)
        wait(session, session.search(text))
        if not session.results:
            fail(f"no matches for {text!r}")
        if not 0 <= index < len(session.results):
            fail(f"--index must be between 0 and {len(session.results) - 1}")
        record, coordinate = session.select_person(index)
        typer.echo(record.details())
        if coordinate is not None and coordinate != ROOT_COORDINATE:
            node = model.node_at(coordinate)
            typer.echo(f"Tree: {model.tree.logical_path(node)} ({coordinate})")
    finally:
        session.close()


@app.command("init-config")
def init_config(
    path: Annotated[
        Path | None, typer.Argument(help="Where to write the file")
    ] = None,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a default configuration file."""
    target = path or user_config_path()
    if target.exists() and not force:
        fail(f"{target} already exists; use --force to overwrite it")
    write_default_config(target)
    typer.echo(f"Wrote {target}")
