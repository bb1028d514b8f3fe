from __future__ import annotations
from contextlib import contextmanager

import typer
from rich import print
from rich.console import Console
from rich.table import Table
from sqlalchemy.orm import sessionmaker

from .config import load_config
from .db.session import init_db
from .errors import ShowTrackerError
from .logging_setup import setup_logging
from .paths import get_dirs
from .services import build_services

console = Console()

app = typer.Typer(no_args_is_help=True)


@contextmanager
def _services():
    cfg = load_config()
    setup_logging(cfg.log_level)
    engine = init_db(cfg.db_url or None)
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield build_services(session, cfg)
    finally:
        session.close()
        engine.dispose()


def _fail(e: ShowTrackerError):
    console.print(f"[red]{e.message}[/red]")
    raise typer.Exit(code=1)


def _print_request_log(svc):
    if svc.config.debug and len(svc.request_log):
        for url in svc.request_log.urls:
            console.print(f"[dim]{url}[/dim]")


@app.command()
def init(db_url: str = typer.Option(None, help="SQLAlchemy URL; default local SQLite")):
    cfg = load_config()
    setup_logging(cfg.log_level)
    init_db(db_url or cfg.db_url or None)
    print("[green]Database initialized[/green]")


@app.command("paths")
def show_paths():
    """Show where showtracker stores its DB, logs and config."""
    t = Table(title="showtracker paths")
    t.add_column("Kind"); t.add_column("Location")
    for k, p in get_dirs().items():
        t.add_row(k, str(p))
    console.print(t)


@app.command()
def search(term: str):
    """Search the catalog by title name."""
    with _services() as svc:
        try:
            results = svc.client.search(term)
        except ShowTrackerError as e:
            _fail(e)
        if not results:
            console.print("[yellow]No results[/yellow]")
            return
        t = Table(title=f"Search: {term}")
        t.add_column("ID", justify="right"); t.add_column("Name"); t.add_column("Type"); t.add_column("Year")
        for r in results:
            t.add_row(str(r.title_id), r.name, r.type, str(r.year or ""))
        console.print(t)
        _print_request_log(svc)


@app.command()
def details(title_id: int):
    """Show catalog details for a title."""
    with _services() as svc:
        try:
            d = svc.client.get_title_details(title_id)
        except ShowTrackerError as e:
            _fail(e)
        console.print(f"[bold]{d.title}[/bold] ({d.type}, {d.year or '?'}-{d.end_year or ''})")
        if d.plot_overview:
            console.print(d.plot_overview)
        _print_request_log(svc)


@app.command()
def resync(
    title_id: int,
    force: bool = typer.Option(False, "--force", help="Re-fetch episodes even if mirrored"),
):
    """Refresh the local episode/source mirror for a title."""
    with _services() as svc:
        try:
            end_year = svc.store.resync(title_id, force=force)
        except ShowTrackerError as e:
            _fail(e)
        n = len(svc.store.get_episodes(title_id))
        console.print(f"[green]Resynced[/green] title {title_id}: {n} episodes, end year {end_year or '-'}")
        _print_request_log(svc)


@app.command()
def track(
    user_id: int,
    title_id: int,
    name: str = typer.Option(None, help="Display name; fetched from the catalog if omitted"),
    movie: bool = typer.Option(False, "--movie", help="Track as a movie"),
):
    """Add a title to a user's tracker."""
    with _services() as svc:
        try:
            release_date = None
            if not name:
                d = svc.client.get_title_details(title_id)
                name, release_date = d.title, d.release_date
                movie = movie or d.is_movie
            episodes = 0 if movie else len(svc.client.get_episodes(title_id))
            row_id = svc.store.add_tracked(
                user_id, title_id, name, episodes, "movie" if movie else "tv", release_date,
            )
        except ShowTrackerError as e:
            _fail(e)
        console.print(f"[green]Tracking[/green] #{row_id}: {name}")


@app.command()
def untrack(user_id: int, title_id: int):
    """Remove a title (and its watch history) from a user's tracker."""
    with _services() as svc:
        if svc.store.remove_tracked(user_id, title_id):
            console.print(f"[green]Removed[/green] title {title_id}")
        else:
            console.print(f"[yellow]Title {title_id} was not tracked[/yellow]")


@app.command()
def stats():
    """Dashboard counts: shows, movies, episodes, cache rows."""
    with _services() as svc:
        t = Table(title="showtracker stats")
        t.add_column("Kind"); t.add_column("Count", justify="right")
        for k, v in svc.store.get_stats().items():
            t.add_row(k, str(v))
        console.print(t)


@app.command("purge-cache")
def purge_cache(category: str = typer.Option(None, help="Only purge one cache type")):
    """Delete cached API responses."""
    with _services() as svc:
        n = svc.store.purge_cache(category)
        console.print(f"[green]Purged[/green] {n} cache rows")


@app.command("refresh-sources")
def refresh_sources():
    """Reload the streaming source catalog from the API."""
    with _services() as svc:
        try:
            n = svc.store.refresh_sources()
        except ShowTrackerError as e:
            _fail(e)
        console.print(f"[green]Stored[/green] {n} sources")


@app.command("serve")
def serve_cmd(
    host: str = typer.Option(None, help="Bind address"),
    port: int = typer.Option(None, help="Port to listen on"),
):
    """Start the JSON API server."""
    cfg = load_config()
    setup_logging(cfg.log_level)
    import uvicorn
    from .web.app import create_app
    uvicorn.run(create_app(cfg), host=host or cfg.web_host, port=port or cfg.web_port)


if __name__ == "__main__":
    app()
