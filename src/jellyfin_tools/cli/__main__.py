from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import NoReturn

import typer

from jellyfin_tools import __version__
from jellyfin_tools.clients.jellyfin import JellyfinClient, movie_web_url
from jellyfin_tools.config import ConfigError, ConfigManager, ConnectionConfig, resolve_connection
from jellyfin_tools.models import DuplicateScanResult, FavoritesSnapshot, ResolutionFilterResult
from jellyfin_tools.services.duplicates import (
    DuplicateMovieService,
    movie_tech_summary,
    rank_members,
)
from jellyfin_tools.services.favorites import (
    FavoritesSynchronizer,
    SnapshotError,
    read_snapshot,
    write_snapshot,
)
from jellyfin_tools.services.progress import ProgressEvent
from jellyfin_tools.services.resolution import (
    ABOVE_4K_BUCKET,
    RESOLUTION_BUCKETS,
    ResolutionFilterService,
    ResolutionPreset,
)

app = typer.Typer(
    add_completion=False,
    help="Export, import and audit Jellyfin favorites, duplicates and low-resolution movies.",
)

SERVER_OPTION = typer.Option(
    None, "--server", "-s", help="Jellyfin server URL, e.g. http://localhost:8096."
)
TOKEN_OPTION = typer.Option(None, "--token", "-t", help="Jellyfin API token.")
USER_OPTION = typer.Option(None, "--user", "-u", help="User id (defaults to the first user).")
DEBUG_OPTION = typer.Option(False, help="Enable debug logging.")


@app.callback()
def _cli_entry(ctx: typer.Context) -> None:
    """Entrypoint for the jellyfin-tools CLI."""
    ctx.obj = {} if ctx.obj is None else ctx.obj


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)


@app.command("test")
def test_connection(
    server: str | None = SERVER_OPTION,
    token: str | None = TOKEN_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Check connectivity and list the server's users."""
    if debug:
        _setup_logging(logging.INFO)

    config = _resolve_config(server, token, None)
    exit_code = asyncio.run(_run_test(config))
    raise typer.Exit(code=exit_code)


@app.command("export")
def export_command(
    output: Path = typer.Option(..., "--output", "-o", help="Snapshot file to write."),
    server: str | None = SERVER_OPTION,
    token: str | None = TOKEN_OPTION,
    user: str | None = USER_OPTION,
    save_config: bool = typer.Option(False, help="Persist the connection settings."),
    debug: bool = DEBUG_OPTION,
) -> None:
    """Export favorite movies and people to a JSON snapshot."""
    if debug:
        _setup_logging(logging.INFO)

    config = _resolve_config(server, token, user)
    if save_config:
        try:
            path = ConfigManager().remember(config)
        except ConfigError as exc:
            _fail(str(exc))
        typer.echo(f"Connection saved to {path}")

    exit_code = asyncio.run(_run_export(config, output))
    raise typer.Exit(code=exit_code)


@app.command("import")
def import_command(
    input_file: Path = typer.Option(..., "--input", "-i", help="Snapshot file to import."),
    server: str | None = SERVER_OPTION,
    token: str | None = TOKEN_OPTION,
    user: str | None = USER_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    debug: bool = DEBUG_OPTION,
) -> None:
    """Re-apply favorites from a snapshot, matching by id and then by name."""
    if debug:
        _setup_logging(logging.INFO)

    config = _resolve_config(server, token, user)
    snapshot = _load_snapshot_or_exit(input_file)
    exit_code = asyncio.run(_run_import(config, snapshot, confirm=not yes))
    raise typer.Exit(code=exit_code)


@app.command()
def view(
    input_file: Path = typer.Option(..., "--input", "-i", help="Snapshot file to display."),
    movies: bool = typer.Option(False, "--movies", help="Show only movies."),
    people: bool = typer.Option(False, "--people", help="Show only people."),
    limit: int = typer.Option(10, "--limit", "-l", min=1, help="Maximum entries per section."),
) -> None:
    """Render the movies and people stored in a snapshot file."""
    snapshot = _load_snapshot_or_exit(input_file)
    show_all = not movies and not people
    _render_snapshot(snapshot, show_movies=movies or show_all, show_people=people or show_all, limit=limit)


@app.command()
def resolution(
    server: str | None = SERVER_OPTION,
    token: str | None = TOKEN_OPTION,
    user: str | None = USER_OPTION,
    preset: ResolutionPreset | None = typer.Option(None, "--preset", "-p", help="Target resolution."),
    width: int | None = typer.Option(None, "--width", "-w", help="Custom maximum width."),
    height: int | None = typer.Option(None, "--height", help="Custom maximum height."),
    include_unknown: bool = typer.Option(False, help="Treat movies without dimensions as matches."),
    stats_only: bool = typer.Option(False, help="Only print resolution bucket counts."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write matches as a snapshot file."),
    debug: bool = DEBUG_OPTION,
) -> None:
    """List movies below a target resolution."""
    if debug:
        _setup_logging(logging.INFO)

    if preset is not None:
        max_width, max_height = preset.max_dimensions
    elif width is not None and height is not None:
        max_width, max_height = width, height
    elif width is not None or height is not None:
        _fail("Provide both --width and --height, or use --preset.")
    else:
        max_width, max_height = ResolutionPreset.HD_1080P.max_dimensions

    config = _resolve_config(server, token, user)
    exit_code = asyncio.run(
        _run_resolution(
            config,
            max_width=max_width,
            max_height=max_height,
            include_unknown=include_unknown,
            stats_only=stats_only,
            output=output,
        )
    )
    raise typer.Exit(code=exit_code)


@app.command()
def duplicates(
    server: str | None = SERVER_OPTION,
    token: str | None = TOKEN_OPTION,
    user: str | None = USER_OPTION,
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the scan result as JSON."),
    debug: bool = DEBUG_OPTION,
) -> None:
    """Find movies that appear more than once in the library."""
    if debug:
        _setup_logging(logging.INFO)

    config = _resolve_config(server, token, user)
    exit_code = asyncio.run(_run_duplicates(config, output))
    raise typer.Exit(code=exit_code)


@app.command()
def config(
    server: str | None = SERVER_OPTION,
    token: str | None = TOKEN_OPTION,
    user: str | None = USER_OPTION,
    show: bool = typer.Option(False, help="Show the saved configuration."),
    delete: bool = typer.Option(False, help="Delete the saved configuration files."),
) -> None:
    """Show, save or delete the persisted connection settings."""
    manager = ConfigManager()

    if delete:
        removed = manager.delete()
        typer.echo("Configuration deleted." if removed else "No configuration files found.")
        return

    if show:
        try:
            app_config = manager.load_app_config()
        except ConfigError as exc:
            _fail(str(exc))
        if app_config is None or app_config.jellyfin_config is None:
            typer.echo("No saved configuration.")
            return
        saved = app_config.jellyfin_config
        typer.echo(f"server_url: {saved.server_url}")
        typer.echo(f"api_token: {saved.api_token[:10]}..." if saved.api_token else "api_token: <unset>")
        typer.echo(f"user_id: {saved.user_id or '<unset>'}")
        typer.echo(f"timeout: {saved.timeout}ms")
        typer.echo(f"ui_scale: {app_config.ui_scale}")
        typer.echo(f"resolved_from: {manager.app_path}")
        return

    if server is None or token is None:
        typer.echo("Provide --server and --token to save a connection, or use --show.")
        return

    connection = ConnectionConfig(server_url=server, api_token=token, user_id=user)
    try:
        connection.require_valid()
        path = manager.remember(connection)
    except ConfigError as exc:
        _fail(str(exc))
    typer.echo(f"Configuration saved to {path}")


def main() -> None:
    """Expose Typer app for the console script."""
    app()


def _setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for debug mode."""
    logging.basicConfig(
        format="%(message)s",
        level=level,
        force=True,
    )


def _fail(message: str, code: int = 1) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


def _resolve_config(server: str | None, token: str | None, user: str | None) -> ConnectionConfig:
    try:
        result = resolve_connection(server, token, user)
        result.config.require_valid()
    except ConfigError as exc:
        _fail(str(exc))
    return result.config


def _load_snapshot_or_exit(path: Path) -> FavoritesSnapshot:
    try:
        return read_snapshot(path)
    except SnapshotError as exc:
        _fail(str(exc))


def _build_client(config: ConnectionConfig) -> JellyfinClient:
    return JellyfinClient(
        server_url=config.server_url,
        api_token=config.api_token,
        timeout=config.timeout_seconds,
    )


async def _connect(client: JellyfinClient, config: ConnectionConfig) -> str | None:
    typer.echo(f"Testing connection to {config.server_url}...")
    if not await client.test_connection():
        typer.secho("Unable to connect to the Jellyfin server.", fg=typer.colors.RED, err=True)
        return None

    user_id = await client.resolve_user_id(config.user_id)
    if user_id is None:
        typer.secho("Unable to determine a user id.", fg=typer.colors.RED, err=True)
        return None
    typer.echo(f"Using user id: {user_id}")
    return user_id


async def _run_test(config: ConnectionConfig) -> int:
    async with _build_client(config) as client:
        typer.echo(f"Testing connection to {config.server_url}...")
        if not await client.test_connection():
            typer.secho("✗ Connection failed", fg=typer.colors.RED, err=True)
            return 1
        typer.secho("✓ Connected", fg=typer.colors.GREEN)

        users = await client.list_users()
    if not users:
        typer.echo("No users found.")
        return 0
    typer.echo("Available users:")
    for user in users:
        typer.echo(f"  ID: {user.id}, Name: {user.name}")
    return 0


async def _run_export(config: ConnectionConfig, output: Path) -> int:
    async with _build_client(config) as client:
        user_id = await _connect(client, config)
        if user_id is None:
            return 1
        snapshot = await FavoritesSynchronizer(client).export_favorites(user_id)

    try:
        write_snapshot(output, snapshot)
    except OSError as exc:
        typer.secho(f"Unable to write {output}: {exc}", fg=typer.colors.RED, err=True)
        return 1

    typer.secho("Export complete.", fg=typer.colors.GREEN)
    typer.echo(f"Saved to: {output.resolve()}")
    typer.echo(
        f"Exported {len(snapshot.favorite_movies)} movies and {len(snapshot.favorite_people)} people"
    )
    return 0


async def _run_import(config: ConnectionConfig, snapshot: FavoritesSnapshot, *, confirm: bool) -> int:
    async with _build_client(config) as client:
        user_id = await _connect(client, config)
        if user_id is None:
            return 1

        typer.echo(
            f"Ready to import {len(snapshot.favorite_movies)} movies "
            f"and {len(snapshot.favorite_people)} people"
        )
        typer.echo(f"Exported at: {snapshot.export_date}")
        typer.echo(f"Source server: {snapshot.server_url}")
        if confirm and not typer.confirm("Continue with import?", default=False):
            typer.echo("Import cancelled.")
            return 0

        outcome = await FavoritesSynchronizer(client).import_favorites(
            user_id, snapshot, progress=_echo_progress
        )

    typer.secho("\nImport complete.", fg=typer.colors.CYAN)
    typer.echo(f"Movies: {outcome.imported_movies}/{outcome.total_movies} imported")
    typer.echo(f"People: {outcome.imported_people}/{outcome.total_people} imported")
    if outcome.errors:
        typer.secho("Errors:", fg=typer.colors.RED)
        for reason in outcome.errors:
            typer.echo(f"  - {reason}")
    return 0


def _echo_progress(event: ProgressEvent) -> None:
    marker = "✓" if event.succeeded else "✗"
    color = typer.colors.GREEN if event.succeeded else typer.colors.RED
    typer.secho(
        f"{marker} {event.category}: {event.name} ({event.processed}/{event.total})",
        fg=color,
    )


async def _run_resolution(
    config: ConnectionConfig,
    *,
    max_width: int,
    max_height: int,
    include_unknown: bool,
    stats_only: bool,
    output: Path | None,
) -> int:
    async with _build_client(config) as client:
        user_id = await _connect(client, config)
        if user_id is None:
            return 1
        service = ResolutionFilterService(client)

        if stats_only:
            stats = await service.statistics(user_id)
            typer.secho("\n=== Resolution statistics ===", fg=typer.colors.CYAN)
            typer.echo(f"Total movies: {stats.total_movies}")
            typer.echo(f"Unknown resolution: {stats.unknown_count}")
            for bucket in [label for label, _, _ in RESOLUTION_BUCKETS] + [ABOVE_4K_BUCKET]:
                if bucket in stats.resolution_counts:
                    typer.echo(f"{bucket}: {stats.resolution_counts[bucket]}")
            return 0

        typer.echo(f"Filtering below {max_width}x{max_height} (include unknown: {include_unknown})")
        result = await service.filter_below(
            user_id, max_width, max_height, include_unknown=include_unknown
        )

    _render_resolution_result(result)
    if output is not None:
        snapshot = FavoritesSnapshot(
            export_date=result.scan_date,
            server_url=config.server_url,
            user_id=user_id,
            favorite_movies=[entry.movie for entry in result.movies],
        )
        try:
            write_snapshot(output, snapshot)
        except OSError as exc:
            typer.secho(f"Unable to write {output}: {exc}", fg=typer.colors.RED, err=True)
            return 1
        typer.echo(f"\nResults saved to: {output.resolve()}")
    return 0


def _render_resolution_result(result: ResolutionFilterResult) -> None:
    typer.secho("\n=== Filter results ===", fg=typer.colors.CYAN)
    typer.echo(f"Total movies: {result.total_movies}")
    typer.echo(f"Below threshold: {result.filtered_count}")
    typer.echo(f"Scanned at: {result.scan_date}")
    if not result.movies:
        typer.secho("No movies below the requested resolution.", fg=typer.colors.YELLOW)
        return
    for entry in result.movies:
        year = entry.movie.production_year or "unknown year"
        typer.echo(f"  {entry.movie.name} ({year}) - {entry.resolution.display_label}")


async def _run_duplicates(config: ConnectionConfig, output: Path | None) -> int:
    async with _build_client(config) as client:
        user_id = await _connect(client, config)
        if user_id is None:
            return 1
        result = await DuplicateMovieService(client).scan(user_id)

    _render_duplicates(result, server_url=config.server_url)
    if output is not None:
        try:
            output.write_text(
                json.dumps(result.model_dump(mode="json", by_alias=True, exclude_defaults=True), indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            typer.secho(f"Unable to write {output}: {exc}", fg=typer.colors.RED, err=True)
            return 1
        typer.echo(f"\nScan saved to: {output.resolve()}")
    return 0


def _render_duplicates(result: DuplicateScanResult, *, server_url: str) -> None:
    typer.secho(
        f"Scanned {result.total_movies_scanned} movies: {len(result.groups)} duplicate groups, "
        f"{result.total_duplicate_excess} redundant entries",
        fg=typer.colors.CYAN,
    )
    for idx, group in enumerate(result.groups, start=1):
        typer.secho(f"\n{idx}. {group.representative_name} ({group.count} copies)", bold=True)
        for position, movie in enumerate(rank_members(group)):
            label = "KEEP  " if position == 0 else "DELETE"
            color = typer.colors.GREEN if position == 0 else typer.colors.YELLOW
            typer.secho(f"   [{label}] {movie.name} • {movie_tech_summary(movie)}", fg=color)
            typer.echo(f"            {movie_web_url(server_url, movie.id)}")


def _render_snapshot(
    snapshot: FavoritesSnapshot,
    *,
    show_movies: bool,
    show_people: bool,
    limit: int,
) -> None:
    typer.secho("=" * 60, fg=typer.colors.CYAN)
    typer.echo(f"Exported at: {snapshot.export_date}")
    typer.echo(f"Server: {snapshot.server_url}")
    typer.echo(f"User id: {snapshot.user_id}")
    typer.echo(f"Movies: {len(snapshot.favorite_movies)}")
    typer.echo(f"People: {len(snapshot.favorite_people)}")

    if show_movies:
        typer.secho("\n🎬 Favorite movies", fg=typer.colors.CYAN, bold=True)
        if not snapshot.favorite_movies:
            typer.echo("No favorite movies.")
        for idx, movie in enumerate(snapshot.favorite_movies[:limit], start=1):
            typer.echo(f"{idx}. {movie.name} ({movie.production_year or 'unknown'})")
            if movie.run_time_ticks:
                typer.echo(f"   runtime: {movie.run_time_ticks // 10_000_000 // 60} min")
            if movie.genres:
                typer.echo(f"   genres: {', '.join(movie.genres)}")
            actors = [person.name for person in movie.people if person.type == "Actor"][:3]
            if actors:
                typer.echo(f"   cast: {', '.join(actors)}")
            if movie.overview:
                suffix = "..." if len(movie.overview) > 100 else ""
                typer.echo(f"   {movie.overview[:100]}{suffix}")
        remaining = len(snapshot.favorite_movies) - limit
        if remaining > 0:
            typer.echo(f"... {remaining} more movies (use --limit to show more)")

    if show_people:
        typer.secho("\n🎭 Favorite people", fg=typer.colors.CYAN, bold=True)
        if not snapshot.favorite_people:
            typer.echo("No favorite people.")
        for idx, person in enumerate(snapshot.favorite_people[:limit], start=1):
            typer.echo(f"{idx}. {person.name}")
            if person.type:
                typer.echo(f"   type: {person.type}")
            if person.role:
                typer.echo(f"   role: {person.role}")
        remaining = len(snapshot.favorite_people) - limit
        if remaining > 0:
            typer.echo(f"... {remaining} more people (use --limit to show more)")


if __name__ == "__main__":
    main()
