"""
Remonta contractor directory CLI

Examples:
    # Nearest contractors to a suburb
    remonta search "Parramatta NSW"

    # Within 25 km, JSON output piped to jq
    remonta search "Geelong" --distance 25 -f json -q | jq '.contractors[:5]'

    # Everyone in a state
    remonta search NSW --limit all

    # Load a CRM export, filling in missing coordinates
    remonta import contractors.csv --geocode

    # Check configuration
    remonta check
"""

import json
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import load_config
from .models import RankedContractor
from .search.geocoding import GeocodingError, GoogleGeocoder, build_geocoder, safe_geocode
from .search.params import SearchParameterError
from .search.service import SearchResult

# Progress to stderr, data to stdout
console = Console(stderr=True)
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, quiet: bool, debug: bool) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.ERROR
    elif debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def display_results(result: SearchResult) -> None:
    """Display a table of contractors, with distance when ranked."""
    table = Table(title="Contractors", show_header=True, header_style="bold magenta")

    table.add_column("Name", style="cyan", max_width=30)
    table.add_column("Role", max_width=30)
    table.add_column("Location", max_width=30)
    table.add_column("Gender")
    if result.ranked:
        table.add_column("Distance", justify="right")

    for item in result.contractors:
        record = item.record if isinstance(item, RankedContractor) else item
        place = ", ".join(p for p in (record.city, record.state, record.postal_zip_code) if p)
        row = [
            record.full_name[:30] or "-",
            (record.title_role or "-")[:30],
            place or "-",
            record.gender or "-",
        ]
        if result.ranked:
            distance = item.distance_km
            color = "green" if distance <= 10 else "yellow" if distance <= 50 else "red"
            row.append(f"[{color}]{distance:.1f} km[/{color}]")
        table.add_row(*row)

    console.print(table)

    p = result.pagination
    console.print(
        f"\n[dim]Showing {len(result.contractors)} of {p.total} "
        f"(page {p.current_page}/{p.total_pages})[/dim]"
    )
    for note in result.notes:
        console.print(f"[yellow]{note}[/yellow]")


# ============================================================================
# CLI Group
# ============================================================================

@click.group(invoke_without_command=True)
@click.pass_context
@click.version_option(version=__version__)
def cli(ctx):
    """Location-aware search over the Remonta contractor directory."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ============================================================================
# Search Command
# ============================================================================

@cli.command()
@click.argument("location", required=False)
@click.option("-l", "--limit", default="10", help='Page size, or "all"')
@click.option("--offset", default="0", help="Matches to skip")
@click.option("-d", "--distance", help="Maximum distance in km")
@click.option("--gender", help="Gender filter")
@click.option("--support-type", help="Role / support type filter")
@click.option("-f", "--format", "output_format",
              type=click.Choice(["table", "json"]), default="table",
              help="Output format")
@click.option("--config", type=click.Path(exists=True), help="YAML config file")
@click.option("-q", "--quiet", is_flag=True, help="Suppress progress, only emit data")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def search(
    location: Optional[str],
    limit: str,
    offset: str,
    distance: Optional[str],
    gender: Optional[str],
    support_type: Optional[str],
    output_format: str,
    config: Optional[str],
    quiet: bool,
    verbose: bool,
    debug: bool,
):
    """
    Search contractors near LOCATION.

    LOCATION may be a suburb, postcode, state, or any mix
    (e.g. "Parramatta NSW 2150"). Without it, newest contractors are listed.
    """
    setup_logging(verbose, quiet, debug)

    from .api import build_search_service

    settings = load_config(config)
    params = {"limit": limit, "offset": offset}
    if location:
        params["location"] = location
    if distance:
        params["distance"] = distance
    if gender:
        params["gender"] = gender
    if support_type:
        params["supportType"] = support_type

    service = build_search_service(settings)
    try:
        if quiet or output_format == "json":
            result = service.search_params(params)
        else:
            with console.status(f"[bold blue]Searching {location or 'all contractors'}..."):
                result = service.search_params(params)
    except SearchParameterError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(2)
    except Exception as e:
        logger.debug("Search failed", exc_info=True)
        console.print(f"[red]Search failed:[/red] {e}")
        sys.exit(1)
    finally:
        close = getattr(service.geocoder, "close", None)
        if close is not None:
            close()

    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        display_results(result)


# ============================================================================
# Import Command
# ============================================================================

@cli.command(name="import")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--geocode/--no-geocode", default=True,
              help="Fill in missing coordinates from city, state and postcode")
@click.option("--config", type=click.Path(exists=True), help="YAML config file")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def import_csv(csv_file: str, geocode: bool, config: Optional[str], verbose: bool):
    """Load contractors from a CSV export, updating existing contractors."""
    setup_logging(verbose, quiet=False, debug=False)

    from .importer import import_contractors, read_contractor_csv
    from .web.database import create_db_engine, create_session_factory, init_db

    settings = load_config(config)

    rows = read_contractor_csv(csv_file)
    console.print(f"Read [cyan]{len(rows)}[/cyan] rows from {csv_file}")

    engine = create_db_engine(settings.database_url or None)
    init_db(engine)

    geocoder = build_geocoder(settings) if geocode else None
    try:
        summary = import_contractors(create_session_factory(engine), rows, geocoder=geocoder)
    finally:
        if geocoder is not None:
            geocoder.close()

    console.print(
        f"[green]✓[/green] {summary.created} created, {summary.updated} updated, "
        f"{summary.skipped} skipped, {summary.geocoded} geocoded"
    )
    for error in summary.errors:
        console.print(f"[yellow]{error}[/yellow]")


# ============================================================================
# Check Command
# ============================================================================

@cli.command()
@click.option("--config", type=click.Path(exists=True), help="YAML config file")
def check(config: Optional[str]):
    """Check configuration and geocoder availability."""
    settings = load_config(config)

    if settings.database_url:
        click.echo(f"✓ DATABASE_URL: {settings.database_url.split('@')[-1]}")
    else:
        click.echo("✗ DATABASE_URL: not set (using ./remonta.db)")

    if settings.geomap_api_key:
        click.echo(f"✓ GEOMAP_API: {settings.geomap_api_key[:8]}...")
    else:
        click.echo("✗ GEOMAP_API: not set (offline gazetteer only)")

    limits = (
        f"{settings.rate_limit_requests} per {settings.rate_limit_window_seconds}s"
        if settings.rate_limit_enabled else "disabled"
    )
    click.echo(f"  Rate limit: {limits}")

    # Test geocoding
    if settings.geomap_api_key:
        try:
            with GoogleGeocoder(api_key=settings.geomap_api_key, timeout=settings.geocode_timeout) as geocoder:
                result = geocoder.geocode("Sydney NSW")
            if result:
                click.echo("✓ Geocoding: connection OK")
            else:
                click.echo("✗ Geocoding: no result for Sydney NSW")
        except GeocodingError as e:
            click.echo(f"✗ Geocoding: {e}")
    else:
        geocoder = build_geocoder(settings)
        status = "OK" if safe_geocode(geocoder, "Sydney NSW") else "no result"
        click.echo(f"  Gazetteer: {status}")


# ============================================================================
# Version Command
# ============================================================================

@cli.command()
def version():
    """Show version info."""
    click.echo(f"remonta-directory {__version__}")


# ============================================================================
# Web Command
# ============================================================================

@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option("--port", default=8000, help="Port to bind to.")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development.")
def web(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    import uvicorn

    console.print(
        Panel.fit(
            f"[bold]Remonta Contractor Directory API[/bold]\n"
            f"Running at: [cyan]http://{host}:{port}/api/v1[/cyan]",
            border_style="blue",
        )
    )
    console.print("Press Ctrl+C to stop\n")

    uvicorn.run(
        "remonta.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    cli()
