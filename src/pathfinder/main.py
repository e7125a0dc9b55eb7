"""
Pathfinder - CLI Entry Point.

Usage:
    pathfinder login             Sign in and sync your itineraries
    pathfinder itineraries       List saved itineraries
    pathfinder plan              Generate a new itinerary
    pathfinder feed              Browse the community feed
    pathfinder options           List planning options
    pathfinder --help            Show help
"""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table

from pathfinder.errors import PathfinderError
from pathfinder.models import Itinerary, OptionCategory, Personality

app = typer.Typer(
    name="pathfinder",
    help="Pathfinder - Mood-based day itineraries that work offline.",
    add_completion=False,
)
console = Console()


def setup_logging(verbose: bool = False) -> None:
    from pathfinder.config import settings

    level = logging.DEBUG if verbose else getattr(logging, settings.log_level)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )

    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    setup_logging(verbose)


def _services():
    from pathfinder.services import Services

    return Services()


def _fail(message: str) -> None:
    console.print(f"\n[red]❌ {message}[/red]")
    raise typer.Exit(1)


def _print_itinerary(itinerary: Itinerary) -> None:
    badges = []
    if itinerary.shared:
        badges.append("shared")
    if itinerary.verified_community:
        badges.append("verified")
    if itinerary.featured:
        badges.append("featured")
    subtitle = " · ".join(filter(None, [itinerary.date, itinerary.mood, *badges]))

    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("#", style="dim")
    table.add_column("Time")
    table.add_column("Stop")
    table.add_column("Where")
    table.add_column("Rating", justify="right")
    for n, item in enumerate(itinerary.items):
        done = "✅ " if item.completed else ""
        table.add_row(str(n), item.time, f"{done}{item.activity}", item.location_name, f"{item.rating:.1f}")

    console.print(Panel(table, title=f"[bold]{itinerary.title}[/bold]", subtitle=subtitle or None))
    console.print(f"[dim]id: {itinerary.id}[/dim]")


def _print_list(itineraries: list[Itinerary], empty: str) -> None:
    if not itineraries:
        console.print(f"[dim]{empty}[/dim]")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Id", style="dim")
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Stops", justify="right")
    table.add_column("Likes", justify="right")
    for itinerary in itineraries:
        table.add_row(
            itinerary.id,
            itinerary.title,
            itinerary.author or "",
            str(len(itinerary.items)),
            str(itinerary.likes),
        )
    console.print(table)


# =============================================================================
# Housekeeping
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from pathfinder import __version__

    console.print(f"Pathfinder version {__version__}")


@app.command()
def health() -> None:
    """Check configuration and local cache."""
    from pathfinder.config import get_settings

    console.print("\n[bold]Pathfinder Health Check[/bold]\n")

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Check your .env file.[/dim]")
        raise typer.Exit(1)

    console.print("✅ Configuration loaded")
    console.print(f"   Environment: {settings.pathfinder_env}")
    console.print(f"   Log level: {settings.log_level}")
    console.print(f"   Cache dir: {settings.cache_dir}")

    if settings.supabase_configured:
        console.print("✅ Supabase configured")
    else:
        console.print("ℹ️  Supabase not configured (local-cache-only mode)")

    if settings.openai_api_key:
        console.print("✅ OpenAI API key configured")
    else:
        console.print("ℹ️  OpenAI API key missing (itinerary generation disabled)")

    console.print("\n[green]All checks passed![/green]")


@app.command()
def db() -> None:
    """Check database connection and schema."""
    from pathfinder.db.client import get_client

    console.print("\n[bold]Database Connection Check[/bold]\n")

    client = get_client()
    if client is None:
        _fail("Supabase is not configured")
    console.print("✅ Supabase client created")

    tables = ["profiles", "itineraries", "places", "itinerary_items", "user_privacy_settings"]
    console.print("\n[bold]Table Status:[/bold]")
    for table in tables:
        try:
            result = client.table(table).select("*", count="exact").limit(0).execute()
            count = result.count if result.count is not None else "?"
            console.print(f"  ✅ {table}: {count} rows")
        except Exception as e:
            console.print(f"  ❌ {table}: {e}")

    console.print("\n[green]Database check complete![/green]")


@app.command("clear-cache")
def clear_cache() -> None:
    """Forget the local user and saved itineraries on this device."""
    services = _services()
    services.engine.clear_user()
    swept = services.cache.sweep_auth_tokens()
    console.print(f"🧹 Local data cleared ({swept} session token(s) removed)")


# =============================================================================
# Session
# =============================================================================


@app.command()
def login(
    email: str = typer.Option(..., "--email", "-e", prompt=True),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Sign in and sync profile and itineraries from the cloud."""
    services = _services()
    controller = services.controller()
    if controller is None:
        _fail("Sign-in needs Supabase to be configured")

    async def run():
        await services.identity.sign_in(email, password)
        await controller.start()
        await controller.stop()
        return controller

    try:
        with Live(Spinner("dots", text="Signing in..."), console=console, transient=True):
            asyncio.run(run())
    except PathfinderError as e:
        _fail(str(e))

    if not controller.logged_in:
        _fail("Signed in, but the session could not be loaded")
    console.print(f"👋 Welcome, [bold]{controller.user.name}[/bold] ({len(controller.itineraries)} itineraries synced)")


@app.command()
def logout() -> None:
    """Sign out and clear local data."""
    services = _services()
    controller = services.controller()
    if controller is None:
        services.engine.clear_user()
        services.cache.sweep_auth_tokens()
    else:
        asyncio.run(controller.logout())
    console.print("Signed out. Local data cleared.")


@app.command()
def whoami() -> None:
    """Show the current profile."""
    services = _services()
    user = asyncio.run(services.engine.get_user())
    if user is None:
        console.print("[dim]Not signed in.[/dim]")
        return
    console.print(f"[bold]{user.name}[/bold] <{user.email or 'no email'}>")
    console.print(f"   City: {user.city or '-'}")
    console.print(f"   Personality: {user.personality.value}")
    if user.role:
        console.print(f"   Role: {user.role}")


# =============================================================================
# Itineraries
# =============================================================================


@app.command()
def itineraries() -> None:
    """List saved itineraries."""
    services = _services()
    _print_list(asyncio.run(services.engine.get_saved_itineraries()), "No saved itineraries yet.")


@app.command()
def show(itinerary_id: str = typer.Argument(..., help="Itinerary id")) -> None:
    """Show one itinerary."""
    services = _services()
    itinerary = asyncio.run(services.engine.get_itinerary_by_id(itinerary_id))
    if itinerary is None:
        _fail(f"Itinerary {itinerary_id} not found")
    _print_itinerary(itinerary)


@app.command()
def feed() -> None:
    """Browse the community feed."""
    services = _services()
    _print_list(asyncio.run(services.engine.get_community_itineraries()), "The community feed is empty.")


@app.command()
def options(
    category: OptionCategory | None = typer.Argument(None, help="Only this category"),
) -> None:
    """List the moods, budgets, durations, groups and place types to plan with."""
    from pathfinder.options import load_options

    services = _services()
    catalog = asyncio.run(load_options(services.remote, category))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Category")
    table.add_column("Label")
    table.add_column("Value", style="dim")
    for key, entries in catalog.items():
        for option in entries:
            table.add_row(key.value, option.label, option.value)
    console.print(table)


@app.command()
def plan(
    city: str = typer.Option(..., "--city", "-c", help="Where the day happens"),
    mood: str = typer.Option(..., "--mood", "-m", help="Vibe for the day"),
    personality: Personality = typer.Option(Personality.CHILL, "--personality"),
    budget: str = typer.Option("$$", "--budget", "-b"),
    duration: str = typer.Option("Full Day", "--duration", "-d"),
    group: str = typer.Option("Couple", "--group", "-g"),
    stops: int = typer.Option(4, "--stops", "-n"),
    place_type: list[str] = typer.Option([], "--type", "-t", help="Place types to include"),
    name: str = typer.Option("", "--name", help="Use this exact title"),
    save: bool = typer.Option(True, "--save/--no-save", help="Save to your itineraries"),
) -> None:
    """Generate a new itinerary."""
    from pathfinder.options import load_options, resolve_place_types
    from pathfinder.planner import GenerationRequest, generate_itinerary

    services = _services()

    async def run():
        types = []
        if place_type:
            catalog = await load_options(services.remote, OptionCategory.TYPE)
            types = resolve_place_types(catalog, place_type)
        request = GenerationRequest(
            city=city,
            mood=mood,
            personality=personality,
            budget=budget,
            duration=duration,
            group_size=group,
            stop_count=stops,
            place_types=types,
            custom_name=name,
        )
        itinerary = await generate_itinerary(request)
        if save:
            result = await services.engine.save_itinerary(itinerary)
            itinerary = result.value
        return itinerary

    try:
        with Live(Spinner("dots", text="Planning your day..."), console=console, transient=True):
            itinerary = asyncio.run(run())
    except (PathfinderError, ValueError) as e:
        _fail(str(e))

    _print_itinerary(itinerary)


@app.command()
def publish(itinerary_id: str = typer.Argument(..., help="Itinerary id")) -> None:
    """Share an itinerary to the community feed."""
    services = _services()

    async def run():
        itinerary = await services.engine.get_itinerary_by_id(itinerary_id)
        if itinerary is None:
            return None
        user = await services.engine.get_user()
        author = user.name if user is not None else "Anonymous"
        return await services.engine.publish_itinerary(itinerary, author)

    result = asyncio.run(run())
    if result is None:
        _fail(f"Itinerary {itinerary_id} not found")
    if result.confirmed_remotely:
        console.print(f"🌍 Published [bold]{result.value.title}[/bold]")
    else:
        console.print(f"📌 Published [bold]{result.value.title}[/bold] on this device (will not sync until online)")


@app.command()
def remix(itinerary_id: str = typer.Argument(..., help="Itinerary id")) -> None:
    """Copy someone's itinerary into your own."""
    services = _services()

    async def run():
        itinerary = await services.engine.get_itinerary_by_id(itinerary_id)
        if itinerary is None:
            return None
        return await services.engine.save_itinerary(itinerary.remix())

    result = asyncio.run(run())
    if result is None:
        _fail(f"Itinerary {itinerary_id} not found")
    console.print(f"🔀 Saved [bold]{result.value.title}[/bold] ({result.value.id})")


# =============================================================================
# Privacy
# =============================================================================


@app.command()
def export(path: Path = typer.Argument(Path("pathfinder-export.json"), help="Output file")) -> None:
    """Export everything stored about you as JSON."""
    services = _services()
    compliance = services.compliance()
    if compliance is None:
        _fail("Export needs Supabase to be configured")
    written = asyncio.run(compliance.write_export(path))
    console.print(f"📦 Exported to {written}")


@app.command("delete-account")
def delete_account(
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
) -> None:
    """Permanently delete your account data."""
    services = _services()
    compliance = services.compliance()
    if compliance is None:
        _fail("Account deletion needs Supabase to be configured")
    if not yes:
        typer.confirm("This permanently deletes your itineraries and profile. Continue?", abort=True)
    if not asyncio.run(compliance.delete_account()):
        _fail("Account deletion failed, nothing was removed. Please try again.")
    console.print("Account deleted.")


if __name__ == "__main__":
    app()
