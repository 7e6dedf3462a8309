"""
DialDesk CLI

Command-line interface for the DialDesk outbound calling CRM.
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from ..config import settings
from ..agents import HunterAgent
from ..db import get_repository
from ..hunters import PlacesAPIError
from ..logging_config import configure_logging
from ..models.enums import LeadStatus, ScoreBand
from ..scoring import LeadScorer

app = typer.Typer(
    name="dialdesk",
    help="DialDesk: outbound calling CRM",
    add_completion=False,
)
console = Console()

BAND_STYLES = {
    ScoreBand.CALL_FIRST: "bold green",
    ScoreBand.HIGH_POTENTIAL: "blue",
    ScoreBand.MEDIUM: "yellow",
    ScoreBand.LOW_PRIORITY: "red",
}


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """DialDesk: outbound calling CRM."""
    configure_logging(level=log_level)


# =============================================================================
# Scrape Commands
# =============================================================================

@app.command()
def scrape(
    query: str = typer.Argument(..., help="Search, e.g. 'plumbers in Leeds'"),
    max_results: int = typer.Option(20, "--max", "-m", min=1, max=20, help="Places to request"),
    campaign_id: Optional[str] = typer.Option(None, "--campaign", "-c", help="Campaign to attach leads to"),
):
    """
    Scrape local businesses into leads.

    Searches the places provider and saves every business that has a
    phone number. Re-scraping a business updates it in place.
    """
    if not settings.validate_places_key():
        console.print("[red]GOOGLE_PLACES_API_KEY is not set.[/red]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold green]DialDesk Scraper[/bold green]\n"
        f"Searching for [cyan]{query}[/cyan]...",
        title="Scrape",
    ))

    try:
        session = asyncio.run(HunterAgent().scrape(query, max_results=max_results, campaign_id=campaign_id))
    except PlacesAPIError as e:
        console.print(f"[red]Scrape failed: {e.message}[/red]")
        raise typer.Exit(1)

    table = Table(title="Scrape Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Duration", f"{session.duration_seconds:.1f}s")
    table.add_row("Scraped", str(session.total_scraped))
    table.add_row("With Phone", str(session.total_with_phone))
    table.add_row("Saved", f"[bold green]{session.total_saved}[/bold green]")

    console.print(table)

    if session.total_saved > 0:
        console.print(f"\n[green]{session.message}: {session.total_saved} leads saved.[/green]")
    else:
        console.print(f"\n[yellow]{session.message}.[/yellow]")


# =============================================================================
# Lead Commands
# =============================================================================

@app.command()
def leads(
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum leads to show"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by status"),
    campaign_id: Optional[str] = typer.Option(None, "--campaign", "-c", help="Filter by campaign"),
    search: Optional[str] = typer.Option(None, "--search", help="Match business name or phone"),
    ranked: bool = typer.Option(True, "--ranked/--newest", help="Sort by score or by age"),
):
    """
    List leads with their scores.

    By default the best leads to ring are shown first.
    """
    repo = get_repository()

    try:
        status_filter = LeadStatus(status) if status else None
    except ValueError:
        console.print(f"[red]Unknown status: {status}[/red]")
        raise typer.Exit(1)

    leads_list, total = repo.list_leads(
        status=status_filter,
        campaign_id=campaign_id,
        search=search,
        limit=limit,
    )

    if not leads_list:
        console.print("[yellow]No leads found.[/yellow]")
        return

    scorer = LeadScorer()
    if ranked:
        rows = scorer.rank_leads(leads_list)
    else:
        rows = [(lead, scorer.score_lead(lead)) for lead in leads_list]

    table = Table(title=f"Leads ({len(leads_list)} of {total})")
    table.add_column("Score", style="cyan", width=6)
    table.add_column("Band", width=15)
    table.add_column("Business", style="white", width=30)
    table.add_column("Phone", width=15)
    table.add_column("Status", width=14)
    table.add_column("Last Called", width=16)

    for lead, result in rows:
        style = BAND_STYLES.get(result.band, "white")
        table.add_row(
            str(result.score),
            f"[{style}]{result.band.value}[/{style}]",
            (lead.business_name or "-")[:30],
            lead.phone_number or "-",
            lead.status,
            lead.last_called_at.strftime("%Y-%m-%d %H:%M") if lead.last_called_at else "never",
        )

    console.print(table)


@app.command()
def score(
    lead_id: Optional[str] = typer.Option(None, "--id", help="Score a stored lead"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Business name"),
    phone: Optional[str] = typer.Option(None, "--phone", "-p", help="Phone number"),
    rating: Optional[float] = typer.Option(None, "--rating", help="Google rating"),
    reviews: Optional[int] = typer.Option(None, "--reviews", help="Number of reviews"),
    address: Optional[str] = typer.Option(None, "--address", help="Address with postcode"),
    hours: Optional[str] = typer.Option(None, "--hours", help="Opening hours text"),
):
    """
    Score a lead and explain the result.

    Either pass --id for a stored lead or describe one with the other options.
    """
    if lead_id:
        lead = get_repository().get_lead(lead_id)
        if lead is None:
            console.print(f"[red]Lead not found: {lead_id}[/red]")
            raise typer.Exit(1)
    else:
        lead = {
            "business_name": name,
            "phone_number": phone,
            "rating": rating,
            "total_ratings": reviews,
            "address": address,
            "opening_hours": hours,
        }

    result = LeadScorer().score_lead(lead)
    style = BAND_STYLES.get(result.band, "white")

    console.print(Panel(
        f"[{style}]{result.band.value}[/{style}]\n\n{result.explanation}",
        title=f"Score {result.score}",
    ))


@app.command(name="update-status")
def update_status(
    phone: str = typer.Argument(..., help="Phone number exactly as stored"),
    status: str = typer.Argument(..., help="New lead status"),
):
    """
    Manually set the status of the lead(s) with a phone number.

    Also stamps them as called and, where the status is a call outcome,
    records a call log for the change.
    """
    try:
        new_status = LeadStatus(status)
    except ValueError:
        console.print(f"[red]Unknown status: {status}[/red]")
        console.print(f"[dim]Valid: {', '.join(s.value for s in LeadStatus)}[/dim]")
        raise typer.Exit(1)

    results = get_repository().update_status_by_phone(phone, new_status)

    if not results:
        console.print(f"[yellow]No lead found with phone number {phone}[/yellow]")
        return

    if len(results) > 1:
        console.print(f"[yellow]Found {len(results)} leads with the same phone number. Updated all of them.[/yellow]")

    for lead, call_log in results:
        console.print(f"[green]Updated {lead.business_name} ({lead.id}) to {new_status.value}[/green]")
        if call_log is None:
            console.print("[dim]  No call log recorded: status is not a call outcome[/dim]")


# =============================================================================
# Maintenance Commands
# =============================================================================

@app.command(name="backfill-last-called")
def backfill_last_called():
    """Stamp last_called_at from call history on leads missing it."""
    result = get_repository().backfill_last_called_at()
    console.print(
        f"[green]Backfill complete: {result['updated']} updated, "
        f"{result['skipped']} already set.[/green]"
    )


@app.command(name="backfill-status")
def backfill_status():
    """Move dialled leads still marked new to contacted."""
    result = get_repository().backfill_lead_status()
    console.print(f"[green]Backfill complete: {result['updated']} leads moved to contacted.[/green]")


# =============================================================================
# System Commands
# =============================================================================

@app.command()
def stats():
    """Show database and pipeline statistics."""
    repo = get_repository()
    db_stats = repo.get_stats()
    lead_stats = repo.get_lead_stats()
    call_stats = repo.get_call_stats()

    table = Table(title="DialDesk Statistics")
    table.add_column("Category", style="cyan")
    table.add_column("Metric", style="white")
    table.add_column("Value", style="green")

    table.add_row("Leads", "Total", str(db_stats["leads"]["total"]))
    table.add_row("", "Never Dialled", str(db_stats["leads"]["never_dialled"]))
    for status in LeadStatus:
        count = lead_stats[status.value]
        if count:
            table.add_row("", status.value, str(count))

    table.add_row("Campaigns", "Total", str(db_stats["campaigns"]["total"]))
    table.add_row("", "Active", str(db_stats["campaigns"]["active"]))

    table.add_row("Calls", "Logged", str(db_stats["call_logs"]["total"]))
    table.add_row("", "Leads Dialled", str(call_stats["total_calls"]))
    for outcome, count in call_stats["outcomes"].items():
        if count:
            table.add_row("", outcome, str(count))

    console.print(table)


@app.command()
def init():
    """
    Initialize the database.

    Run this once to set up the system before first use.
    """
    console.print("[cyan]Initializing DialDesk...[/cyan]")

    get_repository()
    console.print("[green]Database initialized.[/green]")

    if not settings.validate_places_key():
        console.print("[yellow]GOOGLE_PLACES_API_KEY is not set; scraping will fail until it is.[/yellow]")

    console.print(Panel.fit(
        "[bold green]DialDesk is ready![/bold green]\n\n"
        "Next steps:\n"
        "1. Run [cyan]dialdesk scrape \"plumbers in Leeds\"[/cyan] to find leads\n"
        "2. Run [cyan]dialdesk leads[/cyan] to see who to ring first\n"
        "3. Run [cyan]dialdesk serve[/cyan] to start the API",
        title="Setup Complete",
    ))


@app.command()
def serve(
    host: str = typer.Option(settings.HOST, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.PORT, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload on code changes"),
):
    """Start the DialDesk API server."""
    import uvicorn

    console.print(Panel.fit(
        "[bold green]DialDesk API Server[/bold green]\n\n"
        f"API: [cyan]http://{host}:{port}/api[/cyan]\n"
        f"Docs: [cyan]http://{host}:{port}/docs[/cyan]\n"
        f"Realtime: [cyan]ws://{host}:{port}/ws[/cyan]",
        title="Serve",
    ))

    uvicorn.run(
        "dialdesk.server:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def version():
    """Show version information."""
    console.print(Panel(
        f"[bold]{settings.APP_NAME}[/bold] v{settings.APP_VERSION}\n"
        "Outbound calling CRM",
        title="Version",
    ))


# =============================================================================
# Entry Point
# =============================================================================

def main():
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
