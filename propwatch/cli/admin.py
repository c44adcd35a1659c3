"""
PropWatch - CLI Admin Commands
Command-line host for the scraper scheduler
"""

import asyncio
import logging
import signal
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from propwatch.core.config import get_settings
from propwatch.core.exceptions import SchedulerBusyError, ScrapingSessionError

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(level: Optional[str] = None) -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _print_quality(metrics: Dict[str, Any], insights) -> None:
    sources = metrics.get("sources", {})
    if not sources:
        console.print("[yellow]No connector invocations recorded yet in this process[/yellow]")
        return

    tbl = Table(title="Data Quality")
    tbl.add_column("Source")
    tbl.add_column("Found", justify="right")
    tbl.add_column("Extracted", justify="right")
    tbl.add_column("Rate", justify="right", style="cyan")
    tbl.add_column("Response", justify="right")
    tbl.add_column("Status")

    colors = {"healthy": "green", "degraded": "yellow", "failed": "red"}
    for name, m in sources.items():
        color = colors.get(m["status"], "white")
        tbl.add_row(
            name,
            str(m["games_found"]),
            str(m["props_extracted"]),
            f"{m['extraction_rate']:.1f}%",
            f"{m['response_time_ms']:.0f}ms",
            f"[{color}]{m['status']}[/{color}]",
        )
    console.print(tbl)

    aggregate = metrics["aggregate"]
    console.print(
        f"Overall: [bold]{aggregate['overall_health']}[/bold] - "
        f"{aggregate['total_props']} props, {aggregate['active_sources']} active sources, "
        f"{aggregate['average_response_time_ms']:.0f}ms average"
    )
    for insight in insights:
        console.print(f"  [yellow]•[/yellow] {insight}")


@click.group()
def cli():
    """PropWatch - prop line movement and public sentiment tracking"""
    pass


# ============== Worker Command ==============

@cli.command()
@click.option("--log-level", "-l", default=None, help="Override LOG_LEVEL")
def worker(log_level: Optional[str]):
    """
    Run the scraper scheduler until interrupted.

    Prop lines are scraped every few minutes during peak windows and less
    often off-peak; sentiment analysis runs on a fixed interval.
    """
    settings = get_settings()
    _setup_logging(log_level)

    console.print(Panel.fit(
        f"[bold green]PropWatch[/bold green] worker\n"
        f"env={settings.ENVIRONMENT} scheduler={'on' if settings.SCHEDULER_ENABLED else 'off'}\n"
        f"peak every {settings.PEAK_INTERVAL_MINUTES}m, off-peak every {settings.OFF_PEAK_INTERVAL_MINUTES}m",
        title="Starting"
    ))

    async def run_worker():
        from propwatch.services.scheduling import get_scraper_scheduler

        scheduler = get_scraper_scheduler()
        stop_event = asyncio.Event()

        def request_stop():
            console.print("\n[yellow]Stopping, flushing pending alerts...[/yellow]")
            stop_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, request_stop)
            except NotImplementedError:
                # Windows; Ctrl+C falls through to KeyboardInterrupt
                pass

        try:
            await scheduler.start()
            console.print("[green]✓[/green] Jobs scheduled, Ctrl+C to stop")
            await stop_event.wait()
        finally:
            await scheduler.stop()
            console.print("[green]✓[/green] Scheduler stopped")

    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")


# ============== Scraping Commands ==============

@cli.command()
@click.option(
    "--category", "-c",
    type=click.Choice(["all", "props", "sentiment"]),
    default="all",
    help="Which cycle to run",
)
def trigger(category: str):
    """Run one scraping cycle immediately and print the counts"""
    _setup_logging()
    console.print(f"[yellow]Running {category} scraping cycle...[/yellow]")

    async def run():
        from propwatch.services.data_quality import get_data_quality_monitor
        from propwatch.services.scheduling import get_scraper_scheduler

        scheduler = get_scraper_scheduler()
        runners = {
            "all": scheduler.trigger_immediate,
            "props": scheduler.trigger_props,
            "sentiment": scheduler.trigger_sentiment,
        }
        try:
            counts = await runners[category]()
        except SchedulerBusyError as e:
            console.print(f"[yellow]![/yellow] {e}")
            return
        except ScrapingSessionError as e:
            console.print(f"[red]✗[/red] Session {e.session.session_id} failed: {e}")
            return
        finally:
            await scheduler.stop()

        for name, count in counts.items():
            console.print(f"[green]✓[/green] {name}: {count}")

        monitor = get_data_quality_monitor()
        _print_quality(monitor.get_current_metrics(), monitor.get_actionable_insights())

    asyncio.run(run())


@cli.command()
def status():
    """Show scheduler configuration, peak window and season context"""
    from propwatch.services.scheduling import get_scraper_scheduler

    info = get_scraper_scheduler().status()

    console.print(Panel.fit(
        "[bold green]PropWatch[/bold green]\n"
        "Scraper Scheduler",
        title="Status"
    ))

    tbl = Table(title="Scheduler")
    tbl.add_column("Setting")
    tbl.add_column("Value", style="cyan")
    tbl.add_row("Running", str(info["is_running"]))
    tbl.add_row("Peak Time", str(info["is_peak_time"]))
    tbl.add_row("Prop Interval", f"{info['prop_interval_minutes']}m")
    tbl.add_row("Sentiment Interval", f"{info['sentiment_interval_minutes']}m")
    for category, state in info["categories"].items():
        tbl.add_row(f"{category.title()} State", state["state"])
    console.print(tbl)

    season = info["season"]
    for league in season["leagues"]:
        marker = "[green]●[/green]" if league["in_season"] else "[dim]○[/dim]"
        console.print(f"{marker} {league['sport']} ({league['phase']}): {league['message']}")
    console.print(f"\n{season['message']}")


@cli.command()
@click.option(
    "--run/--no-run", "run_first", default=True,
    help="Run a prop cycle before reporting (default). With --no-run only this "
         "process's in-memory metrics are shown, which are empty for a fresh CLI.",
)
def quality(run_first: bool):
    """Scrape props once, then show per-source data quality and diagnostics"""
    if run_first:
        _setup_logging()

    async def run():
        from propwatch.services.data_quality import get_data_quality_monitor
        from propwatch.services.scheduling import get_scraper_scheduler

        if run_first:
            scheduler = get_scraper_scheduler()
            try:
                await scheduler.trigger_props()
            except ScrapingSessionError as e:
                console.print(f"[red]✗[/red] Prop session failed: {e}")
            finally:
                await scheduler.stop()

        monitor = get_data_quality_monitor()
        _print_quality(monitor.get_current_metrics(), monitor.get_actionable_insights())

        diagnostics = monitor.get_diagnostics()
        for title, items, color in (
            ("Critical Issues", diagnostics.critical_issues, "red"),
            ("Recommendations", diagnostics.recommendations, "yellow"),
            ("Performance", diagnostics.performance_insights, "cyan"),
        ):
            if items:
                console.print(f"\n[bold {color}]{title}[/bold {color}]")
                for item in items:
                    console.print(f"  - {item}")

    asyncio.run(run())


if __name__ == "__main__":
    cli()
