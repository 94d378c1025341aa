"""
Command-line interface for html2rss.

Uses Typer to expose the pipeline inputs as options. Settings can also
come from a YAML config file; options given on the command line win.
Loads .env files, so HTML2RSS_PARENT_URL can set the base URL once per site.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console
from rich.markup import escape

from .config import load_config
from .errors import Html2RssError
from .logging_utils import setup_logging
from .runner import run_pipeline

app = typer.Typer(add_completion=False)
console = Console()
err_console = Console(stderr=True)


@app.command()
def run(
    html: str | None = typer.Option(
        None, "--html", "-f", help="Relative path to HTML file or URL of a website page."
    ),
    rss: Path | None = typer.Option(None, "--rss", "-r", help="Relative path to your rss.xml file."),
    parent_url: str | None = typer.Option(
        None,
        "--parent-url",
        "-b",
        help="Parent URL to convert relative src etc. values.",
    ),
    selector: str | None = typer.Option(
        None, "--selector", "-s", help="CSS selector for content (default: main)."
    ),
    title: str | None = typer.Option(
        None, "--title", "-t", help="Item title, else the first <h1> text is used."
    ),
    date_time: str | None = typer.Option(
        None, "--date-time", "-d", help="Publication datetime e.g. '2021-06-02 14:30' (default: now)."
    ),
    lines_to_cut: int | None = typer.Option(
        None, "--lines-to-cut", "-c", min=0, help="Lines to cut from the start of the content."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only display the item in the terminal."),
    config: Path | None = typer.Option(None, "--config", exists=True, readable=True),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
):
    """Convert an HTML page fragment into an RSS item and add it to a feed.

    Args:
        html: Path to a local HTML file, or an http(s) URL
        rss: Feed document to insert the item into
        parent_url: Base URL for relative src/href/srcset values
        selector: CSS selector of the content fragment
        title: Optional title override
        date_time: Optional publication date
        lines_to_cut: Leading lines to drop from the fragment
        dry_run: Print the item instead of writing the feed
        config: Optional path to YAML config file
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Enable/disable file logging
    """
    # Load environment variables from .env if available
    load_dotenv()

    try:
        cfg = load_config(str(config) if config else None)
    except Html2RssError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=1) from exc

    # Override with CLI options
    if html:
        cfg.run.html = html
    if rss:
        cfg.run.rss = str(rss)
    parent_url = parent_url or os.getenv("HTML2RSS_PARENT_URL")
    if parent_url:
        cfg.run.parent_url = parent_url
    if selector:
        cfg.run.selector = selector
    if title is not None:
        cfg.run.title = title
    if date_time:
        cfg.run.date_time = date_time
    if lines_to_cut is not None:
        cfg.run.lines_to_cut = lines_to_cut
    if dry_run:
        cfg.run.dry_run = True
    if log_level:
        cfg.logging.level = log_level
    if log_file is not None:
        cfg.logging.file = log_file

    logger = setup_logging(cfg.logging, console=err_console)

    try:
        result = run_pipeline(cfg, console=console, logger=logger)
    except Html2RssError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=1) from exc

    if result.feed_path:
        console.print(f"RSS item successfully added to {escape(cfg.run.rss)}", highlight=False)


if __name__ == "__main__":
    app()
