"""
Main pipeline orchestration for html2rss.

This module coordinates the entire workflow:
1. Load the HTML source (local file or URL)
2. Select the content fragment
3. Resolve the item title
4. Make relative URLs in the fragment absolute
5. Normalize the fragment into CDATA-safe text
6. Synthesize the feed item
7. Insert it into the feed document, or preview it in dry-run mode

Each stage runs once, in order. A failure stops the run where it is and
the feed document is only written after every earlier stage succeeded.
"""

from __future__ import annotations

import logging

import httpx
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import AppConfig
from .core.dates import parse_feed_date
from .core.types import RunResult, RunState
from .errors import ConfigError, Html2RssError
from .extract.normalizer import normalize_fragment
from .extract.selector import parse_html, resolve_title, select_fragment
from .extract.urls import absolutize_fragment
from .fetch.loader import load_source
from .logging_utils import log_event
from .output.item import build_item_link, synthesize_item
from .output.merger import check_item_renders, merge_into_feed


def run_pipeline(
    cfg: AppConfig,
    console: Console | None = None,
    logger: logging.Logger | None = None,
    client: httpx.Client | None = None,
) -> RunResult:
    """Run the complete HTML-to-feed-item pipeline.

    Args:
        cfg: Application configuration; ``cfg.run`` names the inputs
        console: Rich console for the dry-run preview (creates default if None)
        logger: Logger for pipeline events (uses the "html2rss" logger if None)
        client: Optional httpx client for remote sources

    Returns:
        RunResult in state INSERTED, or PREVIEWED_ONLY for dry runs

    Raises:
        Html2RssError: on any stage failure; ``err.state`` is the last
            state the run reached
    """
    logger = logger or logging.getLogger("html2rss")
    run = cfg.run
    state: RunState | None = None

    try:
        _validate_run(cfg)
        log_event(
            logger,
            "Pipeline start",
            event="pipeline_start",
            html=run.html,
            rss=run.rss,
            selector=run.selector,
            dry_run=run.dry_run,
        )

        loaded = load_source(run.html, cfg.fetch, client=client)
        document = parse_html(loaded.content)
        state = RunState.LOADED
        log_event(
            logger,
            "Source loaded",
            event="source_loaded",
            source=loaded.source,
            remote=loaded.remote,
            size=len(loaded.content),
        )

        fragment = select_fragment(document, run.selector)
        state = RunState.SELECTED
        log_event(logger, "Fragment selected", event="fragment_selected", selector=run.selector)

        title = resolve_title(document, run.title)
        state = RunState.TITLE_RESOLVED
        log_event(logger, f"Title: {title}", event="title_resolved", title=title)

        rewritten = absolutize_fragment(fragment, run.parent_url)
        state = RunState.URLS_RESOLVED
        log_event(
            logger,
            f"Rewrote {len(rewritten)} relative URL(s)",
            event="urls_resolved",
            count=len(rewritten),
            level=logging.DEBUG,
        )

        description = normalize_fragment(fragment, run.lines_to_cut)
        state = RunState.NORMALIZED
        log_event(
            logger,
            "Text normalized",
            event="text_normalized",
            chars=len(description),
            lines_cut=run.lines_to_cut,
            level=logging.DEBUG,
        )

        item = synthesize_item(
            title=title,
            link=build_item_link(loaded.source, run.parent_url),
            description=description,
            published_at=parse_feed_date(run.date_time),
        )
        state = RunState.SYNTHESIZED
        log_event(
            logger,
            "Item synthesized",
            event="item_synthesized",
            link=item.link,
            guid=item.guid,
            pub_date=item.pub_date,
        )

        if run.dry_run:
            item_xml = check_item_renders(item, cfg.feed.indent_unit)
            state = RunState.PREVIEWED_ONLY
            result = RunResult(state=state, item=item, item_xml=item_xml, rewritten_urls=rewritten)
            render_preview(result, cfg, console or Console())
            log_event(logger, "Dry run: feed not modified", event="item_previewed", rss=run.rss)
            return result

        merged = merge_into_feed(
            run.rss,
            item,
            container=cfg.feed.container,
            indent_unit=cfg.feed.indent_unit,
        )
        state = RunState.INSERTED
        log_event(
            logger,
            "Item inserted",
            event="item_inserted",
            rss=str(merged.path),
            items_before=merged.items_before,
            items_after=merged.items_after,
        )
        return RunResult(
            state=state,
            item=item,
            item_xml=merged.item_xml,
            rewritten_urls=rewritten,
            feed_path=str(merged.path),
            items_before=merged.items_before,
            items_after=merged.items_after,
        )
    except Html2RssError as exc:
        exc.state = state.value if state else None
        log_event(
            logger,
            f"Pipeline failed: {exc}",
            event="pipeline_failed",
            error_type=type(exc).__name__,
            state=exc.state,
            level=logging.ERROR,
        )
        raise


def render_preview(result: RunResult, cfg: AppConfig, console: Console) -> None:
    """Print the dry-run summary and the rendered item."""
    run = cfg.run
    table = Table(show_header=False, box=None)
    table.add_row("Title", escape(result.item.title))
    table.add_row("Base URL", escape(run.parent_url or ""))
    table.add_row("Selector used", escape(run.selector))
    if run.lines_to_cut > 0:
        table.add_row("Lines to cut", str(run.lines_to_cut))
    if run.title is not None:
        table.add_row("Title override", escape(run.title))
    table.add_row("Link", escape(result.item.link))
    table.add_row("Published", result.item.pub_date)

    console.print("=== DRY RUN MODE ===", style="bold yellow")
    console.print(table)
    console.print(Panel(Text(result.item_xml), title="RSS Item", expand=False))


def _validate_run(cfg: AppConfig) -> None:
    run = cfg.run
    if not run.html:
        raise ConfigError("An HTML file path or URL is required")
    if not run.dry_run and not run.rss:
        raise ConfigError("A feed document path is required unless --dry-run is set")
    if run.lines_to_cut < 0:
        raise ConfigError("lines_to_cut must be zero or more", lines_to_cut=run.lines_to_cut)
    if not run.selector or not run.selector.strip():
        raise ConfigError("Selector must not be empty")
