"""
html2rss - Convert HTML content into RSS feed items.

Takes a fragment of an HTML page (local file or URL), makes its links
absolute, and inserts it as a new <item> into an existing RSS feed,
keeping the feed's formatting intact.

Main entry point is the CLI via the `html2rss` command.

Example:
    $ html2rss -f blog/trip.html -r rss.xml -b https://example.com/blog
"""

__all__ = ["__version__", "AppConfig", "load_config", "run_pipeline", "RunResult", "RunState"]
__version__ = "0.1.0"

from .config import AppConfig, load_config
from .core.types import RunResult, RunState
from .runner import run_pipeline
