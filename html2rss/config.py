"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- RunConfig: What to convert and where to insert it
- FetchConfig: HTTP fetching settings for remote sources
- FeedConfig: Feed document structure and formatting
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container

The configuration is a plain value handed to the pipeline; nothing in the
package reads settings from module-level state.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from types import UnionType
from typing import Any, get_args, get_type_hints

import yaml

from .errors import ConfigError


@dataclass
class RunConfig:
    """Configuration for a single conversion run.

    Attributes:
        html: Relative path to the HTML file, or URL of a website page
        rss: Path to the feed document to update
        parent_url: Base URL used to make relative src/href/srcset values absolute
        selector: CSS selector for the content fragment
        title: Optional title; the first <h1> text is used when unset
        date_time: Publication date, or "now" for the time of the run
        lines_to_cut: Number of leading lines to drop from the fragment HTML
        dry_run: Print the item instead of writing the feed document
    """

    html: str | None = None
    rss: str | None = None
    parent_url: str | None = None
    selector: str = "main"
    title: str | None = None
    date_time: str = "now"
    lines_to_cut: int = 0
    dry_run: bool = False


@dataclass
class FetchConfig:
    """Configuration for fetching remote HTML sources.

    Attributes:
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    timeout_seconds: float = 20.0
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (compatible; html2rss/0.1; +https://www.rssboard.org/rss-specification)"
    )


@dataclass
class FeedConfig:
    """Configuration for the target feed document.

    Attributes:
        container: Tag name of the element that directly holds items
        indent_unit: Indentation step used when the document does not reveal one
    """

    container: str = "channel"
    indent_unit: str = "  "


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        directory: Directory the log file is written to
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "html2rss.jsonl"
    directory: str = "."


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    run: RunConfig = field(default_factory=RunConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    feed: FeedConfig = field(default_factory=FeedConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    "run": RunConfig,
    "fetch": FetchConfig,
    "feed": FeedConfig,
    "logging": LoggingConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config file: {exc.strerror}", path=path) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML: {exc}", path=path) from exc

    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a mapping", path=path)
    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if not isinstance(value, dict):
            raise ConfigError(f"Section '{key}' must be a mapping")
        hints = get_type_hints(_SECTIONS[key])
        unknown = sorted(set(value) - set(hints))
        if unknown:
            raise ConfigError(f"Unknown keys in section '{key}': {', '.join(unknown)}")
        for name, item in value.items():
            data[key][name] = _check_type(f"{key}.{name}", item, hints[name])
    return _fromdict(data)


def _check_type(name: str, value: Any, hint: Any) -> Any:
    """Validate a YAML scalar against a field annotation.

    Integers are accepted for float fields; booleans never count as numbers.
    """
    allowed = get_args(hint) if isinstance(hint, UnionType) else (hint,)
    if value is None and type(None) in allowed:
        return value
    if float in allowed and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    for expected in allowed:
        if expected is type(None):
            continue
        if isinstance(value, expected) and not (isinstance(value, bool) and expected is not bool):
            return value
    expected_names = " or ".join(t.__name__ for t in allowed if t is not type(None))
    raise ConfigError(
        f"Config value '{name}' must be {expected_names}, got {type(value).__name__}",
        value=value,
    )


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        run=RunConfig(**data["run"]),
        fetch=FetchConfig(**data["fetch"]),
        feed=FeedConfig(**data["feed"]),
        logging=LoggingConfig(**data["logging"]),
    )
