# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.cli",
#   "purpose": "Typer CLI for probing pages, replaying tab sessions, and managing history/settings",
#   "sections": [
#     {
#       "id": "main",
#       "name": "main",
#       "anchor": "function-main",
#       "kind": "function"
#     },
#     {
#       "id": "check",
#       "name": "check",
#       "anchor": "function-check",
#       "kind": "function"
#     },
#     {
#       "id": "replay",
#       "name": "replay",
#       "anchor": "function-replay",
#       "kind": "function"
#     },
#     {
#       "id": "history-commands",
#       "name": "history_list / history_clear",
#       "anchor": "function-history-list",
#       "kind": "function"
#     },
#     {
#       "id": "settings-commands",
#       "name": "settings_show / settings_set",
#       "anchor": "function-settings-show",
#       "kind": "function"
#     },
#     {
#       "id": "config-commands",
#       "name": "config_print_merged / config_schema",
#       "anchor": "function-config-print-merged",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Command-line surface for the manifest watcher.

This module provides Typer commands for:
- **check**: resolve, probe, and classify the manifest for one page URL
- **replay**: feed a JSONL file of recorded tab events through the coordinator
- **history list / clear**: inspect or empty the durable history
- **settings show / set**: read or update the persisted settings
- **config print-merged / schema**: inspect configuration

**Usage:**

    llmsdottxt check https://docs.example.com/guide/intro.html
    llmsdottxt replay session.jsonl
    llmsdottxt history list --full
    llmsdottxt settings set --history-count 10
    llmsdottxt -c watch.yaml config print-merged
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer

from LlmsDotTxt.ManifestWatch.config import WatcherConfig, export_config_schema, load_config
from LlmsDotTxt.ManifestWatch.errors import WatcherError
from LlmsDotTxt.ManifestWatch.events import parse_event
from LlmsDotTxt.ManifestWatch.logging_utils import setup_logging
from LlmsDotTxt.ManifestWatch.service import ManifestWatcher
from LlmsDotTxt.ManifestWatch.urls import manifest_url_for

__all__ = ["app", "main"]

logger = logging.getLogger(__name__)

app = typer.Typer(help="Detect llms.txt manifests next to web pages", no_args_is_help=True)
history_app = typer.Typer(help="Inspect or clear the manifest history")
settings_app = typer.Typer(help="Read or update persisted settings")
config_app = typer.Typer(help="Configuration inspection")
app.add_typer(history_app, name="history")
app.add_typer(settings_app, name="settings")
app.add_typer(config_app, name="config")


def open_watcher(config: WatcherConfig) -> ManifestWatcher:
    """Build the watcher used by commands (patched in tests)."""
    return ManifestWatcher(config)


def _config(ctx: typer.Context) -> WatcherConfig:
    return ctx.obj["config"]


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except WatcherError as e:
        typer.secho(f"✗ {e}", fg="red", err=True)
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file path (YAML/JSON)"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override logging.level (DEBUG, INFO, WARNING, ERROR)"
    ),
    json_logs: Optional[bool] = typer.Option(
        None, "--json-logs/--text-logs", help="Emit JSON log lines on stderr"
    ),
) -> None:
    """Load configuration and set up logging for every subcommand."""
    overrides: dict[str, Any] = {}
    if log_level is not None:
        overrides.setdefault("logging", {})["level"] = log_level
    if json_logs is not None:
        overrides.setdefault("logging", {})["json_output"] = json_logs
    try:
        cfg = load_config(config_file, cli_overrides=overrides)
    except ValueError as e:
        typer.secho(f"✗ Error loading config: {e}", fg="red", err=True)
        raise typer.Exit(1)
    setup_logging(
        level=cfg.logging.level,
        json_output=cfg.logging.json_output,
        log_dir=Path(cfg.logging.log_dir) if cfg.logging.log_dir else None,
    )
    ctx.obj = {"config": cfg}


# ============================================================================
# Detection
# ============================================================================


@app.command()
def check(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Page URL whose llms.txt should be probed"),
    show_content: bool = typer.Option(False, "--content", help="Print the manifest body"),
) -> None:
    """Probe the manifest for one page and print the classification."""
    candidate = manifest_url_for(url)
    if candidate is None:
        typer.secho(f"ⓘ Not an HTTP(S) page, nothing to probe: {url}", fg="yellow", err=True)
        raise typer.Exit(2)

    async def probe() -> Any:
        async with open_watcher(_config(ctx)) as watcher:
            return await watcher.fetcher.fetch(candidate)

    result = _run(probe())
    _echo_json(result.to_dict())
    if show_content and result.content is not None:
        typer.echo(result.content)
    if not result.confirmed:
        raise typer.Exit(1)


@app.command()
def replay(
    ctx: typer.Context,
    events_file: Path = typer.Argument(..., help="JSONL file with one tab event per line"),
) -> None:
    """Replay recorded tab events and print the resulting per-tab state."""
    events = []
    try:
        with events_file.open("r", encoding="utf-8") as handle:
            for line_no, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    events.append(parse_event(json.loads(line)))
                except ValueError as e:
                    raise ValueError(f"line {line_no}: {e}") from e
    except (OSError, ValueError) as e:
        typer.secho(f"✗ Cannot read events: {e}", fg="red", err=True)
        raise typer.Exit(1)

    async def run() -> list[dict[str, Any]]:
        async with open_watcher(_config(ctx)) as watcher:
            for event in events:
                await watcher.dispatch(event)
            coordinator = watcher.coordinator
            summary = []
            for tab_id in coordinator.tracked_tabs:
                data = await watcher.request({"type": "getTabData", "tabId": tab_id})
                summary.append(
                    {
                        "tabId": tab_id,
                        "status": coordinator.status_of(tab_id).value,
                        "manifest": data.get("url"),
                    }
                )
            return summary

    _echo_json(_run(run()))


# ============================================================================
# History
# ============================================================================


@history_app.command("list")
def history_list(
    ctx: typer.Context,
    full: bool = typer.Option(False, "--full", help="Include manifest content"),
) -> None:
    """Print the history, most recent first."""

    async def run() -> list[dict[str, Any]]:
        async with open_watcher(_config(ctx)) as watcher:
            return await watcher.request({"type": "get-history"})

    rows = _run(run())
    if not full:
        rows = [{"url": row["url"], "domain": row["domain"]} for row in rows]
    _echo_json(rows)


@history_app.command("clear")
def history_clear(ctx: typer.Context) -> None:
    """Remove every history entry."""

    async def run() -> Any:
        async with open_watcher(_config(ctx)) as watcher:
            return await watcher.request({"type": "clear-history"})

    _run(run())
    typer.echo("✓ History cleared")


# ============================================================================
# Settings
# ============================================================================


@settings_app.command("show")
def settings_show(ctx: typer.Context) -> None:
    """Print the effective settings (defaults merged)."""

    async def run() -> Any:
        async with open_watcher(_config(ctx)) as watcher:
            return await watcher.request({"type": "get-settings"})

    _echo_json(_run(run()))


@settings_app.command("set")
def settings_set(
    ctx: typer.Context,
    history_count: Optional[int] = typer.Option(
        None, "--history-count", help="History capacity (clamped to 1..50)"
    ),
    render_markdown: Optional[bool] = typer.Option(
        None, "--render-markdown/--raw-markdown", help="Render manifests as markdown"
    ),
    show_frontmatter: Optional[bool] = typer.Option(
        None, "--show-frontmatter/--hide-frontmatter", help="Show frontmatter blocks"
    ),
) -> None:
    """Update one or more settings, keeping the others unchanged."""

    async def run() -> Any:
        async with open_watcher(_config(ctx)) as watcher:
            current = await watcher.request({"type": "get-settings"})
            if history_count is not None:
                current["historyCount"] = history_count
            if render_markdown is not None:
                current["renderMarkdown"] = render_markdown
            if show_frontmatter is not None:
                current["showFrontmatter"] = show_frontmatter
            await watcher.request({"type": "save-settings", "settings": current})
            return await watcher.request({"type": "get-settings"})

    _echo_json(_run(run()))


# ============================================================================
# Config
# ============================================================================


@config_app.command("print-merged")
def config_print_merged(ctx: typer.Context) -> None:
    """Print configuration after file → environment → CLI precedence."""
    _echo_json(_config(ctx).model_dump(mode="json"))


@config_app.command("schema")
def config_schema() -> None:
    """Print the JSON Schema of the configuration."""
    _echo_json(export_config_schema())


if __name__ == "__main__":  # pragma: no cover
    app()
