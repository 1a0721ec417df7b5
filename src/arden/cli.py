"""Typer-based CLI for Arden."""

import gzip
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import requests
import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress
from rich.table import Table

from . import __version__
from .agents import AGENTS
from .client import DeliveryClient, DeliveryConfig, TransportError
from .config import SettingsStore, StateError
from .detect import detect_all
from .importers.amp import DEFAULT_THREADS_DIR, sync_amp_threads
from .importers.claude import DEFAULT_CLAUDE_DIR, DEFAULT_LIMIT, sync_claude_sessions
from .importers.summary import ImportSummary
from .models.delivery import DeliveryResult
from .models.event import ULID_PATTERN
from .sanitize import mask_value
from .schema import build_event, validate_event, validate_events
from .stats import MODES, StatsClient
from .sync_state import SyncStateTracker

app = typer.Typer(
    name="arden",
    help="Arden CLI - track AI coding agent usage on ardenstats.com",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class CliState:
    store: SettingsStore
    host: Optional[str] = None
    token: Optional[str] = None

    def delivery_config(self) -> DeliveryConfig:
        return DeliveryConfig(
            host=self.store.get_host(self.host),
            token=self.store.get_api_token(self.token),
        )

    def user_id(self, cli_user: Optional[str] = None) -> Optional[str]:
        user = self.store.get_user_id(cli_user)
        if user and not ULID_PATTERN.fullmatch(user):
            err_console.print(f"[yellow]Ignoring invalid user ID (not a ULID): {user}[/yellow]")
            return None
        return user


@app.callback()
def main(
    ctx: typer.Context,
    host: str = typer.Option(
        None,
        "--host",
        "-H",
        help="API host URL (default: ARDEN_HOST env, settings file, or https://ardenstats.com)",
    ),
    token: str = typer.Option(
        None,
        "--token",
        "-t",
        help="Bearer token for authentication (default: ARDEN_API_TOKEN env or settings file)",
    ),
    settings_file: str = typer.Option(
        None,
        "--settings",
        help="Path to settings file (default: ~/.arden/settings.json)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable debug logging",
    ),
):
    """Detect AI coding agents and ship their usage to Arden."""
    store = SettingsStore(Path(settings_file) if settings_file else None)
    level = logging.DEBUG if verbose else _LOG_LEVELS[store.resolve().log_level]
    logging.basicConfig(level=level, format="%(name)s: %(message)s")
    ctx.obj = CliState(store=store, host=host, token=token)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj


def _read_json_source(source: Optional[str]) -> Any:
    """Parse JSON from a file path (``.gz`` supported) or stdin (``-`` or None)."""
    if source is None or source == "-":
        text = sys.stdin.read()
        if not text.strip():
            raise ValueError("No data received from stdin")
    elif source.endswith(".gz"):
        with gzip.open(source, "rt", encoding="utf-8") as f:
            text = f.read()
    else:
        text = Path(source).read_text(encoding="utf-8")
    return json.loads(text)


def _parse_key_values(pairs: list[str]) -> dict[str, Any]:
    """Parse ``key=value`` arguments; numeric values become numbers."""
    data: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid key=value pair: {pair}")
        try:
            data[key] = int(value)
        except ValueError:
            try:
                data[key] = float(value)
            except ValueError:
                data[key] = value
    return data


def _print_events(events: list) -> None:
    console.print_json(json.dumps([event.to_wire() for event in events]))


def _print_delivery_result(result: DeliveryResult) -> None:
    if result.status == "accepted":
        console.print(f"[green]All {result.accepted_count} event(s) sent successfully[/green]")
    elif result.status == "partial":
        console.print(
            f"[yellow]Partial success. Accepted: {result.accepted_count}, "
            f"Rejected: {result.rejected_count}[/yellow]"
        )
    else:
        console.print(f"[red]All events rejected. Count: {result.rejected_count}[/red]")

    for item in result.rejected:
        console.print(f"  [red]Event {item.index}:[/red] {escape(item.error)}")
    if result.event_ids:
        console.print(f"[dim]Event IDs: {', '.join(result.event_ids)}[/dim]")


def _deliver(state: CliState, events: list) -> None:
    client = DeliveryClient(state.delivery_config())
    try:
        result = client.send_events(events)
    except TransportError as e:
        console.print(f"[red]Error: Failed to send events: {escape(str(e))}[/red]")
        if e.delivered is not None and e.delivered.chunks_sent:
            console.print(
                f"[yellow]{e.delivered.chunks_sent} chunk(s) were delivered before the failure "
                f"({e.delivered.accepted_count} event(s) accepted)[/yellow]"
            )
        raise typer.Exit(code=1)

    _print_delivery_result(result)
    if result.status == "rejected":
        raise typer.Exit(code=1)


events_app = typer.Typer(help="Send and validate telemetry events")
app.add_typer(events_app, name="events")


@events_app.command("send")
def events_send(
    ctx: typer.Context,
    pairs: Optional[list[str]] = typer.Argument(
        None,
        help="Extra data as key=value pairs",
    ),
    agent: str = typer.Option(..., "--agent", help="Agent ID (e.g. A-1F2E)"),
    user: str = typer.Option(None, "--user", help="User ULID"),
    bid: int = typer.Option(0, "--bid", help="Bid amount in micro-cents"),
    mult: int = typer.Option(0, "--mult", help="Bid multiplier"),
    time: int = typer.Option(None, "--time", help="Timestamp in epoch milliseconds"),
    data: str = typer.Option(
        None,
        "--data",
        help="Data payload as JSON string, @file, or - for stdin",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and print but do not send"),
    print_event: bool = typer.Option(False, "--print", help="Pretty-print the event payload"),
):
    """Send a single telemetry event."""
    state = _state(ctx)
    try:
        payload: Any = {}
        if data:
            if data == "-":
                payload = _read_json_source("-")
            elif data.startswith("@"):
                payload = _read_json_source(data[1:])
            else:
                payload = json.loads(data)
        if pairs:
            if not isinstance(payload, dict):
                raise ValueError("key=value pairs can only be merged into an object payload")
            payload = {**payload, **_parse_key_values(pairs)}

        event = validate_event(
            build_event(
                agent,
                user=state.store.get_user_id(user),
                time=time,
                bid=bid,
                mult=mult,
                data=payload,
            )
        )
    except (ValueError, OSError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if print_event:
        _print_events([event])
    if dry_run:
        console.print("[green]Dry run - event validated successfully[/green]")
        return

    _deliver(state, [event])


@events_app.command("validate")
def events_validate(
    file: str = typer.Option(
        None,
        "--file",
        "-f",
        help="JSON file to validate (supports .gz), or - for stdin (default)",
    ),
    print_events: bool = typer.Option(False, "--print", help="Pretty-print the validated events"),
):
    """Validate telemetry events without sending them."""
    try:
        raw = _read_json_source(file)
        candidates = raw if isinstance(raw, list) else [raw]
        events = validate_events(candidates)
    except (ValueError, OSError) as e:
        console.print(f"[red]Validation failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if print_events:
        _print_events(events)

    agents = {event.agent for event in events}
    users = {event.user for event in events if event.user}
    total_bid = sum(event.bid for event in events)
    console.print(f"[green]All {len(events)} event(s) are valid[/green]")
    console.print(
        f"[dim]Summary: {len(agents)} agents, {len(users)} users, {total_bid} total bid[/dim]"
    )


def _send_from_source(ctx: typer.Context, source: Optional[str], dry_run: bool, print_events: bool) -> None:
    state = _state(ctx)
    try:
        raw = _read_json_source(source)
        candidates = raw if isinstance(raw, list) else [raw]
        console.print(f"[dim]Processing {len(candidates)} event(s)[/dim]")
        events = validate_events(candidates)
    except (ValueError, OSError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if print_events:
        _print_events(events)
    if dry_run:
        console.print(f"[green]Dry run - {len(events)} event(s) validated successfully[/green]")
        return

    _deliver(state, events)


@events_app.command("batch")
def events_batch(
    ctx: typer.Context,
    file: str = typer.Option(..., "--file", "-f", help="JSON file containing events (supports .gz)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and print but do not send"),
    print_events: bool = typer.Option(False, "--print", help="Pretty-print the event payloads"),
):
    """Send multiple telemetry events from a JSON file."""
    _send_from_source(ctx, file, dry_run, print_events)


@events_app.command("pipe")
def events_pipe(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and print but do not send"),
    print_events: bool = typer.Option(False, "--print", help="Pretty-print the event payloads"),
):
    """Send telemetry events from stdin (JSON object or array)."""
    _send_from_source(ctx, "-", dry_run, print_events)


def _print_import_summary(summary: ImportSummary, noun: str) -> None:
    if summary.sources_skipped:
        console.print(
            f"[dim]Skipped {summary.sources_skipped} already synced {noun}(s) "
            f"(use --force to re-sync)[/dim]"
        )
    if summary.sources_failed:
        console.print(f"[red]{summary.sources_failed} {noun}(s) failed[/red]")
        for item in summary.errors:
            console.print(f"  [red]x[/red] {escape(item['source'])}: {escape(item['error'])}")
    console.print(
        f"[green]Synced {summary.sources_synced} {noun}(s), "
        f"{summary.events_sent} event(s) accepted[/green]"
    )


claude_app = typer.Typer(help="Claude Code commands")
app.add_typer(claude_app, name="claude")


@claude_app.command("sync")
def claude_sync(
    ctx: typer.Context,
    claude_dir: str = typer.Option(
        str(DEFAULT_CLAUDE_DIR),
        "--claude-dir",
        help="Path to Claude data directory",
    ),
    limit: int = typer.Option(DEFAULT_LIMIT, "--limit", help="Maximum lines to read per session file"),
    force: bool = typer.Option(False, "--force", help="Re-sync all files, ignoring cached state"),
):
    """Sync Claude Code usage from local JSONL session files."""
    state = _state(ctx)
    tracker = SyncStateTracker(state.store, "claude_sync")
    client = DeliveryClient(state.delivery_config())

    with Progress(console=console, transient=True) as progress:
        task = progress.add_task("Syncing sessions", total=None)
        try:
            summary = sync_claude_sessions(
                claude_dir=Path(claude_dir).expanduser(),
                client=client,
                tracker=tracker,
                limit=limit,
                force=force,
                user=state.user_id(),
                on_source_done=lambda _path: progress.advance(task),
            )
        except FileNotFoundError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            console.print("[yellow]Try --claude-dir <path> if Claude is installed elsewhere[/yellow]")
            raise typer.Exit(code=1)

    if summary.sources_found == 0:
        console.print("[dim]No Claude Code session files found[/dim]")
        return
    _print_import_summary(summary, "session file")
    if summary.sources_failed:
        raise typer.Exit(code=1)


amp_app = typer.Typer(help="Amp commands")
app.add_typer(amp_app, name="amp")


@amp_app.command("sync")
def amp_sync(
    ctx: typer.Context,
    threads: str = typer.Option(
        str(DEFAULT_THREADS_DIR),
        "--threads",
        help="Path to Amp file-changes directory",
    ),
    force: bool = typer.Option(False, "--force", help="Re-sync all threads, ignoring cached state"),
    content_checksums: bool = typer.Option(
        False,
        "--content-checksums",
        help="Detect changes by file content instead of modification time and size",
    ),
):
    """Sync Amp threads from the file-changes directory."""
    state = _state(ctx)
    tracker = SyncStateTracker(state.store, "amp_sync")
    client = DeliveryClient(state.delivery_config())

    with Progress(console=console, transient=True) as progress:
        task = progress.add_task("Syncing threads", total=None)
        try:
            summary = sync_amp_threads(
                threads_dir=Path(threads).expanduser(),
                client=client,
                tracker=tracker,
                force=force,
                user=state.user_id(),
                content_checksums=content_checksums,
                on_source_done=lambda _path: progress.advance(task),
            )
        except FileNotFoundError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            console.print("[yellow]Try --threads <path> to specify the correct directory[/yellow]")
            raise typer.Exit(code=1)

    if summary.sources_found == 0:
        console.print("[dim]No Amp thread directories found[/dim]")
        return
    _print_import_summary(summary, "thread")
    if summary.sources_failed:
        raise typer.Exit(code=1)


agents_app = typer.Typer(help="Agent listing and leaderboard")
app.add_typer(agents_app, name="agents")


@agents_app.command("list")
def agents_list(
    ctx: typer.Context,
    limit: int = typer.Option(50, "--limit", help="Limit the number of results"),
    offset: int = typer.Option(0, "--offset", help="Offset for pagination"),
    as_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
    local: bool = typer.Option(False, "--local", help="List the built-in agent registry instead"),
):
    """List agents known to Arden."""
    if local:
        table = Table(title=f"{len(AGENTS)} Known Agent(s)")
        table.add_column("Agent ID", style="cyan")
        table.add_column("Name")
        table.add_column("Wire ID", style="dim")
        for agent in AGENTS:
            table.add_row(agent.agent_id, agent.name, agent.wire_id)
        console.print(table)
        return

    state = _state(ctx)
    try:
        page = StatsClient(state.store.get_host(state.host)).list_agents(limit=limit, offset=offset)
    except (requests.RequestException, ValueError) as e:
        console.print(f"[red]Error: Failed to fetch agents: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if as_json:
        console.print_json(page.model_dump_json())
        return

    table = Table(title=f"Found {page.total_count} agents (showing {len(page.agents)})")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Agent ID", style="magenta")
    table.add_column("Slug")
    table.add_column("Active")
    table.add_column("Created", style="dim")
    for i, agent in enumerate(page.agents, 1):
        table.add_row(
            str(i + page.offset),
            agent.name,
            agent.agent_id,
            agent.slug,
            "Yes" if agent.is_active else "No",
            agent.created_at[:10],
        )
    console.print(table)

    if page.total_count > page.offset + page.limit:
        console.print(f"[dim]Use --offset {page.offset + page.limit} to see more results.[/dim]")


@agents_app.command("leaderboard")
def agents_leaderboard(
    ctx: typer.Context,
    period: str = typer.Option("7d", "--period", "-p", help="Time period (today, 7d, 30d)"),
    mode: str = typer.Option("real", "--mode", "-m", help=f"Data mode ({', '.join(MODES)})"),
    as_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """Show the top agents leaderboard."""
    state = _state(ctx)
    try:
        board = StatsClient(state.store.get_host(state.host)).leaderboard(period=period, mode=mode)
    except (requests.RequestException, ValueError) as e:
        console.print(f"[red]Error: Failed to fetch agents leaderboard: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if as_json:
        console.print_json(board.model_dump_json())
        return

    period_display = {"7d": "7 days", "30d": "30 days", "today": "today"}.get(period, "7 days")
    if not board.data:
        console.print("[dim]No data available for the selected period.[/dim]")
        return

    table = Table(title=f"Top Agents - {period_display} ({board.mode})")
    table.add_column("Rank", style="dim", no_wrap=True)
    table.add_column("Agent", style="cyan")
    table.add_column("Runs", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Agent ID", style="magenta")
    for entry in board.data:
        color = "green" if entry.change >= 0 else "red"
        table.add_row(
            str(entry.rank),
            entry.name,
            str(entry.runs),
            f"[{color}]{entry.change:+d}[/{color}]",
            entry.agent_id,
        )
    console.print(table)


@agents_app.command("detect")
def agents_detect():
    """Detect AI coding agents installed on this machine."""
    table = Table(title="Installed Agents")
    table.add_column("Agent", style="cyan")
    table.add_column("Present")
    table.add_column("Binary", style="dim")
    table.add_column("Version")
    for name, detection in detect_all().items():
        table.add_row(
            name,
            "[green]yes[/green]" if detection.present else "[dim]no[/dim]",
            detection.bin or "-",
            detection.version or "-",
        )
    console.print(table)


config_app = typer.Typer(help="Settings commands")
app.add_typer(config_app, name="config")

_SETTABLE_KEYS = ("api_token", "user_id", "host", "log_level", "default_format", "interactive", "telemetry_enabled")


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display the current configuration (secrets masked)."""
    state = _state(ctx)
    settings = state.store.resolve()

    table = Table(title=f"Arden CLI {__version__} configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key in _SETTABLE_KEYS:
        value = getattr(settings, key)
        if value is None:
            display = "[dim](not set)[/dim]"
        elif key == "api_token":
            display = mask_value(value)
        else:
            display = str(value)
        table.add_row(key, display)

    for section, label in (("claude_sync", "Claude files synced"), ("amp_sync", "Amp threads synced")):
        tracker = SyncStateTracker(state.store, section)
        try:
            count = len(tracker.records())
        except StateError:
            count = 0
        table.add_row(label, f"{count} (last: {tracker.last_sync() or 'never'})")

    console.print(table)
    console.print(f"[dim]Settings file: {state.store.path}[/dim]")


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help=f"One of: {', '.join(_SETTABLE_KEYS)}"),
    value: str = typer.Argument(..., help="New value"),
):
    """Set a configuration value in the settings file."""
    if key not in _SETTABLE_KEYS:
        console.print(f"[red]Error: Unknown key '{key}'. Valid keys: {', '.join(_SETTABLE_KEYS)}[/red]")
        raise typer.Exit(code=1)

    parsed: Any = value
    if key in ("interactive", "telemetry_enabled"):
        parsed = value.strip().lower() in {"1", "true", "yes", "y", "on"}

    state = _state(ctx)
    try:
        state.store.update(**{key: parsed})
    except StateError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    display = mask_value(value) if key == "api_token" else value
    console.print(f"[green]+[/green] Set {key} = {display}")


if __name__ == "__main__":
    app()
