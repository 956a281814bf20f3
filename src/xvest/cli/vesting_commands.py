#!/usr/bin/env python3
"""
xvest CLI Commands - Vesting Ledger Interface

Provides CLI equivalents for the vesting API endpoints:
- Schedule inspection and vested-amount queries
- Schedule creation, claims and revocation
- Allow-list and gate administration
- Event history
- Running a local API node
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any

import click
import requests
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from xvest.core.config import load_config
from xvest.core.vesting_exceptions import ConfigurationError

logger = logging.getLogger(__name__)
console = Console()

_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}
_DURATION_RE = re.compile(r"^(\d+)([smhdw]?)$")


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


class DurationType(click.ParamType):
    """Seconds, optionally with an s/m/h/d/w suffix (``30d`` -> 2592000)."""

    name = "duration"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> int:
        if isinstance(value, int):
            return value
        match = _DURATION_RE.match(str(value).strip().lower())
        if not match:
            self.fail(f"{value!r} is not a duration like 3600, 90m or 30d", param, ctx)
        amount, unit = match.groups()
        return int(amount) * _DURATION_UNITS[unit or "s"]


DURATION = DurationType()


class VestingClient:
    """Client for vesting API operations."""

    def __init__(self, node_url: str, timeout: float = 30.0):
        self.node_url = node_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _request(self, method: str, endpoint: str, **kwargs) -> dict[str, Any]:
        """Make HTTP request to a vesting endpoint."""
        url = f"{self.node_url}/{endpoint.lstrip('/')}"
        logger.debug("Vesting request: %s %s", method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error("Vesting API error: %s", e)
            raise click.ClickException(f"Vesting API error: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.ok:
            message = payload.get("error") or f"HTTP {response.status_code}"
            code = payload.get("code", "http_error")
            raise click.ClickException(f"{message} ({code})")

        logger.debug("Vesting response: status=%d", response.status_code)
        return payload

    def get_schedule(self, recipient: str) -> dict[str, Any]:
        return self._request("GET", f"/vesting/schedules/{recipient}")

    def get_vested(self, recipient: str) -> dict[str, Any]:
        return self._request("GET", f"/vesting/schedules/{recipient}/vested")

    def create_schedule(
        self,
        caller: str,
        recipient: str,
        total_amount: int,
        cliff_duration: int,
        vesting_duration: int,
        start_time: int | None = None,
    ) -> dict[str, Any]:
        body = {
            "caller": caller,
            "recipient": recipient,
            "total_amount": total_amount,
            "cliff_duration": cliff_duration,
            "vesting_duration": vesting_duration,
        }
        if start_time:
            body["start_time"] = start_time
        return self._request("POST", "/vesting/schedules", json=body)

    def claim(self, caller: str) -> dict[str, Any]:
        return self._request("POST", "/vesting/claim", json={"caller": caller})

    def revoke(self, caller: str, recipient: str) -> dict[str, Any]:
        return self._request("POST", "/vesting/revoke", json={"caller": caller, "recipient": recipient})

    def approve(self, caller: str, recipient: str) -> dict[str, Any]:
        return self._request("POST", "/vesting/allowlist", json={"caller": caller, "recipient": recipient})

    def remove(self, caller: str, recipient: str) -> dict[str, Any]:
        return self._request("DELETE", f"/vesting/allowlist/{recipient}", json={"caller": caller})

    def set_paused(self, caller: str, paused: bool) -> dict[str, Any]:
        endpoint = "/vesting/pause" if paused else "/vesting/unpause"
        return self._request("POST", endpoint, json={"caller": caller})

    def get_events(self, event_type: str | None = None, recipient: str | None = None) -> dict[str, Any]:
        params = {}
        if event_type:
            params["type"] = event_type
        if recipient:
            params["recipient"] = recipient
        return self._request("GET", "/vesting/events", params=params)


def _emit(ctx: click.Context, data: dict[str, Any]) -> bool:
    """Print raw JSON when --json was given. Returns True if handled."""
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(data, indent=2))
        return True
    return False


@click.group()
@click.option("--api-url", envvar="XVEST_API_URL", help="Vesting API base URL")
@click.option("--timeout", type=float, help="HTTP timeout in seconds")
@click.option("--json", "json_output", is_flag=True, help="Print raw JSON responses")
@click.pass_context
def vesting(ctx: click.Context, api_url: str | None, timeout: float | None, json_output: bool):
    """Token vesting ledger commands."""
    try:
        config = load_config()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["json_output"] = json_output
    ctx.obj["client"] = VestingClient(
        api_url or config.api_url,
        timeout=timeout or config.api_timeout,
    )


@vesting.command("schedule")
@click.argument("recipient")
@click.pass_context
def show_schedule(ctx: click.Context, recipient: str):
    """
    Show a recipient's vesting schedule.

    Example:
        xvest schedule 0xabc...
    """
    client: VestingClient = ctx.obj["client"]
    try:
        with console.status("[bold cyan]Fetching schedule..."):
            data = client.get_schedule(recipient)
        if _emit(ctx, data):
            return

        schedule = data["schedule"]
        table = Table(show_header=False, box=box.ROUNDED)
        table.add_row("[bold cyan]Recipient", schedule["recipient"])
        table.add_row("[bold green]Total", str(schedule["total_amount"]))
        table.add_row("[bold green]Claimed", str(schedule["amount_claimed"]))
        table.add_row("[bold yellow]Vested", str(data["vested_amount"]))
        table.add_row("[bold yellow]Claimable", str(data["claimable_amount"]))
        table.add_row("[cyan]Start", str(schedule["start_time"]))
        table.add_row("[cyan]Cliff", f"{schedule['cliff_duration']}s")
        table.add_row("[cyan]Duration", f"{schedule['vesting_duration']}s")
        table.add_row("[bold red]Revoked", "yes" if schedule["revoked"] else "no")
        console.print(Panel(table, title="[bold green]Vesting Schedule", border_style="green"))
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@vesting.command("vested")
@click.argument("recipient")
@click.pass_context
def show_vested(ctx: click.Context, recipient: str):
    """Show the amount vested for a recipient right now."""
    client: VestingClient = ctx.obj["client"]
    try:
        data = client.get_vested(recipient)
        if _emit(ctx, data):
            return
        console.print(f"[bold green]Vested:[/] {data['vested_amount']}")
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@vesting.command("create")
@click.option("--caller", required=True, help="Administrator funding the schedule")
@click.option("--recipient", required=True, help="Approved recipient address")
@click.option("--amount", required=True, type=click.IntRange(min=1), help="Total units to vest")
@click.option("--cliff", default="0", type=DURATION, help="Cliff duration (e.g. 30d)")
@click.option("--duration", required=True, type=DURATION, help="Vesting duration (e.g. 120d)")
@click.option("--start", type=click.IntRange(min=0), help="Start timestamp (default: now)")
@click.pass_context
def create_schedule(
    ctx: click.Context,
    caller: str,
    recipient: str,
    amount: int,
    cliff: int,
    duration: int,
    start: int | None,
):
    """
    Create a vesting schedule.

    Example:
        xvest create --caller 0xadmin --recipient 0xabc --amount 1000 --cliff 30d --duration 120d
    """
    client: VestingClient = ctx.obj["client"]
    try:
        data = client.create_schedule(caller, recipient, amount, cliff, duration, start)
        if _emit(ctx, data):
            return
        console.print(
            f"[bold green]Schedule created[/] for {data['schedule']['recipient']} "
            f"({data['schedule']['total_amount']} units)"
        )
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@vesting.command("claim")
@click.option("--caller", required=True, help="Recipient claiming its own vested tokens")
@click.pass_context
def claim(ctx: click.Context, caller: str):
    """Claim vested tokens."""
    client: VestingClient = ctx.obj["client"]
    try:
        data = client.claim(caller)
        if _emit(ctx, data):
            return
        console.print(f"[bold green]Claimed[/] {data['claimed']} units")
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@vesting.command("revoke")
@click.option("--caller", required=True, help="Administrator revoking the schedule")
@click.option("--recipient", required=True, help="Recipient whose schedule is revoked")
@click.confirmation_option(prompt="Revocation is permanent. Continue?")
@click.pass_context
def revoke(ctx: click.Context, caller: str, recipient: str):
    """Revoke a schedule and reclaim its unvested units."""
    client: VestingClient = ctx.obj["client"]
    try:
        data = client.revoke(caller, recipient)
        if _emit(ctx, data):
            return
        console.print(f"[bold yellow]Revoked[/] {recipient}; reclaimed {data['reclaimed']} units")
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@vesting.command("approve")
@click.option("--caller", required=True, help="Administrator")
@click.option("--recipient", required=True, help="Recipient to approve")
@click.pass_context
def approve(ctx: click.Context, caller: str, recipient: str):
    """Add a recipient to the allow-list."""
    client: VestingClient = ctx.obj["client"]
    try:
        data = client.approve(caller, recipient)
        if _emit(ctx, data):
            return
        console.print(f"[bold green]Approved[/] {data['recipient']}")
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@vesting.command("remove")
@click.option("--caller", required=True, help="Administrator")
@click.option("--recipient", required=True, help="Recipient to remove")
@click.pass_context
def remove(ctx: click.Context, caller: str, recipient: str):
    """Remove a recipient from the allow-list."""
    client: VestingClient = ctx.obj["client"]
    try:
        data = client.remove(caller, recipient)
        if _emit(ctx, data):
            return
        state = "Removed" if data["removed"] else "Not on allow-list:"
        console.print(f"[bold yellow]{state}[/] {data['recipient']}")
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@vesting.command("pause")
@click.option("--caller", required=True, help="Administrator")
@click.option("--resume", is_flag=True, help="Reopen the gate instead of closing it")
@click.pass_context
def pause(ctx: click.Context, caller: str, resume: bool):
    """Close (or with --resume reopen) the operations gate."""
    client: VestingClient = ctx.obj["client"]
    try:
        data = client.set_paused(caller, paused=not resume)
        if _emit(ctx, data):
            return
        state = "paused" if data["paused"] else "accepting operations"
        console.print(f"[bold cyan]Ledger is {state}[/]")
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@vesting.command("events")
@click.option("--type", "event_type", help="Event type, e.g. TokensClaimed")
@click.option("--recipient", help="Filter by recipient")
@click.option("--limit", default=20, type=click.IntRange(min=1), help="Most recent N events")
@click.pass_context
def events(ctx: click.Context, event_type: str | None, recipient: str | None, limit: int):
    """Show vesting event history."""
    client: VestingClient = ctx.obj["client"]
    try:
        data = client.get_events(event_type, recipient)
        if _emit(ctx, data):
            return

        table = Table(title="Vesting Events", box=box.SIMPLE)
        table.add_column("Type", style="cyan")
        table.add_column("Recipient")
        table.add_column("Amount", justify="right", style="green")
        table.add_column("Actor")
        table.add_column("Timestamp", justify="right")
        for event in data["events"][-limit:]:
            table.add_row(
                event["event_type"],
                event["recipient"] or "-",
                str(event["amount"]),
                event["actor"] or "-",
                str(int(event["timestamp"])),
            )
        console.print(table)
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@vesting.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8545, type=int, show_default=True)
@click.pass_context
def serve(ctx: click.Context, host: str, port: int):
    """Run a vesting API node bootstrapped from XVEST_* settings."""
    from xvest.api.app import create_app
    from xvest.core.logging_config import setup_from_config

    config = ctx.obj["config"]
    setup_from_config(config)
    try:
        app = create_app(config=config)
    except ConfigurationError as exc:
        _handle_cli_error(exc)
        return
    console.print(f"[bold green]Serving vesting API on http://{host}:{port}[/]")
    app.run(host=host, port=port)
