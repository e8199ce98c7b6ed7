"""Scheduled delivery commands."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer

from relay.cli.console import console, create_table, dim, error, success, warning
from relay.cli.context import open_runtime
from relay.scheduling.types import DeliveryStatus, ScheduledDelivery, TickResult

STATUS_STYLES = {
    DeliveryStatus.PENDING: "cyan",
    DeliveryStatus.SENT: "green",
    DeliveryStatus.CANCELLED: "dim",
    DeliveryStatus.FAILED: "red",
}


def _format_countdown(scheduled_at: datetime, now: datetime | None = None) -> str:
    """Format a countdown string until ``scheduled_at``."""
    now = now or datetime.now(UTC)
    if scheduled_at <= now:
        return "[green]now[/green]"

    total_seconds = int((scheduled_at - now).total_seconds())
    if total_seconds < 60:
        return f"in {total_seconds}s"

    total_minutes = total_seconds // 60
    if total_minutes < 60:
        return f"in {total_minutes}m"

    hours = total_minutes // 60
    minutes = total_minutes % 60
    if hours < 24:
        if minutes:
            return f"in {hours}h {minutes}m"
        return f"in {hours}h"

    days = hours // 24
    hours = hours % 24
    if hours:
        return f"in {days}d {hours}h"
    return f"in {days}d"


def register(app: typer.Typer) -> None:
    """Register the schedule command."""

    @app.command()
    def schedule(
        ctx: typer.Context,
        action: Annotated[
            str | None,
            typer.Argument(help="Action: list, cancel, tick, stats"),
        ] = None,
        team: Annotated[
            str | None,
            typer.Option("--team", "-t", help="Slack workspace (team) ID"),
        ] = None,
        user: Annotated[
            str | None,
            typer.Option("--user", "-u", help="Slack user ID"),
        ] = None,
        delivery_id: Annotated[
            int | None,
            typer.Option("--id", "-i", help="Delivery ID for cancel"),
        ] = None,
        config: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Manage scheduled Slack messages.

        Examples:
            relay schedule list -t T123 -u U456         # List a user's deliveries
            relay schedule cancel -i 7 -t T123 -u U456  # Cancel a pending delivery
            relay schedule tick                         # Dispatch everything due now
            relay schedule stats                        # Counts per status
        """
        if action is None:
            typer.echo(ctx.get_help())
            raise typer.Exit(0)

        if action == "list":
            team, user = _require_owner(team, user, action)
            asyncio.run(_schedule_list(config, team, user))

        elif action == "cancel":
            if delivery_id is None:
                error("--id is required for cancel")
                raise typer.Exit(1)
            team, user = _require_owner(team, user, action)
            asyncio.run(_schedule_cancel(config, delivery_id, team, user))

        elif action == "tick":
            asyncio.run(_schedule_tick(config))

        elif action == "stats":
            asyncio.run(_schedule_stats(config))

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: list, cancel, tick, stats")
            raise typer.Exit(1)


def _require_owner(team: str | None, user: str | None, action: str) -> tuple[str, str]:
    if not team or not user:
        error(f"--team and --user are required for {action}")
        raise typer.Exit(1)
    return team, user


def _message_preview(delivery: ScheduledDelivery) -> str:
    message = delivery.message.replace("\n", " ")
    return message[:40] + "..." if len(message) > 40 else message


async def _schedule_list(config: Path | None, team: str, user: str) -> None:
    """List deliveries owned by one workspace user."""
    async with open_runtime(config) as runtime:
        deliveries = await runtime.deliveries.list_for_owner(team, user)

    if not deliveries:
        warning("No scheduled messages found")
        return

    table = create_table(
        "Scheduled messages",
        [
            ("ID", "dim"),
            ("Channel", ""),
            ("Message", ""),
            ("Scheduled (UTC)", ""),
            ("Status", ""),
            ("When", ""),
        ],
    )
    now = datetime.now(UTC)
    for delivery in deliveries:
        style = STATUS_STYLES[delivery.status]
        when = (
            _format_countdown(delivery.scheduled_at, now)
            if delivery.status is DeliveryStatus.PENDING
            else delivery.error or ""
        )
        table.add_row(
            str(delivery.id),
            delivery.channel_name or delivery.channel_id,
            _message_preview(delivery),
            delivery.scheduled_at.strftime("%Y-%m-%d %H:%M"),
            f"[{style}]{delivery.status.value}[/{style}]",
            when,
        )

    console.print(table)
    dim(f"Total: {len(deliveries)} message(s)")


async def _schedule_cancel(
    config: Path | None, delivery_id: int, team: str, user: str
) -> None:
    """Cancel a pending delivery."""
    async with open_runtime(config) as runtime:
        cancelled = await runtime.deliveries.cancel(delivery_id, team, user)

    if not cancelled:
        error(f"No pending message {delivery_id} for {team}/{user}")
        raise typer.Exit(1)
    success(f"Cancelled message {delivery_id}")


async def _schedule_tick(config: Path | None) -> None:
    """Run a single scheduler pass."""
    async with open_runtime(config) as runtime:
        result: TickResult = await runtime.watcher.run_once()

    if result.due == 0:
        dim("Nothing due")
        return

    sent = result.count(DeliveryStatus.SENT)
    failed = result.count(DeliveryStatus.FAILED)
    console.print(f"Due: {result.due}  Sent: {sent}  Failed: {failed}")
    if result.errors:
        warning(f"{result.errors} delivery(s) could not be recorded")


async def _schedule_stats(config: Path | None) -> None:
    """Show delivery counts per status."""
    async with open_runtime(config) as runtime:
        counts = await runtime.deliveries.count_by_status()

    table = create_table("Deliveries", [("Status", ""), ("Count", {"justify": "right"})])
    for status, count in counts.items():
        style = STATUS_STYLES[status]
        table.add_row(f"[{style}]{status.value}[/{style}]", str(count))
    console.print(table)
