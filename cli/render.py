from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

_TIER_COLORS = {
    "empty": typer.colors.BLUE,
    "light": typer.colors.GREEN,
    "moderate": typer.colors.YELLOW,
    "busy": typer.colors.RED,
    "full": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_dashboard(payload: Dict[str, Any]) -> None:
    echo_heading("Room Occupancy")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("last_refreshed_at", payload.get("last_refreshed_at")),
            ("rejected_rows", payload.get("rejected_rows", 0)),
        ]
    )

    failure = payload.get("failure")
    if failure:
        typer.secho(
            f"Last refresh failed ({failure.get('kind')}): {failure.get('message')}",
            fg=typer.colors.RED,
        )

    summary = payload.get("summary") or {}
    typer.echo()
    echo_heading("Summary")
    echo_key_values(
        [
            ("rooms", summary.get("room_count", 0)),
            ("total_occupancy", summary.get("total_occupancy", 0)),
            ("stale", summary.get("stale_count", 0)),
        ]
    )
    tier_counts = summary.get("tier_counts") or {}
    for tier, count in tier_counts.items():
        typer.echo(f"  - {tier}: {count}")

    rooms = payload.get("rooms") or []
    typer.echo()
    echo_heading("Rooms")
    if not rooms:
        typer.echo("No rooms with data.")
        return

    width = max(len(str(room.get("room_id", ""))) for room in rooms)
    for room in rooms:
        tier = room.get("tier", "")
        line = (
            f"  {str(room.get('room_id', '')).ljust(width)}  "
            f"{room.get('count', 0):>4}  "
            f"{typer.style(str(tier).ljust(8), fg=_TIER_COLORS.get(tier))}  "
            f"{room.get('relative_label', '')}"
        )
        if room.get("is_stale"):
            line += "  [stale]"
        typer.echo(line)
