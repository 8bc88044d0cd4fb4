"""Local checkpoint CLI commands."""

from __future__ import annotations

import click

from guestchat.cli.ui import console, render_key_values
from guestchat.config import settings
from guestchat.session.checkpoints import CheckpointStore


def _store() -> CheckpointStore:
    return CheckpointStore(settings.checkpoint_path)


@click.group()
def checkpoints() -> None:
    """Inspect or clear local session checkpoints."""


@checkpoints.command("show")
@click.argument("campaign_id")
def checkpoints_show(campaign_id: str) -> None:
    """Show the progress and paused checkpoints for CAMPAIGN_ID."""
    store = _store()
    progress = store.load_progress(campaign_id)
    paused = store.load_paused(campaign_id)
    if progress is None and paused is None:
        console.print(f"No checkpoints for campaign {campaign_id}")
        return

    if progress is not None:
        render_key_values(
            "Progress checkpoint",
            [
                ("Conversation", progress.conversation_id or "-"),
                ("Progress", f"{progress.progress}%"),
                ("Phase", progress.phase),
                ("Last saved", progress.last_saved.isoformat(timespec="seconds")),
            ],
        )
    if paused is not None:
        render_key_values(
            "Paused checkpoint",
            [
                ("Conversation", paused.conversation_id),
                ("Paused at", paused.paused_at.isoformat(timespec="seconds")),
                ("Messages", str(paused.message_count)),
                ("Progress", f"{paused.progress}%"),
            ],
        )


@checkpoints.command("clear")
@click.argument("campaign_id")
def checkpoints_clear(campaign_id: str) -> None:
    """Delete the local checkpoints for CAMPAIGN_ID."""
    _store().clear_all(campaign_id)
    console.print(f"Cleared checkpoints for campaign {campaign_id}")


def register(cli: click.Group) -> None:
    cli.add_command(checkpoints)
