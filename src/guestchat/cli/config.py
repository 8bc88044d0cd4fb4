"""Configuration CLI commands."""

from __future__ import annotations

import click
from rich.table import Table

from guestchat.cli.ui import console
from guestchat.config import effective_chatbot_provider, get_settings


@click.group()
def config() -> None:
    """Inspect configuration."""


@config.command("show")
def config_show() -> None:
    """Show the effective client configuration."""
    cfg = get_settings()
    table = Table(title="guestchat Configuration", show_lines=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Environment", cfg.environment)
    table.add_row("API Base URL", cfg.api_base_url)
    table.add_row("API Token", "set" if cfg.api_token else "not set")
    table.add_row("Chatbot Provider", effective_chatbot_provider(cfg))
    table.add_row("Onboarding Mode", str(cfg.onboarding_mode))
    table.add_row("Auto-start Delay", f"{cfg.auto_start_delay_seconds}s")
    table.add_row(
        "Auto-save Cadence",
        f"{cfg.autosave_message_interval} messages / {cfg.autosave_interval_seconds:g}s",
    )
    table.add_row("Checkpoint Dir", str(cfg.checkpoint_path))

    console.print(table)


def register(cli: click.Group) -> None:
    cli.add_command(config)
