"""guestchat command-line interface.

A terminal harness around the session orchestrator: run an interview, inspect
local checkpoints, fetch summaries.
"""

from __future__ import annotations

import click

from guestchat.app_version import get_app_version
from guestchat.observability import init_observability


@click.group()
@click.version_option(version=get_app_version(), prog_name="guestchat")
def cli() -> None:
    """guestchat - AI-assisted guest onboarding interviews."""
    init_observability()


def _register_commands() -> None:
    from guestchat.cli import chat, checkpoints, config

    chat.register(cli)
    checkpoints.register(cli)
    config.register(cli)


_register_commands()


if __name__ == "__main__":
    cli()
