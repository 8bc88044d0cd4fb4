"""Shared CLI UI helpers (Rich formatting)."""

from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.table import Table

from guestchat.notifications import Notice
from guestchat.session.models import ConnectionStatus, Message, MessageStatus, Sender

console = Console()


def format_connection(status: ConnectionStatus) -> str:
    """Return colorized connection status for terminal output."""
    colors = {
        ConnectionStatus.CONNECTING: "yellow",
        ConnectionStatus.CONNECTED: "green",
        ConnectionStatus.ERROR: "red",
    }
    color = colors.get(status, "white")
    return f"[{color}]{status.value}[/{color}]"


def render_message(message: Message) -> None:
    if message.sender == Sender.USER:
        marker = " [red](not delivered)[/red]" if message.status == MessageStatus.FAILED else ""
        console.print(f"[bold cyan]you[/bold cyan] {message.text}{marker}", highlight=False)
    else:
        console.print(f"[bold magenta]bot[/bold magenta] {message.text}", highlight=False)


def render_transcript(messages: Iterable[Message]) -> None:
    for message in messages:
        render_message(message)


def render_quick_replies(replies: list[str]) -> None:
    if replies:
        console.print("[grey62]quick replies: " + " | ".join(replies) + "[/grey62]", highlight=False)


def render_progress(progress: int, phase: str, keywords: int) -> None:
    console.print(
        f"[grey62]progress {progress}% - phase {phase} - {keywords} keywords[/grey62]",
        highlight=False,
    )


def render_notice(notice: Notice) -> None:
    style = "red" if notice.is_error else "green"
    console.print(f"[{style}]{notice.title}[/{style}] {notice.description}", highlight=False)


def render_key_values(title: str, rows: Iterable[tuple[str, str]]) -> None:
    table = Table(title=title, show_lines=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    for key, value in rows:
        table.add_row(key, value)
    console.print(table)
