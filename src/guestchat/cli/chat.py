"""Interactive interview CLI commands."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

import anyio
import click

from guestchat.cli.ui import (
    console,
    format_connection,
    render_message,
    render_notice,
    render_progress,
    render_quick_replies,
    render_transcript,
)
from guestchat.config import Settings, get_settings
from guestchat.session.models import ConnectionStatus, StartupState
from guestchat.session.orchestrator import ConversationOrchestrator, PreconditionError
from guestchat.transport.errors import ChatbotError, ConfigurationError, ConversationNotFoundError
from guestchat.transport.factory import get_chatbot_client

HELP_TEXT = "commands: /pause /complete /restart /summary /status /quit"

LineReader = Callable[[], Optional[str]]


def _effective_settings(fake: bool) -> Settings:
    cfg = get_settings()
    if fake:
        cfg = cfg.model_copy(update={"use_fake_providers": True})
    return cfg


def _read_line() -> Optional[str]:
    try:
        return click.prompt("you", default="", show_default=False, prompt_suffix="> ")
    except click.Abort:
        return None


async def run_chat(
    campaign_id: str,
    *,
    onboarding: bool,
    cfg: Settings,
    read_line: LineReader = _read_line,
) -> None:
    orchestrator = ConversationOrchestrator.from_settings(
        campaign_id, onboarding=onboarding, config=cfg, notify=render_notice
    )
    async with orchestrator:
        state = await orchestrator.initialize()
        if state == StartupState.ALREADY_COMPLETE:
            console.print("[green]Interview already complete.[/green] Your media kit has been generated.")
            return

        task = orchestrator.auto_start_task
        if task is not None:
            console.print("[grey62]Starting a new conversation...[/grey62]")
            await task.wait()

        if orchestrator.connection_status == ConnectionStatus.ERROR:
            raise click.ClickException("Unable to connect to the chat service.")
        if orchestrator.conversation_id is None:
            raise click.ClickException("No conversation is available for this campaign.")

        render_transcript(orchestrator.messages)
        render_quick_replies(orchestrator.current_quick_replies)
        console.print(f"[grey62]{HELP_TEXT}[/grey62]")

        while True:
            line = await anyio.to_thread.run_sync(read_line)
            if line is None:
                break
            text = line.strip()
            if not text:
                continue
            if text.startswith("/"):
                if not await _run_command(orchestrator, text):
                    break
                continue
            if not await _send(orchestrator, text):
                break


async def _send(orchestrator: ConversationOrchestrator, text: str) -> bool:
    try:
        result = await orchestrator.send_message(text)
    except ConversationNotFoundError:
        console.print("[red]This conversation is no longer available.[/red]")
        return False
    except ChatbotError:
        console.print("[red]Failed to send message. Please try again.[/red]")
        return True
    except PreconditionError as exc:
        console.print(f"[red]{exc}[/red]")
        return True

    if result.bot_message is not None:
        render_message(result.bot_message)
        render_quick_replies(result.bot_message.quick_replies or [])
    render_progress(orchestrator.progress, orchestrator.phase, orchestrator.keywords_count)
    if result.ready_for_completion:
        console.print("[green]Your profile is ready.[/green] Type /complete to generate your media kit.")
    return True


async def _run_command(orchestrator: ConversationOrchestrator, command: str) -> bool:
    """Run a slash command; returns False when the session should end."""
    name = command.split()[0].lower()
    try:
        if name == "/quit":
            return False
        if name == "/pause":
            await orchestrator.pause_conversation()
            return False
        if name == "/complete":
            await orchestrator.complete_conversation()
            return False
        if name == "/restart":
            await orchestrator.restart_conversation()
            render_transcript(orchestrator.messages)
            return True
        if name == "/summary":
            summary = await orchestrator.get_summary()
            if summary is None:
                console.print("[red]Summary unavailable.[/red]")
            else:
                console.print_json(json.dumps(summary))
            return True
        if name == "/status":
            console.print(
                f"conversation {orchestrator.conversation_id} - "
                f"{format_connection(orchestrator.connection_status)}"
            )
            render_progress(orchestrator.progress, orchestrator.phase, orchestrator.keywords_count)
            return True
    except PreconditionError as exc:
        console.print(f"[red]{exc}[/red]")
        return True
    except ChatbotError:
        console.print(f"[red]{name[1:]} failed. Please try again.[/red]")
        return True

    console.print(f"[grey62]{HELP_TEXT}[/grey62]")
    return True


@click.command()
@click.argument("campaign_id")
@click.option("--onboarding/--no-onboarding", default=None, help="Check for a completed interview first.")
@click.option("--fake", is_flag=True, help="Use the in-memory fake backend.")
def chat(campaign_id: str, onboarding: bool | None, fake: bool) -> None:
    """Run the onboarding interview for CAMPAIGN_ID interactively."""
    cfg = _effective_settings(fake)
    mode = cfg.onboarding_mode if onboarding is None else onboarding

    async def _run() -> None:
        await run_chat(campaign_id, onboarding=mode, cfg=cfg)

    try:
        anyio.run(_run)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


@click.command()
@click.argument("campaign_id")
@click.argument("conversation_id")
@click.option("--fake", is_flag=True, help="Use the in-memory fake backend.")
def summary(campaign_id: str, conversation_id: str, fake: bool) -> None:
    """Print the backend summary for CONVERSATION_ID."""
    cfg = _effective_settings(fake)

    async def _run() -> dict[str, Any]:
        async with get_chatbot_client(cfg) as client:
            return await client.summary(campaign_id, conversation_id)

    try:
        payload = anyio.run(_run)
    except (ChatbotError, ConfigurationError) as exc:
        raise click.ClickException(f"Summary unavailable: {exc}") from exc
    console.print_json(json.dumps(payload))


def register(cli: click.Group) -> None:
    cli.add_command(chat)
    cli.add_command(summary)
