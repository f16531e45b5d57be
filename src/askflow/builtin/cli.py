"""Builtin CLI command plugin."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any

import typer

from askflow.config import get_settings
from askflow.engine import CycleResult, Outcome
from askflow.hookspecs import hookimpl
from askflow.projection import project
from askflow.render import Renderer
from askflow.store.pending import PendingStateFile
from askflow.streaming import Fragment
from askflow.submission import Submission

if TYPE_CHECKING:
    from askflow.framework import AskflowFramework


def _load_framework(home: Path | None) -> AskflowFramework:
    from askflow.framework import AskflowFramework

    framework = AskflowFramework(get_settings(home))
    framework.load_hooks()
    return framework


def ask(
    message: str = typer.Argument("", help="User input; leave empty with --skip"),
    chat_id: str = typer.Option("local", "--chat-id", "-c", help="Conversation id"),
    skip: bool = typer.Option(False, "--skip", help="Dismiss the pending inquiry and answer right away"),
    related: bool = typer.Option(False, "--related", help="Submit the message as a related query"),
    home: Path | None = typer.Option(None, "--home", help="Chat storage directory"),  # noqa: B008
) -> None:
    """Run one submission through the orchestration engine."""

    framework = _load_framework(home)
    if skip:
        submission = Submission(skip=True)
    elif related:
        submission = Submission.related(message)
    else:
        submission = Submission.text(message)

    renderer = Renderer()
    pending_root = framework.settings.pending_root()
    pending = PendingStateFile(pending_root) if pending_root is not None else None
    result = asyncio.run(_ask(framework, chat_id, submission, renderer, pending))
    if result.outcome is Outcome.INQUIRED:
        if pending is None:
            renderer.info("[dim]Pass --home to keep this conversation between calls.[/dim]")
        else:
            renderer.info("[dim]Reply with another `ask`, or pass --skip to answer directly.[/dim]")
    elif result.outcome is not Outcome.ANSWERED:
        renderer.error(f"{result.outcome.value}: {result.error or 'no answer'}")
        raise typer.Exit(1)


async def _ask(
    framework: AskflowFramework,
    chat_id: str,
    submission: Submission,
    renderer: Renderer,
    pending: PendingStateFile | None = None,
) -> CycleResult:
    engine = framework.create_engine()
    state = pending.load(chat_id) if pending is not None else None
    if state is None:
        state = await engine.log.load_for(chat_id)
    if submission.skip and not state.turns:
        renderer.error(f"nothing pending in {chat_id!r} to answer")
        raise typer.Exit(1)
    handle = engine.submit(state, submission)

    shown: tuple[Fragment, ...] = ()
    async for snapshot in handle.publisher.fragments():
        fresh = snapshot[len(shown) :] if snapshot[: len(shown)] == shown else snapshot
        for fragment in fresh:
            renderer.fragment(fragment)
        shown = snapshot

    result = await handle.result()
    if pending is not None:
        if result.outcome is Outcome.INQUIRED:
            pending.save(result.conversation)
        elif result.committed:
            pending.clear(chat_id)
    if result.outcome is Outcome.ANSWERED:
        renderer.assistant_message(result.conversation.turns[-1].content)
    return result


def history(
    chat_id: str = typer.Argument("local", help="Conversation id"),
    shared: bool = typer.Option(False, "--shared", help="Hide related-query turns as on a shared page"),
    home: Path | None = typer.Option(None, "--home", help="Chat storage directory"),  # noqa: B008
) -> None:
    """Replay a stored conversation."""

    framework = _load_framework(home)
    log = framework.create_log()
    renderer = Renderer()
    chat = asyncio.run(log.load_chat(chat_id))
    if chat is None:
        renderer.error(f"no stored chat {chat_id!r}")
        raise typer.Exit(1)

    renderer.info(f"[bold]{chat.title}[/bold] [dim]{chat.path}[/dim]")
    entries = project(
        chat.conversation,
        redact_related_for_shared_view=shared,
        presentable_tools=framework.settings.presentable_tools,
    )
    for entry in entries:
        renderer.view_entry(entry)


def chats(
    home: Path | None = typer.Option(None, "--home", help="Chat storage directory"),  # noqa: B008
) -> None:
    """List stored conversations."""

    framework = _load_framework(home)
    store = framework.resolve_collaborators().store
    names = store.list_chats()
    if not names:
        typer.echo("(no stored chats)")
        return
    for name in names:
        typer.echo(name)


def list_hooks(
    home: Path | None = typer.Option(None, "--home", help="Chat storage directory"),  # noqa: B008
) -> None:
    """Show hook implementation mapping."""

    framework = _load_framework(home)
    report = framework.hook_report()
    if not report:
        typer.echo("(no hook implementations)")
        return
    for hook_name, plugin_names in report.items():
        typer.echo(f"{hook_name}: {', '.join(plugin_names)}")


class CliPlugin:
    @hookimpl
    def register_cli_commands(self, app: Any) -> None:
        app.command("ask")(ask)
        app.command("history")(history)
        app.command("chats")(chats)
        app.command("hooks")(list_hooks)
