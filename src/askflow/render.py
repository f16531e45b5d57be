"""Terminal renderer for fragments and view entries."""

from __future__ import annotations

import json
import threading

from rich.console import Console
from rich.markup import escape

from askflow.projection import AnswerDisplay, InquiryDisplay, ToolResultDisplay, UserDisplay, ViewEntry
from askflow.streaming import Fragment


class Renderer:
    """CLI renderer using Rich for terminal output."""

    def __init__(self, console: Console | None = None) -> None:
        self.console: Console = console or Console()
        self._print_lock = threading.Lock()

    def info(self, message: str) -> None:
        self._print(message)

    def error(self, message: str) -> None:
        self._print(f"[bold red]Error:[/bold red] {escape(message)}")

    def user_message(self, message: str) -> None:
        self._print(f"[bold cyan]You:[/bold cyan] {escape(message)}")

    def assistant_message(self, message: str) -> None:
        self._print(f"[bold yellow]Askflow:[/bold yellow] {escape(message)}")

    def fragment(self, fragment: Fragment) -> None:
        """Render one streamed UI fragment."""
        payload = fragment.payload if isinstance(fragment.payload, dict) else {}
        match fragment.kind:
            case "spinner":
                self._print("[dim]working...[/dim]")
            case "inquiry":
                self._print(f"[bold magenta]Question:[/bold magenta] {escape(str(payload.get('question', '')))}")
            case "tool":
                self._print(f"[dim]tool {escape(str(payload.get('tool_name', '?')))} returned a result[/dim]")
            case "error":
                self.error(str(fragment.payload))
            case _:
                # Answer text is rendered once the text stream completes.
                pass

    def view_entry(self, entry: ViewEntry) -> None:
        """Render one projected history entry."""
        match entry.renderable:
            case UserDisplay(text=text):
                self.user_message(text)
            case InquiryDisplay(content=content):
                self._print(f"[magenta]{escape(content)}[/magenta]")
            case AnswerDisplay(content=content):
                self.assistant_message(str(content.value or ""))
            case ToolResultDisplay(tool_name=tool_name, data=data):
                preview = json.dumps(data, ensure_ascii=False)[:120]
                self._print(f"[dim]\\[{escape(tool_name)}] {escape(preview)}[/dim]")
            case None:
                return

    def _print(self, message: str) -> None:
        with self._print_lock:
            self.console.print(message)
