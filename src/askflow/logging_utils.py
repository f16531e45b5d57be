"""Runtime logging helpers."""

from __future__ import annotations

import sys
from typing import Literal

import loguru
from loguru import logger
from rich import get_console
from rich.console import Console
from rich.logging import RichHandler

LogProfile = Literal["default", "chat"]

DEFAULT_FORMAT = "{time:HH:mm:ss.SSS} | {level:<7} | {extra[conversation]} | {name}:{line} | {message}"
CHAT_FORMAT = "[{extra[conversation]}] {message}"


def _inject_conversation(record: loguru.Record) -> None:
    from askflow.engine import current_conversation

    record["extra"]["conversation"] = current_conversation()


def configure_logging(*, profile: LogProfile = "default", level: str = "INFO", console: Console | None = None) -> None:
    """Route loguru output for one process.

    The `chat` profile shares the Rich console the CLI renders to, so log
    lines do not tear streamed fragments apart.
    """

    logger.remove()
    logger.configure(patcher=_inject_conversation)
    if profile == "chat":
        handler = RichHandler(
            console=console or get_console(),
            show_time=False,
            show_path=False,
            markup=False,
            rich_tracebacks=False,
        )
        logger.add(handler, level=level.upper(), format=CHAT_FORMAT, backtrace=False, diagnose=False)
        return
    logger.add(sys.stderr, level=level.upper(), format=DEFAULT_FORMAT, backtrace=False, diagnose=False)
