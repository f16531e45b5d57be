"""Replay a conversation into presentation-ready view entries."""

from __future__ import annotations

import json
from collections.abc import Collection
from dataclasses import dataclass
from typing import Any

from loguru import logger

from askflow.conversation import Conversation, Role, Turn, TurnKind
from askflow.streaming import StreamableValue

DEFAULT_PRESENTABLE_TOOLS = frozenset({"retrieve"})


@dataclass(frozen=True)
class UserDisplay:
    text: str


@dataclass(frozen=True)
class InquiryDisplay:
    content: str


@dataclass(frozen=True)
class AnswerDisplay:
    content: StreamableValue[str]


@dataclass(frozen=True)
class ToolResultDisplay:
    tool_name: str
    data: Any


type Renderable = UserDisplay | InquiryDisplay | AnswerDisplay | ToolResultDisplay


@dataclass(frozen=True)
class ViewEntry:
    """One presentation record; `renderable` is None for an empty entry."""

    id: str
    renderable: Renderable | None = None
    is_generating: StreamableValue[bool] | None = None
    is_collapsed: StreamableValue[bool] | None = None


def project(
    state: Conversation,
    *,
    redact_related_for_shared_view: bool = False,
    presentable_tools: Collection[str] = DEFAULT_PRESENTABLE_TOOLS,
) -> list[ViewEntry]:
    """Fold turns into view entries. Never raises on malformed stored content."""

    entries: list[ViewEntry] = []
    for turn in state.turns:
        if turn.kind is None or turn.kind is TurnKind.END:
            continue
        if redact_related_for_shared_view and turn.kind is TurnKind.RELATED:
            continue
        try:
            entries.append(_project_turn(turn, presentable_tools))
        except Exception:
            logger.opt(exception=True).warning("projection.turn_failed turn={} kind={}", turn.id, turn.kind)
            entries.append(ViewEntry(id=turn.id))
    return entries


def _project_turn(turn: Turn, presentable_tools: Collection[str]) -> ViewEntry:
    match turn.role, turn.kind:
        case Role.USER, TurnKind.INPUT | TurnKind.INPUT_RELATED:
            field_name = "input" if turn.kind is TurnKind.INPUT else "related_query"
            payload = _decode(turn)
            if not isinstance(payload, dict) or not isinstance(payload.get(field_name), str):
                return ViewEntry(id=turn.id)
            return ViewEntry(id=turn.id, renderable=UserDisplay(payload[field_name]))
        case Role.USER, TurnKind.INQUIRY:
            return ViewEntry(id=turn.id, renderable=InquiryDisplay(turn.content))
        case Role.ASSISTANT, TurnKind.ANSWER:
            answer = StreamableValue.completed(turn.content, key="answer")
            return ViewEntry(id=turn.id, renderable=AnswerDisplay(answer))
        case Role.TOOL, _:
            payload = _decode(turn)
            if payload is _UNDECODABLE or turn.tool_name not in presentable_tools:
                return ViewEntry(id=turn.id)
            return ViewEntry(
                id=turn.id,
                renderable=ToolResultDisplay(tool_name=str(turn.tool_name), data=payload),
                is_collapsed=StreamableValue.completed(True, key="is_collapsed"),
            )
        case _:
            return ViewEntry(id=turn.id)


_UNDECODABLE: Any = object()


def _decode(turn: Turn) -> Any:
    try:
        return json.loads(turn.content)
    except json.JSONDecodeError:
        logger.debug("projection.decode_failed turn={}", turn.id)
        return _UNDECODABLE
