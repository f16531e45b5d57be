"""Turns and the append-only conversation value."""

from __future__ import annotations

import secrets
import string
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from loguru import logger

from askflow.errors import ConversationError

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_SIZE = 7


def new_id(size: int = _ID_SIZE) -> str:
    """Return a short opaque random token."""

    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(size))


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class TurnKind(StrEnum):
    INPUT = "input"
    INPUT_RELATED = "input_related"
    INQUIRY = "inquiry"
    ANSWER = "answer"
    TOOL = "tool"
    END = "end"
    FOLLOWUP = "followup"
    RELATED = "related"


@dataclass(frozen=True)
class Turn:
    """One immutable logged conversational event."""

    id: str
    role: Role
    content: str
    kind: TurnKind | None = None
    tool_name: str | None = None
    group_id: str | None = None

    def __post_init__(self) -> None:
        if self.tool_name is not None and self.role is not Role.TOOL:
            raise ConversationError(f"tool_name is only valid on tool turns, got role={self.role}")

    @property
    def is_sentinel(self) -> bool:
        return self.kind is TurnKind.END

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "role": self.role.value, "content": self.content}
        if self.kind is not None:
            payload["type"] = self.kind.value
        if self.tool_name is not None:
            payload["name"] = self.tool_name
        if self.group_id is not None:
            payload["group_id"] = self.group_id
        return payload

    @staticmethod
    def from_payload(payload: object) -> Turn | None:
        if not isinstance(payload, Mapping):
            return None
        turn_id = payload.get("id")
        content = payload.get("content")
        if not isinstance(turn_id, str) or not turn_id:
            return None
        if not isinstance(content, str):
            return None
        try:
            role = Role(payload.get("role"))
        except ValueError:
            return None
        raw_kind = payload.get("type")
        try:
            kind = TurnKind(raw_kind) if raw_kind is not None else None
        except ValueError:
            kind = None
        tool_name = payload.get("name") if role is Role.TOOL else None
        group_id = payload.get("group_id")
        return Turn(
            id=turn_id,
            role=role,
            content=content,
            kind=kind,
            tool_name=tool_name if isinstance(tool_name, str) else None,
            group_id=group_id if isinstance(group_id, str) else None,
        )


@dataclass(frozen=True)
class Conversation:
    """Ordered turn sequence for one conversation.

    Every change produces a new value; the receiver is never mutated, so a
    submission cycle can hand its copy around without locks.
    """

    conversation_id: str
    turns: tuple[Turn, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.turns)

    def append(self, turn: Turn) -> Conversation:
        if self.turns and self.turns[-1].is_sentinel:
            raise ConversationError(f"conversation {self.conversation_id} is sealed by an end turn")
        if any(existing.id == turn.id for existing in self.turns):
            raise ConversationError(f"duplicate turn id {turn.id!r} in conversation {self.conversation_id}")
        return replace(self, turns=(*self.turns, turn))

    def extend(self, turns: Iterable[Turn]) -> Conversation:
        state = self
        for turn in turns:
            state = state.append(turn)
        return state

    def has_answer(self) -> bool:
        return any(turn.kind is TurnKind.ANSWER for turn in self.turns)

    def without_sentinel(self) -> Conversation:
        if self.turns and self.turns[-1].is_sentinel:
            return replace(self, turns=self.turns[:-1])
        return self

    def to_payload(self) -> list[dict[str, Any]]:
        return [turn.to_payload() for turn in self.turns]

    @classmethod
    def from_payload(cls, conversation_id: str, payload: object) -> Conversation:
        turns: list[Turn] = []
        seen: set[str] = set()
        items = payload if isinstance(payload, list) else []
        for index, item in enumerate(items):
            turn = Turn.from_payload(item)
            if turn is None or turn.id in seen:
                logger.warning("conversation.turn.dropped conversation={} index={}", conversation_id, index)
                continue
            seen.add(turn.id)
            turns.append(turn)
        # A sentinel in the middle of a stored sequence is stale, keep only the tail one.
        cleaned = [turn for i, turn in enumerate(turns) if not turn.is_sentinel or i == len(turns) - 1]
        return cls(conversation_id=conversation_id, turns=tuple(cleaned))
