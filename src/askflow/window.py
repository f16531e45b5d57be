"""Bounded context selection."""

from __future__ import annotations

from dataclasses import dataclass

from askflow.conversation import Conversation, Role, Turn, TurnKind

MAX_CONTEXT = 10
_EXCLUDED_KINDS = frozenset({TurnKind.FOLLOWUP, TurnKind.RELATED, TurnKind.END})


@dataclass(frozen=True)
class ContextMessage:
    """One `{role, content}` pair sent to a reasoning collaborator."""

    role: Role
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


type BoundedContext = tuple[ContextMessage, ...]


def build_context(state: Conversation, max_context: int = MAX_CONTEXT) -> BoundedContext:
    """Return the most recent conversational turns, oldest first."""

    messages = [ContextMessage(role=turn.role, content=turn.content) for turn in state.turns if _in_context(turn)]
    overflow = max(len(messages) - max_context, 0)
    return tuple(messages[overflow:])


def _in_context(turn: Turn) -> bool:
    if turn.role is Role.TOOL:
        return False
    return turn.kind not in _EXCLUDED_KINDS
