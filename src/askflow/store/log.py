"""Message log store: the durable, append-only conversation record."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

from loguru import logger

from askflow.conversation import Conversation, Role, Turn, TurnKind
from askflow.errors import PersistenceError
from askflow.store.backends import ChatStore, StoredChat

TITLE_MAX_LENGTH = 100
UNTITLED = "Untitled"

type CommitObserver = Callable[[StoredChat], None]


class ConversationLog:
    """Load, append to, and commit conversations over a chat store."""

    def __init__(
        self,
        backend: ChatStore,
        *,
        user_id: str = "",
        on_committed: CommitObserver | None = None,
    ) -> None:
        self._backend = backend
        self._user_id = user_id
        self._on_committed = on_committed

    @property
    def backend(self) -> ChatStore:
        return self._backend

    async def load_for(self, conversation_id: str) -> Conversation:
        """Return an independent copy of the stored conversation, or an empty one."""

        stored = await asyncio.to_thread(self._backend.load, conversation_id)
        if stored is None:
            return Conversation(conversation_id=conversation_id)
        return replace(stored.conversation, conversation_id=conversation_id).without_sentinel()

    async def load_chat(self, conversation_id: str) -> StoredChat | None:
        return await asyncio.to_thread(self._backend.load, conversation_id)

    @staticmethod
    def append(state: Conversation, turn: Turn) -> Conversation:
        return state.append(turn)

    async def commit(self, state: Conversation) -> bool:
        """Persist the whole turn sequence once it holds an answer.

        Returns False without touching the backend when there is no answer turn.
        Raises PersistenceError when the backend fails.
        """

        if not state.has_answer():
            logger.debug("log.commit.skipped conversation={} reason=no_answer", state.conversation_id)
            return False

        try:
            previous = await asyncio.to_thread(self._backend.load, state.conversation_id)
            chat = self._build_chat(state, previous)
            await asyncio.to_thread(self._backend.save, chat)
        except Exception as exc:
            raise PersistenceError(f"failed to commit conversation {state.conversation_id}: {exc}") from exc

        logger.info("log.commit.saved conversation={} turns={}", state.conversation_id, len(state))
        if self._on_committed is not None:
            self._on_committed(chat)
        return True

    def _build_chat(self, state: Conversation, previous: StoredChat | None) -> StoredChat:
        sealed = state.without_sentinel().append(end_turn(state.conversation_id))
        created_at = previous.created_at if previous is not None else datetime.now(UTC)
        return StoredChat(
            id=state.conversation_id,
            title=chat_title(state),
            path=f"/chat/{state.conversation_id}",
            created_at=created_at,
            user_id=self._user_id,
            conversation=sealed,
        )


def end_turn(conversation_id: str) -> Turn:
    # Deterministic id keeps repeated commits of the same content identical.
    return Turn(id=f"{conversation_id}:end", role=Role.ASSISTANT, content="end", kind=TurnKind.END)


def chat_title(state: Conversation) -> str:
    if not state.turns:
        return UNTITLED
    try:
        payload = json.loads(state.turns[0].content)
    except json.JSONDecodeError:
        return UNTITLED
    if not isinstance(payload, dict):
        return UNTITLED
    value = payload.get("input")
    if not isinstance(value, str) or not value:
        return UNTITLED
    return value[:TITLE_MAX_LENGTH]
