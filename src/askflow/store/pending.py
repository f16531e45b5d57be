"""Uncommitted conversation state carried between CLI invocations."""

from __future__ import annotations

import json
from pathlib import Path
from urllib.parse import quote

from loguru import logger

from askflow.conversation import Conversation

PENDING_FILE_SUFFIX = ".pending.json"


class PendingStateFile:
    """Holds the state of a cycle that ended on an inquiry.

    Chats are only committed once answered, so the question asked back to the
    user lives here until the next submission for the same conversation.
    """

    def __init__(self, root: Path) -> None:
        self._root = root.expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    def save(self, state: Conversation) -> None:
        path = self._path(state.conversation_id)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(state.to_payload(), ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(path)

    def load(self, conversation_id: str) -> Conversation | None:
        path = self._path(conversation_id)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("pending.corrupt conversation={} path={}", conversation_id, path)
            return None
        return Conversation.from_payload(conversation_id, payload).without_sentinel()

    def clear(self, conversation_id: str) -> None:
        self._path(conversation_id).unlink(missing_ok=True)

    def _path(self, conversation_id: str) -> Path:
        return self._root / f"{quote(conversation_id, safe='')}{PENDING_FILE_SUFFIX}"
