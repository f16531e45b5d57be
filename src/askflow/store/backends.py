"""Chat persistence backends."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote, unquote

from loguru import logger

from askflow.conversation import Conversation

CHAT_FILE_SUFFIX = ".json"


@dataclass(frozen=True)
class StoredChat:
    """Persisted snapshot of one committed conversation."""

    id: str
    title: str
    path: str
    created_at: datetime
    user_id: str
    conversation: Conversation
    meta: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "path": self.path,
            "created_at": self.created_at.isoformat(),
            "user_id": self.user_id,
            "messages": self.conversation.to_payload(),
            "meta": dict(self.meta),
        }

    @staticmethod
    def from_payload(payload: object) -> StoredChat | None:
        if not isinstance(payload, dict):
            return None
        chat_id = payload.get("id")
        if not isinstance(chat_id, str) or not chat_id:
            return None
        try:
            created_at = datetime.fromisoformat(str(payload.get("created_at")))
        except ValueError:
            created_at = datetime.fromtimestamp(0, UTC)
        meta = payload.get("meta")
        return StoredChat(
            id=chat_id,
            title=str(payload.get("title") or "Untitled"),
            path=str(payload.get("path") or f"/chat/{chat_id}"),
            created_at=created_at,
            user_id=str(payload.get("user_id") or ""),
            conversation=Conversation.from_payload(chat_id, payload.get("messages")),
            meta=dict(meta) if isinstance(meta, dict) else {},
        )


class ChatStore(Protocol):
    """Persistence backend contract. Implementations are synchronous and thread-safe."""

    def save(self, chat: StoredChat) -> None: ...

    def load(self, chat_id: str) -> StoredChat | None: ...

    def list_chats(self) -> list[str]: ...

    def delete(self, chat_id: str) -> None: ...


class InMemoryChatStore:
    """Process-local store, mainly for tests and one-shot runs."""

    def __init__(self) -> None:
        self._chats: dict[str, StoredChat] = {}
        self._lock = threading.Lock()
        self.saves = 0

    def save(self, chat: StoredChat) -> None:
        with self._lock:
            self._chats[chat.id] = replace(chat, meta=dict(chat.meta))
            self.saves += 1

    def load(self, chat_id: str) -> StoredChat | None:
        with self._lock:
            return self._chats.get(chat_id)

    def list_chats(self) -> list[str]:
        with self._lock:
            return sorted(self._chats)

    def delete(self, chat_id: str) -> None:
        with self._lock:
            self._chats.pop(chat_id, None)


class FileChatStore:
    """One JSON document per chat, replaced atomically on every save."""

    def __init__(self, root: Path) -> None:
        self._root = root.expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def save(self, chat: StoredChat) -> None:
        path = self._chat_file(chat.id)
        tmp_path = path.with_suffix(f"{CHAT_FILE_SUFFIX}.tmp")
        data = json.dumps(chat.to_payload(), ensure_ascii=False, indent=2)
        with self._lock:
            tmp_path.write_text(data, encoding="utf-8")
            tmp_path.replace(path)

    def load(self, chat_id: str) -> StoredChat | None:
        path = self._chat_file(chat_id)
        with self._lock:
            if not path.exists():
                return None
            raw = path.read_text(encoding="utf-8")
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("chat_store.corrupt chat={} path={}", chat_id, path)
            return None
        return StoredChat.from_payload(payload)

    def list_chats(self) -> list[str]:
        with self._lock:
            names = [unquote(path.name.removesuffix(CHAT_FILE_SUFFIX)) for path in self._root.glob(f"*{CHAT_FILE_SUFFIX}")]
        return sorted(names)

    def delete(self, chat_id: str) -> None:
        with self._lock:
            self._chat_file(chat_id).unlink(missing_ok=True)

    def _chat_file(self, chat_id: str) -> Path:
        return self._root / f"{quote(chat_id, safe='')}{CHAT_FILE_SUFFIX}"
