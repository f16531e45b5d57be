"""Builtin persistence hook implementation."""

from __future__ import annotations

from askflow.config import Settings
from askflow.hookspecs import hookimpl
from askflow.store.backends import ChatStore, FileChatStore, InMemoryChatStore


class ChatStorePlugin:
    @hookimpl
    def provide_chat_store(self, settings: Settings) -> ChatStore:
        root = settings.chat_root()
        if root is None:
            return InMemoryChatStore()
        return FileChatStore(root)
