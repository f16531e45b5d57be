"""Conversation persistence."""

from askflow.store.backends import ChatStore, FileChatStore, InMemoryChatStore, StoredChat
from askflow.store.log import ConversationLog
from askflow.store.pending import PendingStateFile

__all__ = ["ChatStore", "ConversationLog", "FileChatStore", "InMemoryChatStore", "PendingStateFile", "StoredChat"]
