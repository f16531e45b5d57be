from __future__ import annotations

import pytest
from fakes import FakeRouterBackend

from askflow.config import Settings
from askflow.router import TaskRouter
from askflow.store.backends import InMemoryChatStore
from askflow.store.log import ConversationLog


@pytest.fixture
def settings() -> Settings:
    return Settings(answer_delay_seconds=0, max_attempts=5)


@pytest.fixture
def chat_store() -> InMemoryChatStore:
    return InMemoryChatStore()


@pytest.fixture
def log(chat_store: InMemoryChatStore) -> ConversationLog:
    return ConversationLog(chat_store, user_id="tester")


@pytest.fixture
def router_backend() -> FakeRouterBackend:
    return FakeRouterBackend()


@pytest.fixture
def router(router_backend: FakeRouterBackend) -> TaskRouter:
    return TaskRouter(router_backend)
