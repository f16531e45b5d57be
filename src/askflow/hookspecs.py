"""Pluggy hook namespace and framework hook specifications."""

from __future__ import annotations

from typing import Any

import pluggy

from askflow.collaborators import ActionExecutor, InquiryGenerator, TaskRouterBackend
from askflow.config import Settings
from askflow.store.backends import ChatStore, StoredChat

ASKFLOW_HOOK_NAMESPACE = "askflow"
hookspec = pluggy.HookspecMarker(ASKFLOW_HOOK_NAMESPACE)
hookimpl = pluggy.HookimplMarker(ASKFLOW_HOOK_NAMESPACE)


class AskflowHookSpecs:
    """Hook contract for Askflow extensions."""

    @hookspec(firstresult=True)
    def provide_task_router(self, settings: Settings) -> TaskRouterBackend | None:
        """Provide the backend deciding between inquiry and answer."""

    @hookspec(firstresult=True)
    def provide_inquiry_generator(self, settings: Settings) -> InquiryGenerator | None:
        """Provide the clarifying-question generator."""

    @hookspec(firstresult=True)
    def provide_action_executor(self, settings: Settings) -> ActionExecutor | None:
        """Provide the researcher that calls tools and writes answers."""

    @hookspec(firstresult=True)
    def provide_chat_store(self, settings: Settings) -> ChatStore | None:
        """Provide the persistence backend for committed conversations."""

    @hookspec
    def register_cli_commands(self, app: Any) -> None:
        """Register CLI commands onto the root Typer application."""

    @hookspec
    def on_committed(self, chat: StoredChat) -> None:
        """Observe a conversation that was just persisted."""

    @hookspec
    def on_error(self, stage: str, error: Exception, conversation_id: str | None) -> None:
        """Observe framework errors from any stage."""
