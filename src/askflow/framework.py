"""Hook-first Askflow framework runtime."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pluggy
from loguru import logger

from askflow.collaborators import ActionExecutor, InquiryGenerator, TaskRouterBackend
from askflow.config import Settings
from askflow.engine import OrchestrationEngine
from askflow.errors import ConfigurationError
from askflow.hook_runtime import HookRuntime
from askflow.hookspecs import ASKFLOW_HOOK_NAMESPACE, AskflowHookSpecs
from askflow.router import TaskRouter
from askflow.store.backends import ChatStore, StoredChat
from askflow.store.log import ConversationLog


@dataclass(frozen=True)
class Collaborators:
    """Resolved providers for one engine."""

    router: TaskRouterBackend
    inquirer: InquiryGenerator
    executor: ActionExecutor
    store: ChatStore


class AskflowFramework:
    """Minimal framework core. Backends grow from hook plugins."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self._plugin_manager = pluggy.PluginManager(ASKFLOW_HOOK_NAMESPACE)
        self._plugin_manager.add_hookspecs(AskflowHookSpecs)
        self._hook_runtime = HookRuntime(self._plugin_manager)
        self._failed_plugins: dict[str, str] = {}
        self._loaded = False

    @property
    def failed_plugins(self) -> dict[str, str]:
        return dict(self._failed_plugins)

    def load_hooks(self, *, entry_points: bool = True) -> None:
        """Register builtin plugins, then any installed under the `askflow` entry-point group."""

        if self._loaded:
            return
        from askflow.builtin import BUILTIN_PLUGINS

        for name, plugin in BUILTIN_PLUGINS.items():
            self._plugin_manager.register(plugin, name=f"builtin:{name}")
        if entry_points:
            try:
                self._plugin_manager.load_setuptools_entrypoints(ASKFLOW_HOOK_NAMESPACE)
            except Exception as exc:  # pragma: no cover - depends on installed distributions
                self._failed_plugins["entry_points"] = str(exc)
                logger.opt(exception=True).warning("plugin.load_failed group={}", ASKFLOW_HOOK_NAMESPACE)
        self._loaded = True

    def register(self, plugin: object, *, name: str) -> None:
        self._plugin_manager.register(plugin, name=name)

    def register_cli_commands(self, app: Any) -> None:
        """Ask plugins to register CLI commands."""

        self._hook_runtime.call_many("register_cli_commands", app=app)

    def resolve_collaborators(self) -> Collaborators:
        provided = {
            "router": self._hook_runtime.call_first("provide_task_router", settings=self.settings),
            "inquirer": self._hook_runtime.call_first("provide_inquiry_generator", settings=self.settings),
            "executor": self._hook_runtime.call_first("provide_action_executor", settings=self.settings),
            "store": self._hook_runtime.call_first("provide_chat_store", settings=self.settings),
        }
        missing = sorted(name for name, value in provided.items() if value is None)
        if missing:
            raise ConfigurationError(f"no plugin provided: {', '.join(missing)}")
        return Collaborators(**provided)

    def create_log(self, store: ChatStore | None = None) -> ConversationLog:
        backend = store or self.resolve_collaborators().store
        return ConversationLog(backend, user_id=self.settings.user_id, on_committed=self._notify_committed)

    def create_engine(self) -> OrchestrationEngine:
        """Build an engine wired to the plugin-provided collaborators."""

        collaborators = self.resolve_collaborators()
        return OrchestrationEngine(
            log=self.create_log(collaborators.store),
            router=TaskRouter(collaborators.router),
            inquirer=collaborators.inquirer,
            executor=collaborators.executor,
            settings=self.settings,
            on_error=self.notify_error,
        )

    def notify_error(self, *, stage: str, error: Exception, conversation_id: str | None = None) -> None:
        self._hook_runtime.notify_error(stage=stage, error=error, conversation_id=conversation_id)

    def hook_report(self) -> dict[str, list[str]]:
        """Return hook implementation summary for diagnostics."""

        return self._hook_runtime.hook_report()

    def _notify_committed(self, chat: StoredChat) -> None:
        self._hook_runtime.call_many("on_committed", chat=chat)
