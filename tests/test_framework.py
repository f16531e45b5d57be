from __future__ import annotations

from pathlib import Path

import pytest
from fakes import ScriptedExecutor, answer

from askflow.config import Settings
from askflow.conversation import TurnKind
from askflow.engine import Outcome
from askflow.errors import ConfigurationError
from askflow.framework import AskflowFramework
from askflow.hookspecs import hookimpl
from askflow.store.backends import FileChatStore, InMemoryChatStore, StoredChat
from askflow.streaming import StreamingPublisher
from askflow.submission import Submission


def _framework(**overrides) -> AskflowFramework:
    framework = AskflowFramework(Settings(answer_delay_seconds=0, **overrides))
    framework.load_hooks(entry_points=False)
    return framework


async def _ask(framework: AskflowFramework, chat_id: str, message: str):
    engine = framework.create_engine()
    state = await engine.log.load_for(chat_id)
    publisher = StreamingPublisher(submission_id="s1")
    return await engine.process(state, Submission.text(message), publisher), publisher


def test_builtin_hooks_are_reported() -> None:
    report = _framework().hook_report()

    assert report["provide_task_router"] == ["builtin:echo"]
    assert report["provide_chat_store"] == ["builtin:store"]
    assert report["register_cli_commands"] == ["builtin:cli"]


def test_missing_providers_are_a_configuration_error() -> None:
    framework = AskflowFramework(Settings())

    with pytest.raises(ConfigurationError, match="executor"):
        framework.resolve_collaborators()


def test_store_follows_home_setting(tmp_path: Path) -> None:
    assert isinstance(_framework().resolve_collaborators().store, InMemoryChatStore)

    store = _framework(home=tmp_path).resolve_collaborators().store
    assert isinstance(store, FileChatStore)
    assert store.root == (tmp_path / "chats").resolve()


@pytest.mark.asyncio
async def test_echo_backends_answer_and_commit(tmp_path: Path) -> None:
    framework = _framework(home=tmp_path)

    result, publisher = await _ask(framework, "local", "hello framework")

    assert result.outcome is Outcome.ANSWERED
    assert result.committed
    assert result.conversation.turns[-1].content == "You asked: hello framework"
    assert publisher.text.value == "You asked: hello framework"
    tool_turns = [turn for turn in result.conversation.turns if turn.kind is TurnKind.TOOL]
    assert [turn.tool_name for turn in tool_turns] == ["retrieve"]

    second, _ = await _ask(framework, "local", "and again")
    assert second.conversation.turns[: len(result.conversation)] == result.conversation.turns


@pytest.mark.asyncio
async def test_echo_router_inquires_on_double_question_mark() -> None:
    result, publisher = await _ask(_framework(), "local", "tell me about pluggy??")

    assert result.outcome is Outcome.INQUIRED
    assert result.conversation.turns[-1].content == "inquiry: What would you like to know about tell me about pluggy?"
    assert publisher.is_collapsed.value is False


@pytest.mark.asyncio
async def test_later_plugin_overrides_builtin_provider() -> None:
    executor = ScriptedExecutor([answer("from plugin")])

    class ExecutorPlugin:
        @hookimpl
        def provide_action_executor(self, settings):
            return executor

    framework = _framework()
    framework.register(ExecutorPlugin(), name="custom")

    result, _ = await _ask(framework, "local", "hi")

    assert result.conversation.turns[-1].content == "from plugin"
    assert executor.calls == 1


def test_failing_provider_is_skipped_and_reported() -> None:
    errors: list[tuple[str, str]] = []

    class BrokenPlugin:
        @hookimpl
        def provide_action_executor(self, settings):
            raise RuntimeError("no credentials")

    class ErrorObserver:
        @hookimpl
        def on_error(self, stage, error, conversation_id):
            errors.append((stage, str(error)))

    framework = _framework()
    framework.register(ErrorObserver(), name="observer")
    framework.register(BrokenPlugin(), name="broken")

    collaborators = framework.resolve_collaborators()

    assert type(collaborators.executor).__name__ == "EchoExecutor"
    assert errors == [("provide_action_executor:broken", "no credentials")]


@pytest.mark.asyncio
async def test_commit_observers_receive_stored_chat() -> None:
    committed: list[StoredChat] = []

    class CommitObserver:
        @hookimpl
        def on_committed(self, chat):
            committed.append(chat)

    framework = _framework()
    framework.register(CommitObserver(), name="observer")

    await _ask(framework, "c7", "hello")

    assert [chat.id for chat in committed] == ["c7"]
    assert committed[0].title == "hello"


@pytest.mark.asyncio
async def test_engine_failures_reach_error_observers() -> None:
    errors: list[tuple[str, str | None]] = []

    class DownExecutorPlugin:
        @hookimpl
        def provide_action_executor(self, settings):
            return ScriptedExecutor([RuntimeError("executor offline")])

    class ErrorObserver:
        @hookimpl
        def on_error(self, stage, error, conversation_id):
            errors.append((stage, conversation_id))

    framework = _framework(max_attempts=2)
    framework.register(DownExecutorPlugin(), name="down")
    framework.register(ErrorObserver(), name="observer")

    result, _ = await _ask(framework, "c3", "hi")

    assert result.outcome is Outcome.FAILED
    assert errors == [("execute", "c3"), ("execute", "c3")]
