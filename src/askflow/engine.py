"""Orchestration engine: one submission in, one streamed and recorded reply out."""

from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import Awaitable, Callable, Generator
from contextvars import ContextVar
from dataclasses import dataclass
from enum import StrEnum

from loguru import logger

from askflow.collaborators import ActionDecision, ActionExecutor, ExecutorResult, InquiryGenerator
from askflow.config import Settings
from askflow.conversation import Conversation, Role, Turn, TurnKind, new_id
from askflow.errors import ConfigurationError, PersistenceError
from askflow.router import TaskRouter
from askflow.store.log import ConversationLog
from askflow.streaming import SPINNER, StreamingPublisher
from askflow.submission import Submission, user_turn_for
from askflow.window import BoundedContext, build_context

INQUIRY_PREFIX = "inquiry: "

type ErrorObserver = Callable[..., None]

_conversation_context: ContextVar[str] = ContextVar("conversation")


def current_conversation() -> str:
    """Get the id of the conversation being processed in this context."""
    return _conversation_context.get("-")


@contextlib.contextmanager
def _bind_conversation(conversation_id: str) -> Generator[None, None, None]:
    token = _conversation_context.set(conversation_id)
    try:
        yield
    finally:
        _conversation_context.reset(token)


class Outcome(StrEnum):
    INQUIRED = "inquired"
    ANSWERED = "answered"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryPolicy:
    """How many executor attempts one submission may spend. None means unbounded."""

    max_attempts: int | None = 5

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1 or None, got {self.max_attempts}")

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(max_attempts=settings.max_attempts or None)

    def allows(self, attempt: int) -> bool:
        return self.max_attempts is None or attempt <= self.max_attempts


@dataclass(frozen=True)
class CycleResult:
    """Terminal report of one submission cycle."""

    conversation: Conversation
    outcome: Outcome
    decision: ActionDecision
    attempts: int = 0
    committed: bool = False
    error: str | None = None


@dataclass(frozen=True)
class _ExecutionResult:
    conversation: Conversation
    outcome: Outcome
    attempts: int
    answer: str = ""
    group_id: str | None = None
    error: str | None = None


class SubmissionHandle:
    """What the caller gets back immediately: the publisher plus the running cycle."""

    def __init__(self, *, submission_id: str, publisher: StreamingPublisher, task: asyncio.Task[CycleResult]) -> None:
        self.id = submission_id
        self.publisher = publisher
        self.task = task

    async def result(self) -> CycleResult:
        return await self.task

    def cancel(self) -> bool:
        return self.task.cancel()


class OrchestrationEngine:
    """Routes each submission, then inquires or executes, and always finalizes."""

    def __init__(
        self,
        *,
        log: ConversationLog,
        router: TaskRouter,
        inquirer: InquiryGenerator,
        executor: ActionExecutor,
        settings: Settings | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_error: ErrorObserver | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._log = log
        self._router = router
        self._inquirer = inquirer
        self._executor = executor
        self._retry_policy = retry_policy or RetryPolicy.from_settings(self._settings)
        self._sleep = sleep
        self._on_error = on_error

    @property
    def log(self) -> ConversationLog:
        return self._log

    def submit(self, state: Conversation, submission: Submission) -> SubmissionHandle:
        """Schedule one submission cycle and hand back its publisher right away."""

        submission_id = new_id()
        publisher = StreamingPublisher(submission_id=submission_id)
        task = asyncio.create_task(
            self.process(state, submission, publisher),
            name=f"askflow-submission-{submission_id}",
        )
        return SubmissionHandle(submission_id=submission_id, publisher=publisher, task=task)

    async def process(
        self,
        state: Conversation,
        submission: Submission,
        publisher: StreamingPublisher,
    ) -> CycleResult:
        with _bind_conversation(state.conversation_id):
            user_turn = user_turn_for(submission)
            if user_turn is not None:
                state = self._log.append(state, user_turn)
            try:
                return await self._run(state, submission, publisher)
            except asyncio.CancelledError:
                logger.warning("engine.cancelled submission={}", publisher.submission_id)
                publisher.finalize(error="cancelled")
                raise
            finally:
                if not publisher.is_finalized:
                    publisher.finalize(error="interrupted")

    async def _run(self, state: Conversation, submission: Submission, publisher: StreamingPublisher) -> CycleResult:
        context = build_context(state, self._settings.max_context)
        decision = await self._router.decide(context, skip=submission.skip)
        logger.info("engine.route.decided next={} context={}", decision.next, len(context))

        if decision.next == "inquire":
            return await self._inquire(state, context, decision, publisher)
        return await self._proceed(state, context, decision, publisher)

    async def _inquire(
        self,
        state: Conversation,
        context: BoundedContext,
        decision: ActionDecision,
        publisher: StreamingPublisher,
    ) -> CycleResult:
        try:
            inquiry = await self._inquirer.generate(publisher.ui, context)
        except Exception as exc:
            logger.opt(exception=True).warning("engine.inquiry.failed error={!r}", exc)
            self._report("inquire", exc, state.conversation_id)
            publisher.finalize(error=f"inquiry_error: {exc!s}")
            return CycleResult(conversation=state, outcome=Outcome.FAILED, decision=decision, error=str(exc))

        turn = Turn(
            id=new_id(),
            role=Role.ASSISTANT,
            content=f"{INQUIRY_PREFIX}{inquiry.question}",
            kind=TurnKind.INQUIRY,
        )
        state = self._log.append(state, turn)
        publisher.collapse(False)
        publisher.finalize()
        logger.info("engine.inquiry.asked turns={}", len(state))
        # Inquiries are not checkpointed; the caller keeps the returned state.
        return CycleResult(conversation=state, outcome=Outcome.INQUIRED, decision=decision)

    async def _proceed(
        self,
        state: Conversation,
        context: BoundedContext,
        decision: ActionDecision,
        publisher: StreamingPublisher,
    ) -> CycleResult:
        publisher.collapse(True)
        publisher.ui.update(SPINNER)

        execution = await self._execute(state, context, publisher)
        state = execution.conversation
        if execution.outcome is not Outcome.ANSWERED:
            publisher.finalize(error=execution.error or execution.outcome.value)
            return CycleResult(
                conversation=state,
                outcome=execution.outcome,
                decision=decision,
                attempts=execution.attempts,
                error=execution.error,
            )

        await self._sleep(self._settings.answer_delay_seconds)
        answer = Turn(
            id=new_id(),
            role=Role.ASSISTANT,
            content=execution.answer,
            kind=TurnKind.ANSWER,
            group_id=execution.group_id,
        )
        state = self._log.append(state, answer)
        try:
            committed = await self._log.commit(state)
        except PersistenceError as exc:
            publisher.finalize(error=str(exc))
            self._report("commit", exc, state.conversation_id)
            raise
        publisher.finalize()
        logger.info("engine.answer.recorded attempts={} committed={}", execution.attempts, committed)
        return CycleResult(
            conversation=state,
            outcome=Outcome.ANSWERED,
            decision=decision,
            attempts=execution.attempts,
            committed=committed,
        )

    async def _execute(
        self,
        state: Conversation,
        context: BoundedContext,
        publisher: StreamingPublisher,
    ) -> _ExecutionResult:
        attempt = 0
        last_error: str | None = None
        while self._retry_policy.allows(attempt + 1):
            attempt += 1
            group_id = new_id()
            logger.info("engine.execute.attempt attempt={} group={}", attempt, group_id)
            try:
                result = await self._executor.run(publisher.ui, publisher.text, context, self._settings.use_tools_only)
            except Exception as exc:
                last_error = f"executor_error: {exc!s}"
                logger.opt(exception=True).warning("engine.execute.raised attempt={} error={!r}", attempt, exc)
                self._report("execute", exc, state.conversation_id)
                continue

            state = self._record_tools(state, result, group_id)
            if result.has_error:
                logger.warning("engine.execute.unrecoverable attempt={}", attempt)
                return _ExecutionResult(
                    conversation=state,
                    outcome=Outcome.FAILED,
                    attempts=attempt,
                    error="executor reported an unrecoverable error",
                )
            if result.answered:
                return _ExecutionResult(
                    conversation=state,
                    outcome=Outcome.ANSWERED,
                    attempts=attempt,
                    answer=result.full_response,
                    group_id=group_id,
                )
            last_error = None
            logger.info("engine.execute.empty_answer attempt={}", attempt)

        logger.warning("engine.execute.exhausted attempts={}", attempt)
        if last_error is not None:
            return _ExecutionResult(conversation=state, outcome=Outcome.FAILED, attempts=attempt, error=last_error)
        return _ExecutionResult(
            conversation=state,
            outcome=Outcome.EXHAUSTED,
            attempts=attempt,
            error=f"no answer after {attempt} attempts",
        )

    def _report(self, stage: str, error: Exception, conversation_id: str) -> None:
        if self._on_error is not None:
            self._on_error(stage=stage, error=error, conversation_id=conversation_id)

    def _record_tools(self, state: Conversation, result: ExecutorResult, group_id: str) -> Conversation:
        for response in result.tool_responses:
            turn = Turn(
                id=new_id(),
                role=Role.TOOL,
                content=_encode_tool_result(response.result),
                kind=TurnKind.TOOL,
                tool_name=response.tool_name,
                group_id=group_id,
            )
            state = self._log.append(state, turn)
            logger.debug("engine.tool.recorded tool={} group={}", response.tool_name, group_id)
        return state


def _encode_tool_result(result: object) -> str:
    try:
        return json.dumps(result, ensure_ascii=False)
    except TypeError:
        return json.dumps(str(result), ensure_ascii=False)
