"""Builtin offline backends.

They answer deterministically from the conversation itself, which makes the
whole pipeline runnable without any model service configured.
"""

from __future__ import annotations

import json

from askflow.collaborators import (
    INQUIRE,
    PROCEED,
    ActionDecision,
    ExecutorResult,
    Inquiry,
    ToolResponse,
)
from askflow.config import Settings
from askflow.conversation import Role
from askflow.hookspecs import hookimpl
from askflow.streaming import Fragment, StreamableUI, StreamableValue
from askflow.window import BoundedContext

INQUIRY_MARKER = "??"


def latest_user_text(context: BoundedContext) -> str:
    """Best-effort plain text of the newest user message in context."""

    for message in reversed(context):
        if message.role is not Role.USER:
            continue
        try:
            payload = json.loads(message.content)
        except json.JSONDecodeError:
            return message.content
        if not isinstance(payload, dict):
            return message.content
        if payload.get("action") == "skip":
            continue
        for key in ("input", "related_query"):
            value = payload.get(key)
            if isinstance(value, str):
                return value
        return " ".join(str(value) for value in payload.values())
    return ""


class EchoRouter:
    async def decide(self, context: BoundedContext) -> ActionDecision:
        if latest_user_text(context).rstrip().endswith(INQUIRY_MARKER):
            return INQUIRE
        return PROCEED


class EchoInquirer:
    async def generate(self, ui: StreamableUI, context: BoundedContext) -> Inquiry:
        topic = latest_user_text(context).rstrip().rstrip("?").strip() or "this"
        question = f"What would you like to know about {topic}?"
        ui.update(Fragment("inquiry", {"question": question}))
        return Inquiry(question=question)


class EchoExecutor:
    async def run(
        self,
        ui: StreamableUI,
        text: StreamableValue[str],
        context: BoundedContext,
        use_tools_only: bool,
    ) -> ExecutorResult:
        _ = use_tools_only
        query = latest_user_text(context)
        retrieved = {"query": query, "results": [{"title": "conversation", "content": query}]}
        ui.append(Fragment("tool", {"tool_name": "retrieve", "result": retrieved}))
        tool_responses = [ToolResponse(tool_name="retrieve", result=retrieved)]

        answer = f"You asked: {query}" if query else ""
        for index, word in enumerate(answer.split()):
            text.append(word if index == 0 else f" {word}")
        if answer:
            ui.append(Fragment("text", answer))
        return ExecutorResult(full_response=answer, has_error=False, tool_responses=tool_responses)


class EchoBackendsPlugin:
    @hookimpl
    def provide_task_router(self, settings: Settings) -> EchoRouter:
        _ = settings
        return EchoRouter()

    @hookimpl
    def provide_inquiry_generator(self, settings: Settings) -> EchoInquirer:
        _ = settings
        return EchoInquirer()

    @hookimpl
    def provide_action_executor(self, settings: Settings) -> EchoExecutor:
        _ = settings
        return EchoExecutor()
