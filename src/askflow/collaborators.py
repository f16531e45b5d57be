"""Contracts for the services the engine drives but does not implement."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from askflow.streaming import StreamableUI, StreamableValue
from askflow.window import BoundedContext

type NextAction = Literal["inquire", "proceed"]


@dataclass(frozen=True)
class ActionDecision:
    next: NextAction = "proceed"


PROCEED = ActionDecision("proceed")
INQUIRE = ActionDecision("inquire")


@dataclass(frozen=True)
class Inquiry:
    question: str


@dataclass(frozen=True)
class ToolResponse:
    tool_name: str
    result: Any


@dataclass(frozen=True)
class ExecutorResult:
    full_response: str
    has_error: bool = False
    tool_responses: list[ToolResponse] = field(default_factory=list)

    @property
    def answered(self) -> bool:
        return not self.has_error and bool(self.full_response.strip())


class TaskRouterBackend(Protocol):
    async def decide(self, context: BoundedContext) -> ActionDecision | None: ...


class InquiryGenerator(Protocol):
    async def generate(self, ui: StreamableUI, context: BoundedContext) -> Inquiry: ...


class ActionExecutor(Protocol):
    async def run(
        self,
        ui: StreamableUI,
        text: StreamableValue[str],
        context: BoundedContext,
        use_tools_only: bool,
    ) -> ExecutorResult: ...
