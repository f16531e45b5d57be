"""Askflow - streaming conversation orchestration."""

from askflow.conversation import Conversation, Role, Turn, TurnKind
from askflow.engine import CycleResult, OrchestrationEngine, Outcome, RetryPolicy, SubmissionHandle
from askflow.framework import AskflowFramework
from askflow.projection import ViewEntry, project
from askflow.streaming import StreamableValue, StreamingPublisher
from askflow.submission import Submission
from askflow.window import build_context

__version__ = "0.1.0"

__all__ = [
    "AskflowFramework",
    "Conversation",
    "CycleResult",
    "OrchestrationEngine",
    "Outcome",
    "RetryPolicy",
    "Role",
    "StreamableValue",
    "StreamingPublisher",
    "Submission",
    "SubmissionHandle",
    "Turn",
    "TurnKind",
    "ViewEntry",
    "build_context",
    "project",
]
