"""Task router: choose between asking a question and answering."""

from __future__ import annotations

from collections.abc import Mapping

from loguru import logger

from askflow.collaborators import INQUIRE, PROCEED, ActionDecision, TaskRouterBackend
from askflow.window import BoundedContext


class TaskRouter:
    """Fail-open wrapper around a routing backend."""

    def __init__(self, backend: TaskRouterBackend) -> None:
        self._backend = backend

    async def decide(self, context: BoundedContext, *, skip: bool = False) -> ActionDecision:
        if skip:
            logger.info("router.skip next=proceed")
            return PROCEED

        try:
            decision = await self._backend.decide(context)
        except Exception as exc:
            logger.opt(exception=True).warning("router.backend_failed error={!r} next=proceed", exc)
            return PROCEED

        next_action = _next_of(decision)
        if next_action == "inquire":
            return INQUIRE
        if next_action not in (None, "proceed"):
            logger.warning("router.unknown_action next={!r} fallback=proceed", next_action)
        return PROCEED


def _next_of(decision: object) -> object:
    # Backends may hand back a plain mapping such as {"next": "inquire"}.
    if isinstance(decision, Mapping):
        return decision.get("next")
    return getattr(decision, "next", None)
