"""Single-producer streaming values and the per-submission publisher."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from loguru import logger

from askflow.errors import StreamClosedError

_UNSET: Any = object()


@dataclass(frozen=True)
class Fragment:
    """Opaque UI fragment; the presentation layer decides how to draw it."""

    kind: str
    payload: Any = None


SPINNER = Fragment("spinner")


class StreamableValue[T]:
    """A value the engine updates over time and closes exactly once.

    Consumers observe every emitted value in order through `updates()`.
    """

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, initial: T | Any = _UNSET, *, key: str = "value") -> None:
        self.key = key
        self._history: list[T] = []
        self._closed = False
        self._error: BaseException | None = None
        self._changed = asyncio.Event()
        self.done_calls = 0
        if initial is not _UNSET:
            self._history.append(initial)

    @classmethod
    def completed(cls, value: T, *, key: str = "value") -> StreamableValue[T]:
        stream: StreamableValue[T] = cls(key=key)
        stream.done(value)
        return stream

    @property
    def value(self) -> T | None:
        return self._history[-1] if self._history else None

    @property
    def history(self) -> tuple[T, ...]:
        return tuple(self._history)

    @property
    def is_done(self) -> bool:
        return self._closed

    @property
    def error(self) -> BaseException | None:
        return self._error

    def update(self, value: T) -> None:
        self._ensure_open()
        self._history.append(value)
        self._notify()

    def append(self, delta: Any) -> None:
        """Append a delta to the current value (text streams)."""

        self._ensure_open()
        current = self.value
        self._history.append(delta if current is None else current + delta)
        self._notify()

    def done(self, value: T | Any = _UNSET) -> bool:
        """Close the stream, optionally with a final value.

        Returns False (and changes nothing) when the stream was already closed.
        """

        self.done_calls += 1
        if self._closed:
            logger.warning("stream.done.repeated key={} calls={}", self.key, self.done_calls)
            return False
        if value is not _UNSET:
            self._history.append(value)
        self._closed = True
        self._notify()
        return True

    def fail(self, error: BaseException) -> bool:
        if self._closed:
            logger.warning("stream.fail.after_done key={} error={!r}", self.key, error)
            return False
        self._error = error
        self._closed = True
        self._notify()
        return True

    async def updates(self) -> AsyncIterator[T]:
        index = 0
        while True:
            while index < len(self._history):
                yield self._history[index]
                index += 1
            if self._closed:
                break
            changed = self._changed
            await changed.wait()
        if self._error is not None:
            raise self._error

    async def wait(self) -> T | None:
        async for _ in self.updates():
            pass
        return self.value

    def _ensure_open(self) -> None:
        if self._closed:
            raise StreamClosedError(f"stream {self.key!r} is already done")

    def _notify(self) -> None:
        self._changed.set()
        self._changed = asyncio.Event()

    def _snapshot(self) -> tuple[object, ...]:
        return (self.key, tuple(self._history), self._closed, repr(self._error))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StreamableValue):
            return NotImplemented
        return self._snapshot() == other._snapshot()

    def __repr__(self) -> str:
        state = "done" if self._closed else "pending"
        return f"StreamableValue(key={self.key!r}, value={self.value!r}, {state})"


class StreamableUI(StreamableValue[tuple[Fragment, ...]]):
    """Fragment channel: `update` replaces what is shown, `append` adds to it."""

    def __init__(self, *, key: str = "ui") -> None:
        super().__init__((), key=key)

    def update(self, value: Fragment | tuple[Fragment, ...]) -> None:  # type: ignore[override]
        super().update(value if isinstance(value, tuple) else (value,))

    def append(self, delta: Fragment) -> None:  # type: ignore[override]
        super().update((*(self.value or ()), delta))

    def done(self, value: Fragment | Any = _UNSET) -> bool:  # type: ignore[override]
        if isinstance(value, Fragment):
            value = (value,)
        return super().done(value)


class StreamingPublisher:
    """Incremental output for one submission with a single terminal signal."""

    def __init__(self, *, submission_id: str) -> None:
        self.submission_id = submission_id
        self.ui = StreamableUI()
        self.text: StreamableValue[str] = StreamableValue(key="text")
        self.is_generating: StreamableValue[bool] = StreamableValue(True, key="is_generating")
        self.is_collapsed: StreamableValue[bool] = StreamableValue(False, key="is_collapsed")
        self.finalize_calls = 0
        self._error: str | None = None

    @property
    def is_finalized(self) -> bool:
        return self.finalize_calls > 0

    @property
    def error(self) -> str | None:
        return self._error

    def collapse(self, collapsed: bool) -> None:
        """Resolve the collapse flag; later calls are ignored."""

        if not self.is_collapsed.is_done:
            self.is_collapsed.done(collapsed)

    def finalize(self, *, error: str | None = None) -> bool:
        """Close every channel. Safe to call twice; only the first call counts."""

        self.finalize_calls += 1
        if self.finalize_calls > 1:
            logger.warning("publisher.finalize.repeated submission={} calls={}", self.submission_id, self.finalize_calls)
            return False

        self._error = error
        if not self.text.is_done:
            self.text.done()
        self.collapse(error is None and bool(self.is_collapsed.value))
        if not self.is_generating.is_done:
            self.is_generating.done(False)
        if not self.ui.is_done:
            if error is None:
                self.ui.done()
            else:
                self.ui.done(Fragment("error", error))
        logger.debug("publisher.finalized submission={} error={}", self.submission_id, error)
        return True

    async def fragments(self) -> AsyncIterator[tuple[Fragment, ...]]:
        async for snapshot in self.ui.updates():
            yield snapshot
