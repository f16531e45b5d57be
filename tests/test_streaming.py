from __future__ import annotations

import asyncio

import pytest

from askflow.errors import StreamClosedError
from askflow.streaming import SPINNER, Fragment, StreamableUI, StreamableValue, StreamingPublisher


@pytest.mark.asyncio
async def test_consumer_sees_every_update_in_order() -> None:
    stream: StreamableValue[str] = StreamableValue(key="text")
    seen: list[str] = []

    async def consume() -> None:
        async for value in stream.updates():
            seen.append(value)

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0)
    stream.append("Hel")
    stream.append("lo")
    await asyncio.sleep(0)
    stream.done()
    await asyncio.wait_for(consumer, timeout=1)

    assert seen == ["Hel", "Hello"]
    assert stream.value == "Hello"


@pytest.mark.asyncio
async def test_late_consumer_replays_history() -> None:
    stream: StreamableValue[int] = StreamableValue(1)
    stream.update(2)
    stream.done(3)

    assert [value async for value in stream.updates()] == [1, 2, 3]
    assert await stream.wait() == 3


def test_update_after_done_raises() -> None:
    stream: StreamableValue[int] = StreamableValue()
    stream.done(1)

    with pytest.raises(StreamClosedError):
        stream.update(2)


def test_second_done_is_a_counted_no_op() -> None:
    stream: StreamableValue[bool] = StreamableValue(True)

    assert stream.done(False) is True
    assert stream.done(True) is False
    assert stream.value is False
    assert stream.done_calls == 2


@pytest.mark.asyncio
async def test_failed_stream_raises_for_consumers() -> None:
    stream: StreamableValue[str] = StreamableValue("partial")
    stream.fail(RuntimeError("boom"))

    with pytest.raises(RuntimeError, match="boom"):
        await stream.wait()
    assert stream.error is not None


def test_completed_streams_compare_structurally() -> None:
    assert StreamableValue.completed("x") == StreamableValue.completed("x")
    assert StreamableValue.completed("x") != StreamableValue.completed("y")
    assert StreamableValue("x") != StreamableValue.completed("x")


def test_ui_update_replaces_and_append_adds() -> None:
    ui = StreamableUI()
    ui.update(SPINNER)
    ui.append(Fragment("tool", {"tool_name": "retrieve"}))

    assert ui.value == (SPINNER, Fragment("tool", {"tool_name": "retrieve"}))

    ui.update(Fragment("text", "done"))
    assert ui.value == (Fragment("text", "done"),)


def test_publisher_finalize_closes_every_channel_once() -> None:
    publisher = StreamingPublisher(submission_id="s1")
    publisher.collapse(True)

    assert publisher.finalize() is True
    assert publisher.finalize() is False

    assert publisher.finalize_calls == 2
    assert publisher.is_finalized
    assert publisher.ui.is_done and publisher.text.is_done
    assert publisher.is_generating.is_done and publisher.is_generating.value is False
    assert publisher.is_collapsed.value is True
    assert publisher.error is None


def test_publisher_finalize_with_error_shows_error_fragment() -> None:
    publisher = StreamingPublisher(submission_id="s1")
    publisher.ui.update(SPINNER)

    publisher.finalize(error="executor down")

    assert publisher.error == "executor down"
    assert publisher.ui.value == (Fragment("error", "executor down"),)
    assert publisher.is_collapsed.value is False
    assert publisher.is_generating.value is False


def test_collapse_resolves_once() -> None:
    publisher = StreamingPublisher(submission_id="s1")

    publisher.collapse(True)
    publisher.collapse(False)

    assert publisher.is_collapsed.value is True
    assert publisher.is_collapsed.done_calls == 1
