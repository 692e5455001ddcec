"""
tests/test_events.py: event bus, metrics and periodic timers.
"""
import asyncio

from sopwizard.interview import (
    EventType, InterviewEventBus, InterviewMetrics, StepAddedEvent, TurnAppendedEvent
)
from sopwizard.utils import PeriodicTask


def test_subscribers_receive_matching_events():
    bus = InterviewEventBus()
    steps, everything = [], []
    bus.subscribe(EventType.STEP_ADDED, steps.append)
    bus.subscribe_all(everything.append)

    bus.emit(StepAddedEvent("s1", 0.0, 1, "Inspect item"))
    bus.emit(TurnAppendedEvent("s1", 0.0, "user", "hi", 1))

    assert [e.data["text"] for e in steps] == ["Inspect item"]
    assert len(everything) == 2


def test_failing_handler_does_not_block_others():
    bus = InterviewEventBus()
    received = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe(EventType.STEP_ADDED, broken)
    bus.subscribe(EventType.STEP_ADDED, received.append)
    bus.emit(StepAddedEvent("s1", 0.0, 1, "Inspect item"))
    assert len(received) == 1


def test_unsubscribe_and_clear():
    bus = InterviewEventBus()
    received = []
    bus.subscribe(EventType.STEP_ADDED, received.append)
    bus.unsubscribe(EventType.STEP_ADDED, received.append)
    bus.unsubscribe(EventType.STEP_ADDED, received.append)
    bus.subscribe_all(received.append)
    bus.clear_handlers()
    bus.emit(StepAddedEvent("s1", 0.0, 1, "x"))
    assert received == []


def test_metrics_count_user_turns_and_steps():
    metrics = InterviewMetrics()
    metrics.handle_event(TurnAppendedEvent("s1", 0.0, "system", "hello", 1))
    metrics.handle_event(TurnAppendedEvent("s1", 0.0, "user", "start", 2))
    metrics.handle_event(StepAddedEvent("s1", 0.0, 1, "Inspect item"))

    snapshot = metrics.get_metrics()
    assert snapshot["user_turns"] == 1
    assert snapshot["steps_added"] == 1
    metrics.reset()
    assert metrics.get_metrics()["user_turns"] == 0


def test_periodic_task_ticks_until_cancelled():
    calls = []

    async def scenario():
        task = PeriodicTask(0.01, lambda: calls.append(1), name="test")
        task.start()
        task.start()
        await asyncio.sleep(0.055)
        task.cancel()
        count = len(calls)
        await asyncio.sleep(0.03)
        return count, task.running

    count, running = asyncio.run(scenario())
    assert count >= 3
    assert len(calls) == count
    assert not running


def test_periodic_task_survives_callback_errors():
    calls = []

    def flaky():
        calls.append(1)
        raise RuntimeError("observer bug")

    async def scenario():
        task = PeriodicTask(0.01, flaky)
        task.start()
        await asyncio.sleep(0.05)
        task.cancel()

    asyncio.run(scenario())
    assert len(calls) >= 2
