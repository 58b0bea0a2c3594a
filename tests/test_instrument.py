"""
Tests for the service lifecycle instrumentation wrapper.
"""
import asyncio
import logging

import pytest

from src.launcher.instrument import EventKind, InstrumentedService, instrument


class EventingService:
    """Capability with event subscription and a synchronous run()."""

    def __init__(self):
        self.listeners = {}
        self.name = "eventing"

    def on(self, event, listener):
        self.listeners.setdefault(event, []).append(listener)

    def emit(self, event, payload):
        for listener in self.listeners.get(event, []):
            listener(payload)

    def run(self, *args, **kwargs):
        self.emit("request", {"method": "initialize", "args": list(args)})
        self.emit("response", {"result": "ok"})
        return ("ran", args, kwargs)


class PrependingService(EventingService):
    def prepend_listener(self, event, listener):
        self.listeners.setdefault(event, []).insert(0, listener)


class PlainService:
    def run(self, value):
        return value * 2


class AsyncService:
    async def run(self, value):
        return value + 1


class FailingService:
    def __init__(self, error):
        self.error = error

    def run(self):
        raise self.error


class AsyncFailingService:
    def __init__(self, error):
        self.error = error

    async def run(self):
        raise self.error


class TaskService:
    """Capability whose run() schedules its work and returns the Task."""

    def __init__(self, work):
        self.work = work
        self.task = None

    def run(self):
        self.task = asyncio.ensure_future(self.work())
        return self.task


def test_sync_run_is_transparent():
    events = []
    inner = EventingService()
    wrapped = InstrumentedService(inner, sink=events.append)

    assert wrapped.run(1, mode="stdio") == ("ran", (1,), {"mode": "stdio"})
    assert [event.kind for event in events] == [EventKind.REQUEST, EventKind.RESPONSE]
    assert '"method": "initialize"' in events[0].payload


def test_wrapper_delegates_other_attributes_and_never_mutates_inner():
    inner = EventingService()
    original_run = inner.run
    wrapped = instrument(inner, sink=lambda event: None)
    wrapped.run()

    assert wrapped.name == "eventing"
    assert wrapped.inner is inner
    assert inner.run == original_run
    assert "run" not in vars(inner)


def test_listeners_attached_once():
    events = []
    inner = EventingService()
    wrapped = InstrumentedService(inner, sink=events.append)
    wrapped.run()
    wrapped.run()
    assert len(inner.listeners["request"]) == 1
    assert len(events) == 4


def test_prepend_listener_sees_events_first():
    seen = []
    inner = PrependingService()
    inner.on("error", lambda payload: seen.append("consumer"))
    wrapped = InstrumentedService(inner, sink=lambda event: seen.append("instrument"))
    wrapped.run()
    inner.emit("error", {"detail": "bad"})
    assert seen == ["instrument", "consumer"]


def test_service_without_events_still_runs():
    wrapped = InstrumentedService(PlainService(), sink=lambda event: None)
    assert wrapped.run(21) == 42


def test_sync_fault_is_logged_and_reraised_unchanged(caplog, monkeypatch):
    error = RuntimeError("server crashed")
    wrapped = InstrumentedService(FailingService(error))
    caplog.set_level(logging.ERROR, logger="copilot.instrument")
    # propagate so caplog sees the records
    monkeypatch.setattr(logging.getLogger("copilot"), "propagate", True)

    with pytest.raises(RuntimeError) as excinfo:
        wrapped.run()

    assert excinfo.value is error
    assert "server crashed" in caplog.text


@pytest.mark.asyncio
async def test_async_run_is_awaited_transparently():
    wrapped = InstrumentedService(AsyncService())
    assert await wrapped.run(1) == 2


@pytest.mark.asyncio
async def test_async_fault_is_reraised_unchanged():
    error = ValueError("bad frame")
    wrapped = InstrumentedService(AsyncFailingService(error))
    with pytest.raises(ValueError) as excinfo:
        await wrapped.run()
    assert excinfo.value is error


def test_sink_failure_does_not_reach_service():
    def broken_sink(event):
        raise RuntimeError("sink down")

    wrapped = InstrumentedService(EventingService(), sink=broken_sink)
    assert wrapped.run()[0] == "ran"


def test_non_json_payload_is_stringified():
    events = []
    inner = EventingService()
    wrapped = InstrumentedService(inner, sink=events.append)
    wrapped.run()
    inner.emit("response", {1, 2})
    assert "1, 2" in events[-1].payload


def test_rejects_object_without_run():
    with pytest.raises(TypeError):
        InstrumentedService(object())


@pytest.mark.asyncio
async def test_task_from_run_is_returned_unwrapped():
    async def work():
        return "served"

    inner = TaskService(work)
    wrapped = InstrumentedService(inner, sink=lambda event: None)
    task = wrapped.run()

    assert task is inner.task
    done = []
    task.add_done_callback(done.append)
    assert await task == "served"
    await asyncio.sleep(0)
    assert done == [task]


@pytest.mark.asyncio
async def test_task_from_run_can_be_cancelled():
    async def work():
        await asyncio.sleep(60)

    wrapped = InstrumentedService(TaskService(work), sink=lambda event: None)
    task = wrapped.run()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert task.cancelled()


@pytest.mark.asyncio
async def test_task_fault_is_logged(caplog, monkeypatch):
    async def work():
        raise RuntimeError("server crashed late")

    caplog.set_level(logging.ERROR, logger="copilot.instrument")
    monkeypatch.setattr(logging.getLogger("copilot"), "propagate", True)
    wrapped = InstrumentedService(TaskService(work), sink=lambda event: None)
    task = wrapped.run()

    with pytest.raises(RuntimeError):
        await task
    await asyncio.sleep(0)
    assert "server crashed late" in caplog.text
