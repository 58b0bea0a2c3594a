"""
Lifecycle instrumentation for the assistant service capability.

InstrumentedService wraps a capability exposing ``run()`` (and optionally
``on``/``prepend_listener`` for request/response/error events) and logs
what happens around it. The wrapped object is never modified and callers
get the same return values and exceptions as from the original.
"""

import asyncio
import inspect
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger("copilot.instrument")

OBSERVED_EVENTS = ("request", "response", "error")


class EventKind(str, Enum):
    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"


class InstrumentationEvent(BaseModel):
    kind: EventKind
    payload: str = Field(..., description="JSON-serialized event payload")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


EventSink = Callable[[InstrumentationEvent], None]


def serialize_payload(payload: Any) -> str:
    try:
        return json.dumps(payload, default=str)
    except (TypeError, ValueError):
        return repr(payload)


def log_event(event: InstrumentationEvent) -> None:
    """Default sink: one log line per event."""
    if event.kind == EventKind.ERROR:
        logger.error(f"Service {event.kind.value}: {event.payload}")
    else:
        logger.info(f"Service {event.kind.value}: {event.payload}")


class InstrumentedService:
    """Transparent wrapper around an assistant service capability."""

    def __init__(self, inner: Any, sink: EventSink = log_event):
        if not callable(getattr(inner, "run", None)):
            raise TypeError(f"{type(inner).__name__} does not expose a run() entry point")
        self._inner = inner
        self._sink = sink
        self._listeners_attached = False

    @property
    def inner(self) -> Any:
        return self._inner

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes the wrapper does not define itself
        if name == "_inner":
            raise AttributeError(name)
        return getattr(self._inner, name)

    def run(self, *args: Any, **kwargs: Any) -> Any:
        service_name = type(self._inner).__name__
        logger.info(f"Starting {service_name}.run()")
        self._attach_listeners()

        try:
            result = self._inner.run(*args, **kwargs)
        except Exception as e:
            logger.exception(f"{service_name}.run() raised: {e}")
            raise

        if asyncio.isfuture(result):
            # hand back the same Task/Future so cancel() and callbacks keep working
            result.add_done_callback(lambda done: self._log_outcome(service_name, done))
            return result
        if inspect.isawaitable(result):
            return self._await_run(service_name, result)
        return result

    def _log_outcome(self, service_name: str, done: "asyncio.Future[Any]") -> None:
        if done.cancelled():
            logger.info(f"{service_name}.run() was cancelled")
            return
        error = done.exception()
        if error is not None:
            logger.error(f"{service_name}.run() raised: {error}", exc_info=error)

    async def _await_run(self, service_name: str, pending: Awaitable[Any]) -> Any:
        try:
            return await pending
        except Exception as e:
            logger.exception(f"{service_name}.run() raised: {e}")
            raise

    def _attach_listeners(self) -> None:
        if self._listeners_attached:
            return

        subscribe = getattr(self._inner, "prepend_listener", None)
        if not callable(subscribe):
            subscribe = getattr(self._inner, "on", None)
        if not callable(subscribe):
            logger.debug(f"{type(self._inner).__name__} exposes no events; logging run() only")
            self._listeners_attached = True
            return

        for event_name in OBSERVED_EVENTS:
            try:
                subscribe(event_name, self._listener_for(EventKind(event_name)))
            except Exception as e:
                logger.warning(f"Could not subscribe to {event_name} events: {e}")
        self._listeners_attached = True

    def _listener_for(self, kind: EventKind) -> Callable[..., None]:
        def _listener(payload: Any = None, *extra: Any) -> None:
            data = payload if not extra else [payload, *extra]
            try:
                self._sink(InstrumentationEvent(kind=kind, payload=serialize_payload(data)))
            except Exception as e:
                # sink failures stay out of the service's emitter
                logger.warning(f"Instrumentation sink failed for {kind.value} event: {e}")

        return _listener


def instrument(inner: Any, sink: Optional[EventSink] = None) -> InstrumentedService:
    return InstrumentedService(inner, sink=sink or log_event)
