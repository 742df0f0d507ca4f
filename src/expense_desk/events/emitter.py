"""Async event emitter for publishing domain events.

The emitter provides:
- Handler registration with type filtering
- Error isolation (handler failures don't break other handlers)
- Event batching for unit-of-work boundaries
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar, Union

from expense_desk.events.types import DomainEvent

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DomainEvent)

Handler = Callable[[DomainEvent], Union[Awaitable[None], None]]


@dataclass
class HandlerRegistration:
    """Registration of an event handler."""

    handler: Handler
    event_types: set[str] | None  # None = all events
    is_async: bool


class AsyncEventEmitter:
    """Asynchronous event emitter.

    Usage:
        emitter = AsyncEventEmitter()

        async def push(event: NotificationRequested) -> None:
            await transport.send(event.user_id, event.status)

        emitter.on(NotificationRequested, push)
        await emitter.emit(event)
    """

    def __init__(self) -> None:
        self._handlers: list[HandlerRegistration] = []
        self._batching = False
        self._batch: list[DomainEvent] = []

    def on(self, event_type: type[T] | list[type[T]], handler: Handler) -> None:
        """Register a handler (sync or async) for specific event type(s)."""
        if isinstance(event_type, list):
            types = {t.__name__ for t in event_type}
        else:
            types = {event_type.__name__}

        self._handlers.append(
            HandlerRegistration(
                handler=handler,
                event_types=types,
                is_async=inspect.iscoroutinefunction(handler),
            )
        )

    def on_all(self, handler: Handler) -> None:
        """Register handler for all events."""
        self._handlers.append(
            HandlerRegistration(
                handler=handler,
                event_types=None,
                is_async=inspect.iscoroutinefunction(handler),
            )
        )

    def off(self, handler: Handler) -> None:
        """Unregister a handler."""
        self._handlers = [reg for reg in self._handlers if reg.handler is not handler]

    async def emit(self, event: DomainEvent) -> list[Exception]:
        """Emit an event to all matching handlers.

        Returns list of any exceptions raised by handlers.
        """
        if self._batching:
            self._batch.append(event)
            return []

        return await self._dispatch(event)

    async def _dispatch(self, event: DomainEvent) -> list[Exception]:
        """Dispatch event to matching handlers."""
        errors: list[Exception] = []
        event_type = event.event_type

        tasks: list[asyncio.Task[None]] = []

        for reg in self._handlers:
            if reg.event_types and event_type not in reg.event_types:
                continue

            if reg.is_async:
                tasks.append(asyncio.create_task(self._call_async_handler(reg.handler, event)))
            else:
                try:
                    reg.handler(event)
                except Exception as e:
                    logger.exception("Handler %s failed for event %s", reg.handler, event_type)
                    errors.append(e)

        if tasks:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    errors.append(result)

        return errors

    async def _call_async_handler(self, handler: Handler, event: DomainEvent) -> None:
        """Call async handler with error logging."""
        try:
            await handler(event)  # type: ignore[misc]
        except Exception:
            logger.exception("Async handler %s failed for event %s", handler, event.event_type)
            raise

    def batch(self) -> AsyncEventBatch:
        """Create a batch context for collecting events."""
        return AsyncEventBatch(self)

    def _start_batch(self) -> None:
        self._batching = True
        self._batch = []

    async def _end_batch(self) -> list[Exception]:
        self._batching = False
        events = self._batch
        self._batch = []

        errors: list[Exception] = []
        for event in events:
            errors.extend(await self._dispatch(event))
        return errors


class AsyncEventBatch:
    """Async context manager for batching events.

    Events are held until the block exits cleanly; an exception discards them.
    """

    def __init__(self, emitter: AsyncEventEmitter) -> None:
        self._emitter = emitter
        self._errors: list[Exception] = []

    async def __aenter__(self) -> AsyncEventBatch:
        self._emitter._start_batch()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None:
            self._errors = await self._emitter._end_batch()
        else:
            self._emitter._batching = False
            self._emitter._batch = []

    async def add(self, event: DomainEvent) -> None:
        """Add event to batch."""
        await self._emitter.emit(event)

    @property
    def errors(self) -> list[Exception]:
        """Errors from handler execution."""
        return self._errors
