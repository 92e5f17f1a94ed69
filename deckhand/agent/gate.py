"""InitGate — collapse concurrent initialization attempts into one task."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class InitGate(Generic[T]):
    """Single-slot in-flight handle.

    The first caller runs ``factory()`` as a task; callers arriving while that
    task is pending get the same task back and observe the same result or
    exception. The slot is cleared as soon as the task settles, so a later call
    starts a fresh attempt. Relies on the single-threaded event loop: there is
    no await between the slot check and the slot assignment.

    The returned task is shared. Callers that may be cancelled should await it
    through ``asyncio.shield`` so their cancellation does not reach the others.
    """

    def __init__(self, name: str = "init"):
        self.name = name
        self._task: asyncio.Task[T] | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None

    def acquire_or_join(self, factory: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        """Return the in-flight task, starting one from ``factory`` if none."""
        if self._task is not None:
            logger.debug(f"InitGate[{self.name}]: joining in-flight attempt")
            return self._task

        task: asyncio.Task[T] = asyncio.ensure_future(self._run(factory))
        self._task = task
        return task

    def detach(self) -> None:
        """Forget the in-flight task without cancelling it.

        The detached task runs to completion; the next caller starts a new one.
        """
        if self._task is not None:
            logger.debug(f"InitGate[{self.name}]: detaching in-flight attempt")
        self._task = None

    async def _run(self, factory: Callable[[], Awaitable[T]]) -> T:
        try:
            return await factory()
        finally:
            # a detached task must not clear its successor's slot
            if self._task is asyncio.current_task():
                self._task = None
