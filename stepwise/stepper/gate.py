"""Cooperative gate that lets an operator pause between steps.

The runner asks the gate for permission before every step. In free-run
mode permission is immediate; in step mode the caller waits until the
operator advances. The gate also keeps track of asynchronous work started
by a step that completes out of band (for example a request that a server
keeps processing after the step returned), so the runner can wait for it
before moving on.
"""

import asyncio
from collections import deque
from typing import Any, Awaitable, Optional

from ..reporting.progress import GatePaused, Notice, ProgressSink

EXIT_SUCCESS = 0


class Stepper:
    """Suspend/resume controller plus pending-work barrier.

    All methods must be called from the event loop thread.
    """

    def __init__(self, progress: Optional[ProgressSink] = None, enabled: bool = False):
        """Initialize the gate.

        Args:
            progress: Sink receiving pause and completion notices.
            enabled: Start in step mode.
        """
        self.progress = progress
        self._enabled = False
        self._engaged = False
        self._restore_to: Optional[bool] = None
        self._waiters: deque[asyncio.Future] = deque()
        self._pending: list[asyncio.Future] = []
        self._requests: dict[Any, deque[asyncio.Future]] = {}
        self.enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = bool(value)
        if self._enabled:
            self._engaged = True

    @property
    def engaged(self) -> bool:
        """Whether step mode was switched on at any point."""
        return self._engaged

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    @property
    def pending_count(self) -> int:
        return sum(1 for future in self._pending if not future.done())

    async def next(self, message: Optional[str] = None) -> None:
        """Wait for the operator when in step mode, return at once otherwise."""
        if not self._enabled:
            return

        if message and self.progress is not None:
            self.progress.on_gate_paused(GatePaused(message))

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    def advance(self) -> None:
        """Release the oldest waiter and keep pumping while others are queued.

        One operator keypress therefore unblocks a chain of suspension
        points that queued up behind each other. Waiters resume in FIFO
        order, one at a time, on the event loop.
        """
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)

    def disable(self) -> None:
        """Leave step mode for good and drain every queued waiter.

        Cancels a pending ``skip_scenario`` restore.
        """
        self._restore_to = None
        self._enabled = False
        self.advance()

    def skip_scenario(self) -> None:
        """Free-run until the current scenario ends, then restore the previous mode."""
        if self._restore_to is None:
            self._restore_to = self._enabled
        self._enabled = False
        self.advance()

    def scenario_finished(self) -> None:
        """Scenario boundary reached; undo a pending ``skip_scenario``."""
        if self._restore_to is not None:
            self.enabled = self._restore_to
            self._restore_to = None

    def track(self, awaitable: Awaitable[Any]) -> asyncio.Future:
        """Register out-of-band work for the next ``finish_pending``.

        Coroutines are scheduled as tasks right away.
        """
        future = asyncio.ensure_future(awaitable)
        self._pending.append(future)
        return future

    def requesting(self, key: Any) -> asyncio.Future:
        """Track a request that will be reported done through ``responded(key)``.

        The same key may be in flight more than once; each ``responded(key)``
        completes the oldest outstanding request for it.
        """
        future = asyncio.get_running_loop().create_future()
        self._requests.setdefault(key, deque()).append(future)
        self._pending.append(future)
        return future

    def responded(self, key: Any) -> None:
        """Mark the oldest tracked request for ``key`` as completed. Unknown keys are ignored."""
        queue = self._requests.get(key)
        while queue:
            future = queue.popleft()
            if not future.done():
                future.set_result(None)
                break

        if queue is not None and not queue:
            del self._requests[key]

    async def finish_pending(self) -> None:
        """Wait for all work tracked so far.

        Work tracked after this call started is left for the next call.
        A failure in any tracked unit is raised here.
        """
        snapshot = list(self._pending)
        if not snapshot:
            return

        try:
            await asyncio.gather(*snapshot)
        except BaseException:
            # gather does not stop the siblings of a failed unit
            for future in snapshot:
                if not future.done():
                    future.cancel()
                elif not future.cancelled():
                    future.exception()
            raise
        finally:
            settled = set(snapshot)
            self._pending = [f for f in self._pending if f not in settled]

    def shutdown(self) -> int:
        """Finish the run and return the exit status for the host process.

        Called once, after the last scenario.
        """
        if self._engaged and self.progress is not None:
            self.progress.on_notice(Notice("All tests completed"))

        self._enabled = False
        self.advance()
        return EXIT_SUCCESS
