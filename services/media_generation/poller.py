"""
Operation Poller - drives a submitted operation to a terminal state.

States:
- SUBMITTED: operation handle received, nothing fetched yet
- POLLING: at least one status fetch returned done=false
- DONE: a fetch returned done=true (success or carried error)
- TIMED_OUT: deadline passed while the job was still running
- FAILED: a status fetch raised
- CANCELLED: the caller interrupted the wait between polls

Fixed cadence, no backoff. The deadline is measured from loop start and
checked after each fetch, so a result that completes on the last fetch is
still returned. Clock and sleep are injectable so tests never wait.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from core.errors import (
    MalformedResponseError,
    PollCancelledError,
    PollTimeoutError,
)

from .models import Operation

logger = logging.getLogger(__name__)

FetchStatus = Callable[[Operation], Awaitable[Operation]]


class PollState(Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    DONE = "done"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    CANCELLED = "cancelled"


class OperationPoller:
    """
    Polls one operation until done, under a wall-clock deadline.

    Usage:
        poller = OperationPoller(transport.fetch_status, poll_interval=7.0, timeout=900.0)
        done = await poller.poll_until_done(operation)
    """

    def __init__(
        self,
        fetch_status: FetchStatus,
        poll_interval: float = 7.0,
        timeout: float = 15 * 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_poll: Optional[Callable[[int, Operation], None]] = None,
    ):
        """
        Args:
            fetch_status: Coroutine returning the current state of an operation
            poll_interval: Seconds to wait between fetches
            timeout: Seconds from loop start after which polling gives up
            clock: Monotonic time source
            sleep: Coroutine used for the wait between fetches
            on_poll: Callback (attempt, operation) after every fetch
        """
        self.fetch_status = fetch_status
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep
        self.on_poll = on_poll
        self.state = PollState.SUBMITTED

    def _transition_to(self, new_state: PollState, operation_name: str):
        if new_state != self.state:
            logger.debug(f"Operation {operation_name}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _emit_poll(self, attempt: int, operation: Operation):
        if self.on_poll:
            try:
                self.on_poll(attempt, operation)
            except Exception as e:
                logger.warning(f"Poll callback failed: {e}")

    async def _wait(self, cancel_event: Optional[asyncio.Event]) -> bool:
        """Suspend for one interval; returns False if cancel_event fired first."""
        if cancel_event is None:
            await self._sleep(self.poll_interval)
            return True

        if cancel_event.is_set():
            return False

        sleeper = asyncio.ensure_future(self._sleep(self.poll_interval))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
        return not cancel_event.is_set()

    async def poll_until_done(
        self,
        operation: Operation,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Operation:
        """
        Fetch status at a fixed cadence until the operation is done.

        Args:
            operation: Handle returned by submission
            cancel_event: Optional event that interrupts the wait between polls

        Returns:
            The terminal Operation (which may carry a remote error)

        Raises:
            PollTimeoutError: If the deadline passes before done=true
            PollCancelledError: If cancel_event is set while waiting
            MalformedResponseError: If a fetch returns a different operation
            Exception: Whatever fetch_status raised
        """
        name = operation.name
        self.state = PollState.SUBMITTED
        start = self._clock()
        attempt = 0

        while True:
            attempt += 1
            try:
                current = await self.fetch_status(operation)
            except asyncio.CancelledError:
                self._transition_to(PollState.CANCELLED, name)
                raise
            except Exception:
                self._transition_to(PollState.FAILED, name)
                raise

            if current.name != name:
                self._transition_to(PollState.FAILED, name)
                raise MalformedResponseError(
                    f"Operation name changed while polling: {name} -> {current.name}"
                )

            self._emit_poll(attempt, current)

            if current.done:
                self._transition_to(PollState.DONE, name)
                logger.info(f"Operation {name} done after {attempt} poll(s)")
                return current

            self._transition_to(PollState.POLLING, name)
            elapsed = self._clock() - start
            if elapsed > self.timeout:
                self._transition_to(PollState.TIMED_OUT, name)
                raise PollTimeoutError(elapsed=elapsed, operation_name=name)

            logger.debug(f"Operation {name}: polling... ({elapsed:.0f}s elapsed)")

            try:
                keep_going = await self._wait(cancel_event)
            except asyncio.CancelledError:
                self._transition_to(PollState.CANCELLED, name)
                raise
            if not keep_going:
                self._transition_to(PollState.CANCELLED, name)
                raise PollCancelledError(name)
