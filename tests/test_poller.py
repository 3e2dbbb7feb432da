"""
Operation Poller Tests

Covers:
1. Immediate and delayed completion
2. Deadline handling with a fake clock
3. Cancellation (event and task)
4. Fetch failures and the operation-name invariant

Run with:
    python -m pytest tests/test_poller.py -v
"""

import asyncio
import os
import sys
from unittest.mock import AsyncMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.errors import (
    MalformedResponseError,
    PollCancelledError,
    PollTimeoutError,
    TransportError,
)
from services.media_generation.models import Operation
from services.media_generation.poller import OperationPoller, PollState

SUBMITTED = Operation(name="op-1")
RUNNING = Operation(name="op-1", done=False)
FINISHED = Operation(name="op-1", done=True, response={"generatedVideos": ["files/abc"]})


def make_poller(fetch_status, clock, **kwargs):
    kwargs.setdefault("poll_interval", 7.0)
    kwargs.setdefault("timeout", 900.0)
    return OperationPoller(fetch_status, clock=clock, sleep=clock.sleep, **kwargs)


class TestCompletion:
    """Test the happy paths."""

    @pytest.mark.asyncio
    async def test_done_on_first_fetch_never_sleeps(self, fake_clock):
        """Test an already-finished job returns without waiting."""
        fetch = AsyncMock(return_value=FINISHED)
        poller = make_poller(fetch, fake_clock)

        result = await poller.poll_until_done(SUBMITTED)

        assert result == FINISHED
        assert fake_clock.sleeps == []
        assert fetch.await_count == 1
        assert poller.state == PollState.DONE

    @pytest.mark.asyncio
    async def test_polls_at_fixed_interval(self, fake_clock):
        """Test the cadence is constant with no backoff."""
        fetch = AsyncMock(side_effect=[RUNNING, RUNNING, RUNNING, FINISHED])
        poller = make_poller(fetch, fake_clock)

        result = await poller.poll_until_done(SUBMITTED)

        assert result.done
        assert fake_clock.sleeps == [7.0, 7.0, 7.0]
        assert fetch.await_count == 4

    @pytest.mark.asyncio
    async def test_done_with_error_is_returned(self, fake_clock):
        """Test a carried remote error is terminal, not raised by the poller."""
        failed = Operation(name="op-1", done=True, error={"code": 13, "message": "internal"})
        poller = make_poller(AsyncMock(return_value=failed), fake_clock)

        result = await poller.poll_until_done(SUBMITTED)

        assert result.failed
        assert result.error_message == "internal"
        assert poller.state == PollState.DONE

    @pytest.mark.asyncio
    async def test_fetches_are_sequential(self, fake_clock):
        """Test no two status fetches overlap."""
        in_flight = 0
        max_in_flight = 0
        responses = [RUNNING, RUNNING, FINISHED]

        async def fetch(operation):
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return responses.pop(0)

        await make_poller(fetch, fake_clock).poll_until_done(SUBMITTED)

        assert max_in_flight == 1

    @pytest.mark.asyncio
    async def test_on_poll_callback(self, fake_clock):
        """Test the callback sees every fetch and its failures are ignored."""
        seen = []

        def on_poll(attempt, operation):
            seen.append((attempt, operation.done))
            raise RuntimeError("callback broke")

        fetch = AsyncMock(side_effect=[RUNNING, FINISHED])
        poller = make_poller(fetch, fake_clock, on_poll=on_poll)

        result = await poller.poll_until_done(SUBMITTED)

        assert result.done
        assert seen == [(1, False), (2, True)]


class TestDeadline:
    """Test timeout behavior."""

    @pytest.mark.asyncio
    async def test_times_out_after_deadline(self, fake_clock):
        """Test a 15s deadline with a 7s interval gives up after a few sleeps."""
        fetch = AsyncMock(return_value=RUNNING)
        poller = make_poller(fetch, fake_clock, poll_interval=7.0, timeout=15.0)

        with pytest.raises(PollTimeoutError) as exc_info:
            await poller.poll_until_done(SUBMITTED)

        assert 2 <= len(fake_clock.sleeps) <= 3
        assert exc_info.value.elapsed > 15.0
        assert exc_info.value.operation_name == "op-1"
        assert poller.state == PollState.TIMED_OUT

    @pytest.mark.asyncio
    async def test_completion_on_last_fetch_wins(self, fake_clock):
        """Test a job that finishes on the fetch after the deadline is still returned."""
        fetch = AsyncMock(side_effect=[RUNNING, RUNNING, RUNNING, FINISHED])
        poller = make_poller(fetch, fake_clock, poll_interval=7.0, timeout=15.0)

        result = await poller.poll_until_done(SUBMITTED)

        assert result == FINISHED
        assert poller.state == PollState.DONE


class TestCancellation:
    """Test caller-driven interruption."""

    @pytest.mark.asyncio
    async def test_cancel_event_interrupts_wait(self):
        """Test setting the event ends a long wait promptly."""
        fetch = AsyncMock(return_value=RUNNING)
        poller = OperationPoller(fetch, poll_interval=60.0, timeout=900.0)
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, cancel.set)

        with pytest.raises(PollCancelledError):
            await asyncio.wait_for(poller.poll_until_done(SUBMITTED, cancel_event=cancel), timeout=5)

        assert poller.state == PollState.CANCELLED
        assert fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_already_set_event(self, fake_clock):
        """Test a pre-set event cancels before the first wait."""
        cancel = asyncio.Event()
        cancel.set()
        poller = make_poller(AsyncMock(return_value=RUNNING), fake_clock)

        with pytest.raises(PollCancelledError):
            await poller.poll_until_done(SUBMITTED, cancel_event=cancel)

        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_task_cancellation_propagates(self):
        """Test cancelling the polling task raises CancelledError."""
        poller = OperationPoller(AsyncMock(return_value=RUNNING), poll_interval=60.0)
        task = asyncio.ensure_future(poller.poll_until_done(SUBMITTED))
        await asyncio.sleep(0.01)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert poller.state == PollState.CANCELLED


class TestFailures:
    """Test fetch errors and payload invariants."""

    @pytest.mark.asyncio
    async def test_fetch_error_propagates(self, fake_clock):
        """Test a transport failure stops polling unchanged."""
        error = TransportError("Polling failed", status=503, body="unavailable")
        poller = make_poller(AsyncMock(side_effect=[RUNNING, error]), fake_clock)

        with pytest.raises(TransportError) as exc_info:
            await poller.poll_until_done(SUBMITTED)

        assert exc_info.value is error
        assert poller.state == PollState.FAILED

    @pytest.mark.asyncio
    async def test_name_change_is_malformed(self, fake_clock):
        """Test a status payload for another operation is rejected."""
        other = Operation(name="op-2", done=True)
        poller = make_poller(AsyncMock(return_value=other), fake_clock)

        with pytest.raises(MalformedResponseError):
            await poller.poll_until_done(SUBMITTED)

        assert poller.state == PollState.FAILED
