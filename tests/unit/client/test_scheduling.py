"""Unit tests for notekeeper.client.scheduling."""

import asyncio
from unittest.mock import patch

import pytest

from notekeeper.client.scheduling import DoubleEnterDetector, PendingTimer


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestPendingTimer:
    @pytest.mark.asyncio
    async def test_runs_once_after_last_schedule(self):
        calls = []

        async def callback():
            calls.append(1)

        timer = PendingTimer(0.02, callback)
        timer.schedule()
        timer.schedule()
        timer.schedule()
        assert timer.pending is True

        await asyncio.sleep(0.08)

        assert calls == [1]
        assert timer.pending is False

    @pytest.mark.asyncio
    async def test_cancel(self):
        calls = []

        async def callback():
            calls.append(1)

        timer = PendingTimer(0.01, callback)
        timer.schedule()
        timer.cancel()
        await asyncio.sleep(0.03)

        assert calls == []

    @pytest.mark.asyncio
    async def test_flush_runs_pending_now(self):
        calls = []

        async def callback():
            calls.append(1)

        timer = PendingTimer(10, callback)
        timer.schedule()

        assert await timer.flush() is True
        assert calls == [1]
        assert timer.pending is False
        assert await timer.flush() is False
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_drain_waits_for_running_callback(self):
        started = asyncio.Event()
        release = asyncio.Event()
        done = []

        async def callback():
            started.set()
            await release.wait()
            done.append(1)

        timer = PendingTimer(0, callback)
        timer.schedule()
        await started.wait()
        assert timer.running is True

        # cancel() only drops callbacks that have not started
        timer.cancel()
        release.set()
        await timer.drain()

        assert done == [1]
        assert timer.running is False

    @pytest.mark.asyncio
    async def test_callback_exception_is_logged(self):
        async def callback():
            raise RuntimeError("boom")

        timer = PendingTimer(0, callback, name="auto-save")
        with patch("notekeeper.client.scheduling.logger") as mock_logger:
            timer.schedule()
            await asyncio.sleep(0.01)

        mock_logger.exception.assert_called_once()
        assert mock_logger.exception.call_args.kwargs["extra"] == {"timer": "auto-save"}


class TestDoubleEnterDetector:
    def test_two_presses_within_window(self):
        clock = FakeClock()
        detector = DoubleEnterDetector(window=0.8, min_interval=0.05, clock=clock)

        assert detector.register() is False
        clock.advance(0.3)
        assert detector.register() is True

    def test_too_slow(self):
        clock = FakeClock()
        detector = DoubleEnterDetector(window=0.8, min_interval=0.05, clock=clock)

        detector.register()
        clock.advance(0.9)
        assert detector.register() is False
        # The slow press starts a new pair
        clock.advance(0.2)
        assert detector.register() is True

    def test_too_fast_is_ignored(self):
        clock = FakeClock()
        detector = DoubleEnterDetector(window=0.8, min_interval=0.05, clock=clock)

        detector.register()
        clock.advance(0.01)
        assert detector.register() is False

    def test_third_press_starts_new_pair(self):
        clock = FakeClock()
        detector = DoubleEnterDetector(window=0.8, min_interval=0.05, clock=clock)

        detector.register()
        clock.advance(0.2)
        assert detector.register() is True
        clock.advance(0.2)
        assert detector.register() is False
        clock.advance(0.2)
        assert detector.register() is True

    def test_reset(self):
        clock = FakeClock()
        detector = DoubleEnterDetector(clock=clock)

        detector.register()
        detector.reset()
        clock.advance(0.2)
        assert detector.register() is False
