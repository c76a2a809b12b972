"""Tests for the reset countdown."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from daily_trainer.core.countdown import CountdownSnapshot, ResetCountdown

START = datetime(2024, 5, 10, 22, 0, tzinfo=timezone.utc)
MIDNIGHT = datetime(2024, 5, 11, 0, 0, tzinfo=timezone.utc)


class SteppingClock:
    """Clock moved by hand."""

    def __init__(self, start):
        self.current = start

    def now(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)

    def set(self, value):
        self.current = value


@pytest.fixture
def fake_clock():
    return SteppingClock(START)


class TestSnapshot:
    """Tests for CountdownSnapshot."""

    def test_build(self):
        snapshot = CountdownSnapshot.build(3_723_000, MIDNIGHT)
        assert (snapshot.hours_remaining, snapshot.minutes_remaining, snapshot.seconds_remaining) == (1, 2, 3)
        assert snapshot.formatted == "01:02:03"
        assert not snapshot.is_elapsed

    def test_build_clamps_negative(self):
        snapshot = CountdownSnapshot.build(-10, MIDNIGHT)
        assert snapshot.ms_remaining == 0
        assert snapshot.is_elapsed
        assert snapshot.to_dict()["next_reset"] == MIDNIGHT.isoformat()


class TestResetCountdown:
    """Tests for ResetCountdown."""

    def test_initial_target(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        assert countdown.target == MIDNIGHT
        assert countdown.snapshot.formatted == "02:00:00"

    def test_tick_counts_down(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        fake_clock.advance(minutes=30, seconds=15)
        assert countdown.tick().formatted == "01:29:45"

    def test_tick_past_target_rolls_over_and_notifies(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        fired = []
        countdown.on_elapsed(fired.append)

        fake_clock.set(MIDNIGHT + timedelta(seconds=1))
        snapshot = countdown.tick()

        assert fired == [MIDNIGHT]
        assert countdown.target == MIDNIGHT + timedelta(days=1)
        assert snapshot.formatted == "23:59:59"

    def test_backward_clock_jump_corrects_target(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        fired = []
        countdown.on_elapsed(fired.append)

        fake_clock.set(START - timedelta(days=2))
        countdown.tick()

        assert countdown.target == MIDNIGHT - timedelta(days=2)
        assert countdown.snapshot.ms_remaining == 2 * 3600 * 1000
        assert fired == []

    def test_forward_jump_within_day_keeps_target(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        fake_clock.advance(hours=1, minutes=59)
        countdown.tick()
        assert countdown.target == MIDNIGHT
        assert countdown.snapshot.formatted == "00:01:00"

    def test_resume_after_suspension(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        fired = []
        countdown.on_elapsed(fired.append)

        fake_clock.advance(days=3)
        snapshot = countdown.resume()

        assert fired == [MIDNIGHT]
        assert countdown.target == MIDNIGHT + timedelta(days=3)
        assert snapshot.formatted == "02:00:00"

    def test_set_offset_reanchors_without_notifying(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        fired = []
        countdown.on_elapsed(fired.append)

        countdown.set_offset(5)

        assert countdown.offset_hours == 5
        assert countdown.target == MIDNIGHT + timedelta(hours=5)
        assert fired == []

    def test_unsubscribe(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        fired = []
        unsubscribe = countdown.on_elapsed(fired.append)
        unsubscribe()
        unsubscribe()

        fake_clock.set(MIDNIGHT)
        countdown.tick()
        assert fired == []

    def test_failing_callback_does_not_block_others(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        fired = []

        def broken(boundary):
            raise RuntimeError("boom")

        countdown.on_elapsed(broken)
        countdown.on_elapsed(fired.append)

        fake_clock.set(MIDNIGHT)
        countdown.tick()
        assert fired == [MIDNIGHT]

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            ResetCountdown(interval=0)

    @pytest.mark.asyncio
    async def test_async_callback_is_scheduled(self, fake_clock):
        countdown = ResetCountdown(clock=fake_clock)
        fired = asyncio.Event()
        seen = []

        async def on_reset(boundary):
            seen.append(boundary)
            fired.set()

        countdown.on_elapsed(on_reset)
        fake_clock.set(MIDNIGHT)
        countdown.tick()

        await asyncio.wait_for(fired.wait(), timeout=1)
        assert seen == [MIDNIGHT]
        await countdown.stop()

    @pytest.mark.asyncio
    async def test_timer_task_ticks_and_stops(self, fake_clock):
        fired = []
        async with ResetCountdown(clock=fake_clock, interval=0.01) as countdown:
            countdown.on_elapsed(fired.append)
            assert countdown.is_running
            fake_clock.set(MIDNIGHT + timedelta(seconds=5))
            for _ in range(100):
                if fired:
                    break
                await asyncio.sleep(0.01)
        assert not countdown.is_running
        assert fired == [MIDNIGHT]
        assert countdown.target == MIDNIGHT + timedelta(days=1)
