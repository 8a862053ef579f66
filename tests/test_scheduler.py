"""
Tests for the daily intelligence scheduler.

The clock, sleep and generation routine are injected, so cycles run
instantly and deterministically.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.core.config import Settings
from app.core.errors import GenerationError
from app.core.utc import to_utc
from app.services.intelligence_scheduler import IntelligenceScheduler, SchedulerState


class FakeClock:
    """Wall clock that only moves when the scheduler sleeps."""

    def __init__(self, now: datetime):
        self.now = now
        self.slept: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)
        # advance real elapsed time, not wall-clock time
        self.now = (to_utc(self.now) + timedelta(seconds=seconds)).astimezone(self.now.tzinfo)


def _at(hour: int, minute: int = 0, day: int = 2) -> datetime:
    return datetime(2026, 3, day, hour, minute, tzinfo=timezone.utc)


def _scheduler(settings, clock: FakeClock, generator=None) -> IntelligenceScheduler:
    return IntelligenceScheduler(settings=settings, clock=clock, sleep=clock.sleep, generator=generator)


class TestNextFireTime:
    """Daily at 12:00 in the configured zone (UTC in tests)."""

    def test_before_noon_fires_today(self, settings):
        scheduler = _scheduler(settings, FakeClock(_at(11)))
        assert scheduler.next_fire_time(_at(11)) == _at(12)

    def test_after_noon_fires_tomorrow(self, settings):
        scheduler = _scheduler(settings, FakeClock(_at(13)))
        assert scheduler.next_fire_time(_at(13)) == _at(12, day=3)

    def test_exactly_noon_fires_tomorrow(self, settings):
        """Strictly-before comparison: at 12:00 the next run is the following day."""
        scheduler = _scheduler(settings, FakeClock(_at(12)))
        assert scheduler.next_fire_time(_at(12)) == _at(12, day=3)

    def test_initial_status(self, settings):
        clock = FakeClock(_at(9, 30))
        status = _scheduler(settings, clock).status()
        assert status["state"] == "idle"
        assert status["running"] is False
        assert status["next_update_at"] == _at(12).isoformat()


class TestRunCycle:

    @pytest.mark.anyio
    async def test_success_generates_and_reschedules(self, settings):
        clock = FakeClock(_at(11))
        calls = []

        async def generator():
            calls.append(clock.now)
            return 4

        scheduler = _scheduler(settings, clock, generator)
        scheduler.schedule_next()
        await scheduler.run_cycle()

        assert clock.slept == [3600.0]
        assert calls == [_at(12)]
        assert scheduler.last_generated_at is not None
        assert scheduler.state == SchedulerState.SCHEDULED
        assert scheduler.next_fire_at == _at(12, day=3)

    @pytest.mark.anyio
    async def test_failure_is_swallowed_and_next_attempt_is_tomorrow(self, settings):
        """No sooner retry after a failed cycle."""
        clock = FakeClock(_at(11))

        async def generator():
            raise GenerationError("AI returned invalid JSON")

        scheduler = _scheduler(settings, clock, generator)
        scheduler.schedule_next()
        await scheduler.run_cycle()

        assert scheduler.last_generated_at is None
        assert scheduler.state == SchedulerState.SCHEDULED
        assert scheduler.next_fire_at == _at(12, day=3)

    @pytest.mark.anyio
    async def test_consecutive_cycles_are_a_day_apart(self, settings):
        clock = FakeClock(_at(13))
        calls = []

        async def generator():
            calls.append(clock.now)
            return 1

        scheduler = _scheduler(settings, clock, generator)
        scheduler.schedule_next()
        await scheduler.run_cycle()
        await scheduler.run_cycle()

        assert calls == [_at(12, day=3), _at(12, day=4)]


class TestDaylightSaving:
    """Noon stays noon local time when the offset changes overnight."""

    BERLIN = ZoneInfo("Europe/Berlin")

    @pytest.mark.anyio
    async def test_spring_forward_fires_at_local_noon(self):
        settings = Settings(app_timezone="Europe/Berlin")
        clock = FakeClock(datetime(2026, 3, 28, 13, 0, tzinfo=self.BERLIN))
        calls = []

        async def generator():
            calls.append(clock.now.astimezone(self.BERLIN))
            return 1

        scheduler = _scheduler(settings, clock, generator)
        scheduler.schedule_next()
        await scheduler.run_cycle()

        assert clock.slept == [22 * 3600.0]
        assert calls[0].hour == 12
        assert calls[0].date().isoformat() == "2026-03-29"

    @pytest.mark.anyio
    async def test_fall_back_fires_at_local_noon(self):
        settings = Settings(app_timezone="Europe/Berlin")
        clock = FakeClock(datetime(2026, 10, 24, 13, 0, tzinfo=self.BERLIN))
        calls = []

        async def generator():
            calls.append(clock.now.astimezone(self.BERLIN))
            return 1

        scheduler = _scheduler(settings, clock, generator)
        scheduler.schedule_next()
        await scheduler.run_cycle()

        assert clock.slept == [24 * 3600.0]
        assert calls[0].hour == 12

    def test_server_local_zone_resolves_per_call(self):
        scheduler = IntelligenceScheduler(settings=Settings(app_timezone=""))
        target = scheduler.next_fire_time(datetime.now(timezone.utc))
        assert target.hour == 12
        assert target.utcoffset() == target.replace(tzinfo=None).astimezone().utcoffset()


class TestTrigger:

    @pytest.mark.anyio
    async def test_trigger_leaves_timer_untouched(self, settings):
        clock = FakeClock(_at(8))

        async def generator():
            return 2

        scheduler = _scheduler(settings, clock, generator)
        scheduler.schedule_next()
        before = scheduler.next_fire_at

        assert await scheduler.trigger() == 2
        assert scheduler.next_fire_at == before
        assert scheduler.last_generated_at is not None

    @pytest.mark.anyio
    async def test_trigger_propagates_failure(self, settings):
        async def generator():
            raise GenerationError("bad output")

        scheduler = _scheduler(settings, FakeClock(_at(8)), generator)
        with pytest.raises(GenerationError):
            await scheduler.trigger()
        assert scheduler.last_generated_at is None


class TestStartStop:

    @pytest.mark.anyio
    async def test_start_is_idempotent_and_stop_returns_to_idle(self, settings):
        clock = FakeClock(_at(8))
        never = asyncio.Event()

        async def blocking_sleep(seconds):
            await never.wait()

        scheduler = IntelligenceScheduler(settings=settings, clock=clock, sleep=blocking_sleep)
        scheduler.start()
        task = scheduler._task
        scheduler.start()

        assert scheduler._task is task
        assert scheduler.running is True
        assert scheduler.state == SchedulerState.SCHEDULED
        assert scheduler.next_fire_at == _at(12)

        await scheduler.stop()

        assert scheduler.running is False
        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.next_fire_at is None
        assert task.cancelled()
