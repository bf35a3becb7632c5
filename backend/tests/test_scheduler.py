"""
Refresh Scheduler Tests

Crontab due-ness from the last run, job isolation and the status report.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

from finscope.tasks.beat import BEAT_SCHEDULE
from finscope.tasks.scheduler import JOBS, RefreshScheduler


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _at(hour: int, minute: int, second: int = 0, tz=timezone.utc) -> datetime:
    return datetime(2024, 6, 3, hour, minute, second, tzinfo=tz)  # a Monday


def _due_after(services, last: datetime, now: datetime) -> set[str]:
    clock = FakeClock(last)
    scheduler = RefreshScheduler(services, clock=clock)
    clock.now = now
    return {name for name, job in scheduler.jobs.items() if job.is_due()}


class TestBeatSchedule:
    def test_every_task_has_a_job(self):
        assert {entry["task"] for entry in BEAT_SCHEDULE.values()} == set(JOBS)

    def test_jobs_built_from_schedule(self, services):
        scheduler = RefreshScheduler(services)
        assert set(scheduler.jobs) == {"quotes", "news", "economic", "health", "stats"}

    def test_schedules_are_per_scheduler_copies(self, services):
        scheduler = RefreshScheduler(services)
        assert all(entry["schedule"].nowfun is None for entry in BEAT_SCHEDULE.values())
        assert scheduler.jobs["quotes"].schedule.nowfun == scheduler.now


class TestIsDue:
    def test_nine_oclock(self, services):
        due = _due_after(services, _at(8, 59, 30), _at(9, 0))
        assert due == {"quotes", "news", "economic", "health", "stats"}

    def test_five_past(self, services):
        assert _due_after(services, _at(14, 4, 30), _at(14, 5)) == {"quotes"}

    def test_half_past(self, services):
        assert _due_after(services, _at(14, 29, 30), _at(14, 30)) == {"quotes", "news", "economic"}

    def test_off_minute(self, services):
        assert _due_after(services, _at(14, 6, 30), _at(14, 7)) == set()

    def test_health_follows_scheduler_timezone(self, services):
        ist = ZoneInfo("Asia/Kolkata")
        clock = FakeClock(_at(8, 59, 30, tz=ist))
        scheduler = RefreshScheduler(services, timezone="Asia/Kolkata", clock=clock)
        clock.now = _at(9, 0, tz=ist)
        assert scheduler.jobs["health"].is_due()

    def test_seconds_until_next(self, services):
        scheduler = RefreshScheduler(services, clock=FakeClock(_at(14, 4, 30)))
        assert scheduler.jobs["quotes"].seconds_until_due() == 30
        assert scheduler.seconds_until_next() == 30

    def test_sleep_has_a_floor(self, services):
        clock = FakeClock(_at(14, 4, 30))
        scheduler = RefreshScheduler(services, clock=clock)
        clock.now = _at(14, 5, 30)
        assert scheduler.seconds_until_next() == 1.0


class TestRunJob:
    def test_failure_is_isolated(self, services):
        jobs = dict(JOBS, news=AsyncMock(side_effect=RuntimeError("feed down")))
        scheduler = RefreshScheduler(services, jobs=jobs)

        async def run():
            failed = await scheduler.run_job("news")
            ok = await scheduler.run_job("quotes")
            return failed, ok

        failed, ok = asyncio.run(run())
        assert failed is None
        assert ok["india"] == 10
        news = scheduler.jobs["news"]
        assert news.failures == 1
        assert news.last_status == "failed"
        assert news.last_error == "feed down"
        assert scheduler.jobs["quotes"].last_status == "ok"

    def test_jobs_warm_the_cache(self, services):
        scheduler = RefreshScheduler(services)
        asyncio.run(scheduler.run_job("economic"))
        assert len(services.cache) > 0

    def test_health_probe(self, services):
        scheduler = RefreshScheduler(services)
        result = asyncio.run(scheduler.run_job("health"))
        assert {r["status"] for r in result["services"]} == {"healthy"}

    def test_stats(self, services):
        result = asyncio.run(RefreshScheduler(services).run_job("stats"))
        assert "cache" in result
        assert result["pid"] > 0

    def test_tick_launches_due_jobs(self, services):
        stats = AsyncMock(return_value={"ok": True})
        clock = FakeClock(_at(9, 59, 30))
        scheduler = RefreshScheduler(services, jobs={"stats": stats}, clock=clock)
        clock.now = _at(10, 0)

        async def run():
            launched = scheduler.tick()
            again = scheduler.tick()
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            return launched, again

        assert asyncio.run(run()) == (["stats"], [])
        stats.assert_awaited_once_with(services)
        assert scheduler.jobs["stats"].last_run_at == _at(10, 0)


class TestLifecycle:
    def test_start_and_stop(self, services):
        scheduler = RefreshScheduler(services)

        async def run():
            scheduler.start()
            running = scheduler.running
            await scheduler.stop()
            return running

        assert asyncio.run(run()) is True
        assert scheduler.running is False

    def test_status(self, services):
        status = RefreshScheduler(services, timezone="Asia/Kolkata").status()
        assert status["running"] is False
        assert status["timezone"] == "Asia/Kolkata"
        assert [j["name"] for j in status["jobs"]] == ["quotes", "news", "economic", "health", "stats"]
