"""
FinScope — Refresh Scheduler

Cooperative minute-granularity scheduler that keeps the cache warm:

- quotes every 5 minutes (regional top symbols and popular tickers)
- news every 15 minutes (global and India)
- economic indicators every 30 minutes (US, India, forex)
- a provider health probe daily at 09:00
- process statistics hourly

Jobs go through the same service methods as requests, so they prime the
cache by reading through it. A failing job is logged and recorded; the
others keep running.
"""

from __future__ import annotations

import asyncio
import copy
import os
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

import structlog
from celery.schedules import crontab

from finscope.errors import utc_now_iso
from finscope.services import ServiceContainer
from finscope.services.market_data import POPULAR_SYMBOLS
from finscope.tasks.beat import BEAT_SCHEDULE

log = structlog.get_logger(__name__)

JobFunc = Callable[[ServiceContainer], Awaitable[Optional[dict]]]


# ──────────────────────────────────────────────
# Jobs
# ──────────────────────────────────────────────


async def refresh_quotes(services: ServiceContainer) -> dict:
    india, popular = await asyncio.gather(
        services.market.get_regional_top_symbols("india"),
        services.market.get_many(POPULAR_SYMBOLS),
    )
    return {"india": india["count"], "popular": sum(1 for _, q, _ in popular if q is not None)}


async def refresh_news(services: ServiceContainer) -> dict:
    general, india = await asyncio.gather(
        services.news.get_general_articles("global"),
        services.news.get_indian_articles(),
    )
    return {"global": len(general), "india": len(india)}


async def refresh_economic(services: ServiceContainer) -> dict:
    us, india, forex = await asyncio.gather(
        services.economic.get_us_summary(),
        services.economic.get_regional_summary("india"),
        services.economic.get_forex(),
    )
    return {"us": len(us), "india": len(india), "forex": len(forex)}


async def probe_health(services: ServiceContainer) -> dict:
    """One representative call per provider service."""
    probes = {
        "marketData": services.market.health,
        "economicIndicators": services.economic.health,
        "news": services.news.health,
        "companyFilings": services.filings.health,
        "banking": services.banking.health_check,
    }
    results = await asyncio.gather(*(p() for p in probes.values()), return_exceptions=True)
    records = []
    for name, res in zip(probes, results):
        if isinstance(res, BaseException):
            record = {"service": name, "status": "unhealthy", "error": getattr(res, "message", str(res))}
            log.warning("scheduler.health.service", **record)
        else:
            record = {"service": name, "status": res.get("status", "healthy")}
            log.info("scheduler.health.service", **record)
        records.append(record)
    return {"services": records}


def _memory_mb() -> Optional[float]:
    try:
        import resource
    except ImportError:
        return None
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(peak / divisor, 1)


_STARTED = time.monotonic()


async def process_stats(services: ServiceContainer) -> dict:
    stats = {
        "pid": os.getpid(),
        "uptimeSeconds": round(time.monotonic() - _STARTED),
        "maxRssMb": _memory_mb(),
        "cache": services.cache.stats(),
    }
    log.info("scheduler.process_stats", **stats)
    return stats


JOBS: dict[str, JobFunc] = {
    "quotes": refresh_quotes,
    "news": refresh_news,
    "economic": refresh_economic,
    "health": probe_health,
    "stats": process_stats,
}


# ──────────────────────────────────────────────
# Scheduler
# ──────────────────────────────────────────────


@dataclass
class ScheduledJob:
    """A beat entry bound to its job function.

    ``last_run_at`` anchors the crontab: the job is due once the next
    matching minute after it has passed.
    """

    name: str
    schedule: crontab
    func: JobFunc
    last_run_at: datetime
    last_run: Optional[str] = None
    last_status: Optional[str] = None
    last_error: Optional[str] = None
    last_duration_ms: Optional[float] = None
    runs: int = 0
    failures: int = 0
    result: Optional[dict] = field(default=None, repr=False)

    def is_due(self) -> bool:
        return self.schedule.is_due(self.last_run_at).is_due

    def seconds_until_due(self) -> float:
        return max(0.0, self.schedule.remaining_estimate(self.last_run_at).total_seconds())

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "schedule": str(self.schedule),
            "lastRun": self.last_run,
            "lastStatus": self.last_status,
            "lastError": self.last_error,
            "lastDurationMs": self.last_duration_ms,
            "runs": self.runs,
            "failures": self.failures,
        }


class RefreshScheduler:
    """Runs the beat schedule on the current event loop."""

    def __init__(
        self,
        services: ServiceContainer,
        timezone: str = "UTC",
        jobs: Optional[dict[str, JobFunc]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.services = services
        self.timezone = ZoneInfo(timezone)
        self._clock = clock
        job_funcs = JOBS if jobs is None else jobs
        started = self.now()
        self.jobs: dict[str, ScheduledJob] = {}
        for entry in BEAT_SCHEDULE.values():
            name = entry["task"]
            if name not in job_funcs:
                continue
            schedule = copy.copy(entry["schedule"])
            schedule.nowfun = self.now
            self.jobs[name] = ScheduledJob(name=name, schedule=schedule, func=job_funcs[name], last_run_at=started)
        self._task: Optional[asyncio.Task] = None
        self._inflight: set[asyncio.Task] = set()

    def now(self) -> datetime:
        """Timezone-aware current time in the scheduler timezone."""
        if self._clock is not None:
            return self._clock()
        return datetime.now(self.timezone)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="finscope-refresh-scheduler")
        log.info("scheduler.started", jobs=list(self.jobs), timezone=str(self.timezone))

    async def stop(self) -> None:
        tasks = [t for t in [self._task, *self._inflight] if t is not None and not t.done()]
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        self._inflight.clear()
        log.info("scheduler.stopped")

    async def _loop(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.seconds_until_next())

    def seconds_until_next(self) -> float:
        """Sleep until the earliest job is due, at least one second."""
        if not self.jobs:
            return 60.0
        return max(1.0, min(job.seconds_until_due() for job in self.jobs.values()))

    def tick(self) -> list[str]:
        """Launch every job that is due now. Returns the launched job names."""
        now = self.now()
        due = [job for job in self.jobs.values() if job.is_due()]
        for job in due:
            job.last_run_at = now
            task = asyncio.create_task(self.run_job(job.name))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
        return [job.name for job in due]

    async def run_job(self, name: str) -> Optional[dict]:
        """Run one job now, recording its outcome. Never raises."""
        job = self.jobs[name]
        start = time.perf_counter()
        job.last_run = utc_now_iso()
        job.runs += 1
        log.info("scheduler.job.start", job=name)
        try:
            result = await job.func(self.services)
        except Exception as exc:
            job.failures += 1
            job.last_status = "failed"
            job.last_error = str(exc)
            log.error("scheduler.job.failed", job=name, error=str(exc), exc_info=True)
            result = None
        else:
            job.last_status = "ok"
            job.last_error = None
            job.result = result
            log.info("scheduler.job.complete", job=name, result=result)
        job.last_duration_ms = round((time.perf_counter() - start) * 1000, 1)
        return result

    def status(self) -> dict:
        return {
            "running": self.running,
            "timezone": str(self.timezone),
            "jobs": [job.to_dict() for job in self.jobs.values()],
        }
