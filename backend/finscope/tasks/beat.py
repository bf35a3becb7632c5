"""
FinScope — Refresh Beat Schedule

Crontab entries for the cache-refresh jobs, laid out as a Celery beat
schedule. No broker or worker is involved: the in-process
``RefreshScheduler`` evaluates these entries on the API's own event loop,
in the scheduler timezone.
"""

from __future__ import annotations

from celery.schedules import crontab

BEAT_SCHEDULE = {
    "refresh-quotes-every-5m": {
        "task": "quotes",
        "schedule": crontab(minute="*/5"),
    },
    "refresh-news-every-15m": {
        "task": "news",
        "schedule": crontab(minute="*/15"),
    },
    "refresh-economic-every-30m": {
        "task": "economic",
        "schedule": crontab(minute="*/30"),
    },
    "daily-health-probe": {
        "task": "health",
        "schedule": crontab(hour=9, minute=0),  # 09:00 scheduler timezone
    },
    "hourly-process-stats": {
        "task": "stats",
        "schedule": crontab(minute=0),
    },
}
