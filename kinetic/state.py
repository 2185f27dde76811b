#!/usr/bin/env python3
"""
State management for the Kinetic Crypto AI bot.

BotContext owns every piece of mutable policy state (cache, limiter, quota)
and the service clients built on top of it. One context per process, created
by the entry point and passed down to each job.
"""

import os
import time
from datetime import datetime, timezone
from typing import Callable

from . import config
from .cache import CacheKey, ExpiringCache
from .config import CYCLES_PER_DAY, MAX_CAPS_PER_CYCLE
from .crestal import CrestalClient
from .formatter import format_uptime
from .limits import SlidingWindowLimiter, UsageQuota
from .logging_utils import log
from .twitter import TwitterClient

MAX_RECENT_ERRORS = 20
DEGRADED_ERROR_COUNT = 10


def utc_now_iso(ts: float | None = None) -> str:
    return datetime.fromtimestamp(time.time() if ts is None else ts, tz=timezone.utc).isoformat()


class BotContext:
    def __init__(self, clock: Callable[[], float] = time.time,
                 twitter: TwitterClient | None = None,
                 crestal: CrestalClient | None = None):
        self.clock = clock
        self.cache = ExpiringCache(clock)
        self.limiter = SlidingWindowLimiter(self.cache)
        self.quota = UsageQuota(MAX_CAPS_PER_CYCLE, CYCLES_PER_DAY, clock)
        self.started_at = clock()
        self.job_runs: dict[str, float] = {}
        self._twitter = twitter
        self._crestal = crestal

    @property
    def twitter(self) -> TwitterClient:
        if self._twitter is None:
            self._twitter = TwitterClient(self.cache)
        return self._twitter

    @property
    def crestal(self) -> CrestalClient:
        if self._crestal is None:
            self._crestal = CrestalClient(self.cache, self.quota)
        return self._crestal

    def now_iso(self) -> str:
        return utc_now_iso(self.clock())

    # === SCHEDULING ===

    def job_due(self, name: str, interval_minutes: float) -> bool:
        """Check if enough time has passed to run a job again."""
        last_run = self.job_runs.get(name)
        return last_run is None or self.clock() - last_run >= interval_minutes * 60

    def mark_job_run(self, name: str) -> None:
        self.job_runs[name] = self.clock()

    # === MAINTENANCE / FEATURE FLAGS ===

    def is_maintenance_mode(self) -> bool:
        return os.getenv('MAINTENANCE_MODE') == 'true' or self.cache.get(CacheKey.MAINTENANCE_MODE) is True

    def set_maintenance_mode(self, enabled: bool, reason: str = '') -> None:
        self.cache.set(CacheKey.MAINTENANCE_MODE, enabled, 60 * 24)
        if enabled:
            self.cache.set(CacheKey.MAINTENANCE_REASON, reason, 60 * 24)
            log.info(f"Maintenance mode enabled: {reason}")
        else:
            self.cache.delete(CacheKey.MAINTENANCE_REASON)
            log.info("Maintenance mode disabled")

    def should_post_content(self, content_type: str) -> bool:
        if self.is_maintenance_mode():
            log.info(f"|  Skipping {content_type} - maintenance mode")
            return False
        if not config.feature_enabled(content_type):
            log.info(f"|  Skipping {content_type} - feature disabled")
            return False
        return True

    # === ERRORS & STATS ===

    def log_error(self, error: Exception, context: dict | None = None) -> None:
        """Keep the last few errors around for health checks."""
        entry = {
            "message": str(error),
            "type": type(error).__name__,
            "context": context or {},
            "timestamp": self.now_iso(),
        }
        log.error(f"Error logged: {entry['message']} {entry['context']}")

        recent = self.cache.get(CacheKey.RECENT_ERRORS, [])
        recent.append(entry)
        self.cache.set(CacheKey.RECENT_ERRORS, recent[-MAX_RECENT_ERRORS:], 60 * 24)

    def record_job_stats(self, key: CacheKey, outcome: str, error: Exception | None = None,
                         ttl_minutes: int = 60 * 24, **extra) -> dict:
        """Count a job run. outcome is 'successful', 'skipped' or 'failed'."""
        stats = self.cache.get(key) or {"total": 0, "successful": 0, "skipped": 0, "failed": 0}
        stats["total"] += 1
        stats[outcome] = stats.get(outcome, 0) + 1
        if outcome == "successful":
            stats["last_success"] = self.now_iso()
        if error is not None:
            stats["last_error"] = {"message": str(error), "timestamp": self.now_iso()}
            history = stats.setdefault("error_history", [])
            history.append(stats["last_error"])
            stats["error_history"] = history[-10:]
        for name, value in extra.items():
            stats[name] = stats.get(name, 0) + value
        self.cache.set(key, stats, ttl_minutes)
        return stats

    def system_health(self) -> dict:
        uptime = self.clock() - self.started_at
        health = {
            "status": "healthy",
            "timestamp": self.now_iso(),
            "uptime": format_uptime(uptime),
            "features": {
                "maintenance_mode": self.is_maintenance_mode(),
                "auto_posts_enabled": config.feature_enabled('market'),
                "mention_replies_enabled": config.feature_enabled('mentions'),
                "degen_alerts_enabled": config.feature_enabled('degen'),
            },
            "cache": self.cache.stats()["total_items"],
            "quota": self.quota.stats(),
        }

        recent = self.cache.get(CacheKey.RECENT_ERRORS, [])
        if recent:
            health["recent_errors"] = recent[-5:]
            if len(recent) > DEGRADED_ERROR_COUNT:
                health["status"] = "degraded"

        return health

    def analytics_report(self) -> dict:
        return {
            "market_updates": self.cache.get(CacheKey.MARKET_UPDATE_STATS, {}),
            "degen_alerts": self.cache.get(CacheKey.DEGEN_ALERT_STATS, {}),
            "defi_updates": self.cache.get(CacheKey.DEFI_UPDATE_STATS, {}),
            "trading_tips": self.cache.get(CacheKey.TRADING_TIP_STATS, {}),
            "mention_processing": self.cache.get(CacheKey.MENTION_PROCESSING_STATS, {}),
            "global_interactions": self.cache.get(CacheKey.GLOBAL_INTERACTION_STATS, {}),
            "system_health": self.system_health(),
            "timestamp": self.now_iso(),
        }
