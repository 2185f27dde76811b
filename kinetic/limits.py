#!/usr/bin/env python3
"""
Rate limiting and usage accounting for the Kinetic Crypto AI bot.

- SlidingWindowLimiter: N operations per trailing window, one window per key
- ReplyLedger: bounded record of tweets already replied to
- UsageQuota: daily/hourly AI call budget with emergency mode
- PostThrottle: outbound tweets per rolling hour, one per Twitter client

Every check-and-mutate sequence runs under the instance lock.
"""

import threading
import time
from datetime import datetime, timezone
from typing import Callable

from .cache import CacheKey, ExpiringCache, scoped_key
from .config import CYCLES_PER_DAY, MAX_CAPS_PER_CYCLE, MAX_TWEETS_PER_HOUR, RATE_LIMITS
from .logging_utils import log

HOUR = 60 * 60
DAY = 24 * HOUR


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class SlidingWindowLimiter:
    """Timestamps per key live in the shared cache under ``rate_limit_<key>``."""

    def __init__(self, cache: ExpiringCache, namespace: str = "rate_limit"):
        self.cache = cache
        self.namespace = namespace
        self._lock = threading.Lock()

    def check_and_record(self, key: str, max_requests: int, window_minutes: float) -> bool:
        """
        Allow and record the call if fewer than max_requests happened in the
        trailing window. Denied calls are not recorded.
        An empty window holds nothing, so only max_requests decides.
        """
        if window_minutes <= 0:
            return max_requests > 0

        cache_key = scoped_key(self.namespace, key)
        window = window_minutes * 60
        with self._lock:
            now = self.cache.now()
            recent = [t for t in self.cache.get(cache_key, []) if now - t < window]
            allowed = len(recent) < max_requests
            if allowed:
                recent.append(now)
            self.cache.set(cache_key, recent, window_minutes)
        if not allowed:
            log.debug(f"Rate limited: {key} ({max_requests}/{window_minutes}min)")
        return allowed


class ReplyLedger:
    """Tweet ids we already answered, oldest evicted first."""

    def __init__(self, cache: ExpiringCache,
                 max_retained: int = RATE_LIMITS['replied_tweets_retained'],
                 ttl_minutes: int = 60 * 24 * 7):
        self.cache = cache
        self.max_retained = max_retained
        self.ttl_minutes = ttl_minutes
        self._lock = threading.Lock()

    def has_replied(self, tweet_id) -> bool:
        return str(tweet_id) in self.cache.get(CacheKey.REPLIED_TWEETS, [])

    def mark_replied(self, tweet_id) -> None:
        with self._lock:
            replied = [t for t in self.cache.get(CacheKey.REPLIED_TWEETS, []) if t != str(tweet_id)]
            replied.append(str(tweet_id))
            if len(replied) > self.max_retained:
                replied = replied[-self.max_retained:]
            self.cache.set(CacheKey.REPLIED_TWEETS, replied, self.ttl_minutes)


class UsageQuota:
    """
    AI call budget. Calls are charged when attempted, not when they succeed.

    The daily and hourly counters reset from separate checkpoints. Emergency
    mode blocks all calls until the next daily reset.
    """

    def __init__(self, max_per_cycle: int = MAX_CAPS_PER_CYCLE,
                 cycles_per_day: int = CYCLES_PER_DAY,
                 clock: Callable[[], float] = time.time):
        self.ceiling = max_per_cycle * cycles_per_day
        self._clock = clock
        now = clock()
        self.daily_count = 0
        self.hourly_count = 0
        self.last_reset_at = now
        self.hourly_reset_at = now
        self.emergency_mode = False
        self.emergency_reason = ""
        self._lock = threading.RLock()

    def reset_if_due(self) -> None:
        with self._lock:
            now = self._clock()
            if now - self.last_reset_at >= DAY:
                self.daily_count = 0
                self.last_reset_at = now
                if self.emergency_mode:
                    log.info("Daily quota reset - leaving emergency mode")
                self.emergency_mode = False
                self.emergency_reason = ""
            if now - self.hourly_reset_at >= HOUR:
                self.hourly_count = 0
                self.hourly_reset_at = now

    def can_proceed(self) -> bool:
        with self._lock:
            self.reset_if_due()
            return not self.emergency_mode and self.daily_count < self.ceiling

    def record(self) -> None:
        with self._lock:
            self.reset_if_due()
            self.daily_count += 1
            self.hourly_count += 1

    def try_acquire(self) -> bool:
        """Check and charge one call atomically."""
        with self._lock:
            self.reset_if_due()
            if self.emergency_mode:
                return False
            if self.daily_count >= self.ceiling:
                self.enter_emergency_mode(f"daily ceiling of {self.ceiling} calls reached")
                return False
            self.record()
            return True

    def enter_emergency_mode(self, reason: str = "") -> None:
        with self._lock:
            if not self.emergency_mode:
                log.warning(f"Entering emergency mode: {reason or 'no reason given'}")
            self.emergency_mode = True
            self.emergency_reason = reason

    def stats(self) -> dict:
        with self._lock:
            self.reset_if_due()
            return {
                "daily_count": self.daily_count,
                "hourly_count": self.hourly_count,
                "ceiling": self.ceiling,
                "remaining": max(0, self.ceiling - self.daily_count),
                "emergency_mode": self.emergency_mode,
                "emergency_reason": self.emergency_reason,
                "last_reset_at": _iso(self.last_reset_at),
                "hourly_reset_at": _iso(self.hourly_reset_at),
            }


class PostThrottle:
    """Advisory cap on tweets per rolling hour."""

    def __init__(self, max_per_hour: int = MAX_TWEETS_PER_HOUR,
                 clock: Callable[[], float] = time.time):
        self.max_per_hour = max_per_hour
        self._clock = clock
        self.hourly_count = 0
        self.last_reset_at = clock()
        self._lock = threading.RLock()

    def reset_if_due(self) -> None:
        with self._lock:
            now = self._clock()
            if now - self.last_reset_at >= HOUR:
                self.hourly_count = 0
                self.last_reset_at = now
                log.debug("Tweet counter reset")

    def can_post(self) -> bool:
        with self._lock:
            self.reset_if_due()
            return self.hourly_count < self.max_per_hour

    def record_post(self) -> None:
        with self._lock:
            self.reset_if_due()
            self.hourly_count += 1
            log.info(f"Tweets this hour: {self.hourly_count}/{self.max_per_hour}")

    def stats(self) -> dict:
        with self._lock:
            self.reset_if_due()
            return {
                "tweets_this_hour": self.hourly_count,
                "max_tweets_per_hour": self.max_per_hour,
                "can_tweet": self.hourly_count < self.max_per_hour,
                "last_reset_at": _iso(self.last_reset_at),
            }
