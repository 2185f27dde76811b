#!/usr/bin/env python3
"""
In-memory expiring key-value cache.

Entries expire lazily on read; sweep() drops everything already expired and is
run on a fixed interval by the scheduler so unread keys do not pile up.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from .config import CACHE_DURATION_MINUTES
from .logging_utils import log


class CacheKey(str, Enum):
    """Well-known cache keys shared across jobs."""
    MARKET_ANALYSIS = "market_analysis"
    LAST_MARKET_ANALYSIS = "last_market_analysis"
    DEFI_UPDATE = "defi_update"
    LAST_DEFI_UPDATE = "last_defi_update"
    LAST_TRADING_TIP = "last_trading_tip"
    LAST_DEGEN_ALERT_TIME = "last_degen_alert_time"
    LAST_DEGEN_ALERT_CONTENT = "last_degen_alert_content"
    LAST_MENTION_ID = "last_mention_id"
    REPLIED_TWEETS = "replied_tweets"
    MAINTENANCE_MODE = "maintenance_mode"
    MAINTENANCE_REASON = "maintenance_reason"
    RECENT_ERRORS = "recent_errors"
    MARKET_UPDATE_STATS = "market_update_stats"
    DEGEN_ALERT_STATS = "degen_alert_stats"
    DEFI_UPDATE_STATS = "defi_update_stats"
    TRADING_TIP_STATS = "trading_tip_stats"
    MENTION_PROCESSING_STATS = "mention_processing_stats"
    GLOBAL_INTERACTION_STATS = "global_interaction_stats"


def scoped_key(namespace: str, ident: str) -> str:
    """Build a per-entity key such as ``user_interactions_alice``."""
    return f"{namespace}_{ident}"


def _key(key) -> str:
    return key.value if isinstance(key, CacheKey) else key


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class ExpiringCache:
    """Mapping of string keys to values with a per-entry time-to-live."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def now(self) -> float:
        return self._clock()

    def set(self, key, value: Any, ttl_minutes: float = CACHE_DURATION_MINUTES) -> None:
        """
        Store value under key, replacing any existing entry.
        A non-positive TTL stores nothing and drops the old entry.
        """
        now = self._clock()
        with self._lock:
            if ttl_minutes <= 0:
                self._entries.pop(_key(key), None)
                return
            self._entries[_key(key)] = CacheEntry(value, now, now + ttl_minutes * 60)
        log.debug(f"Cached {_key(key)} ({ttl_minutes}min)")

    def get(self, key, default: Any = None) -> Any:
        """Return the stored value, or default when missing or expired."""
        key = _key(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return default
            return entry.value

    def delete(self, key) -> None:
        with self._lock:
            self._entries.pop(_key(key), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
            for k in expired:
                del self._entries[k]
        if expired:
            log.info(f"Cleaned up {len(expired)} expired cache items")
        return len(expired)

    def stats(self) -> dict:
        """Introspection only: never evicts."""
        now = self._clock()
        with self._lock:
            items = [
                {
                    "key": key,
                    "age_minutes": int((now - entry.created_at) // 60),
                    "ttl_remaining_minutes": max(0, int((entry.expires_at - now) // 60)),
                    "expired": entry.is_expired(now),
                }
                for key, entry in self._entries.items()
            ]
        return {"total_items": len(items), "items": items}

    def __len__(self) -> int:
        return len(self._entries)
