#!/usr/bin/env python3
"""Degen alert cycle - meme coin alerts, spaced out and de-duplicated."""

from ..cache import CacheKey
from ..config import CONFIG, RATE_LIMITS
from ..filters import classify_error, is_retryable_error, is_similar, similarity_ratio
from ..logging_utils import log, log_activity, log_content
from ..state import BotContext, utc_now_iso

DEGEN_FALLBACK = "🚨 Degen radars temporarily offline! Stay alert for those moon missions! 🚀 Always DYOR #degen #crypto"

STATS_TTL_MINUTES = 60 * 24 * 7


def _skip(ctx: BotContext, reason: str, **details) -> dict:
    ctx.record_job_stats(CacheKey.DEGEN_ALERT_STATS, "skipped", ttl_minutes=STATS_TTL_MINUTES)
    return {"success": True, "skipped": True, "reason": reason, **details}


def do_degen_alert(ctx: BotContext, force: bool = False) -> dict:
    """
    Generate and post a degen alert.
    force=True ignores the minimum gap since the last alert.
    """
    if not ctx.should_post_content('degen'):
        return {"success": True, "skipped": True, "reason": "disabled"}

    twitter = ctx.twitter
    crestal = ctx.crestal
    min_gap = CONFIG['degen_alert_min_gap_hours'] * 3600

    try:
        if not twitter.validate_connection():
            raise RuntimeError("Twitter connection failed")

        last_alert = ctx.cache.get(CacheKey.LAST_DEGEN_ALERT_TIME)
        if not force and last_alert and ctx.clock() - last_alert < min_gap:
            next_alert = utc_now_iso(last_alert + min_gap)
            log.info(f"|  Skipping degen alert - next alert at {next_alert}")
            return _skip(ctx, "rate_limited", next_alert=next_alert)

        usage = crestal.usage_stats()
        if usage["emergency_mode"]:
            log.warning("|  Emergency mode - skipping degen alert to conserve caps")
            return _skip(ctx, "emergency_mode", caps_used=usage["daily_count"])

        if usage["daily_count"] > usage["ceiling"] - RATE_LIMITS['degen_caps_reserve']:
            log.warning(f"|  Skipping degen alert - too many caps used today ({usage['daily_count']})")
            return _skip(ctx, "cap_conservation", caps_used=usage["daily_count"])

        caps_before = usage["daily_count"]
        log.info("|  Generating degen alert...")
        alert = crestal.generate_degen_alert()

        previous = ctx.cache.get(CacheKey.LAST_DEGEN_ALERT_CONTENT)
        if is_similar(alert, previous):
            log.info(f"|  Skipping degen alert - {similarity_ratio(alert, previous):.0%} similar to last one")
            # Push the timer anyway so we don't burn caps retrying right away
            ctx.cache.set(CacheKey.LAST_DEGEN_ALERT_TIME, ctx.clock(), 60 * 6)
            return _skip(ctx, "similar_content")

        if len(alert) < CONFIG['min_alert_length']:
            log.info("|  Skipping degen alert - content too short")
            return _skip(ctx, "content_too_short", alert_length=len(alert))

        log_content("degen_alert", {"content": alert})
        tweet = twitter.post_degen_alert(alert)
        if not tweet:
            raise RuntimeError("Failed to post degen alert to Twitter")

        ctx.cache.set(CacheKey.LAST_DEGEN_ALERT_TIME, ctx.clock(), 60 * 8)
        ctx.cache.set(CacheKey.LAST_DEGEN_ALERT_CONTENT, alert, 60 * 8)

        usage = crestal.usage_stats()
        caps_for_alert = usage["daily_count"] - caps_before
        ctx.record_job_stats(CacheKey.DEGEN_ALERT_STATS, "successful",
                             ttl_minutes=STATS_TTL_MINUTES, total_caps_used=caps_for_alert)
        log_activity("DEGEN_ALERT", f"Tweet {tweet.get('id')}")

        return {
            "success": True,
            "tweet_id": tweet.get("id"),
            "alert": alert[:100],
            "stats": {
                "caps_used": usage["daily_count"],
                "caps_used_for_this_alert": caps_for_alert,
                "tweets_this_hour": twitter.stats()["tweets_this_hour"],
                "emergency_mode": usage["emergency_mode"],
                "next_alert_earliest": utc_now_iso(ctx.clock() + min_gap),
            },
            "timestamp": ctx.now_iso(),
        }

    except Exception as e:
        log.error(f"|  Degen alert failed: {e}")
        ctx.record_job_stats(CacheKey.DEGEN_ALERT_STATS, "failed", error=e, ttl_minutes=STATS_TTL_MINUTES)
        ctx.log_error(e, {"job": "degen-alert"})

        error_type = classify_error(e)
        if error_type != 'rate_limit' and twitter.post_degen_alert(DEGEN_FALLBACK):
            log.info("|  Posted degen fallback tweet")

        return {
            "success": False,
            "error": str(e),
            "error_type": error_type,
            "retryable": is_retryable_error(e),
            "timestamp": ctx.now_iso(),
        }
