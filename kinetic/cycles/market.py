#!/usr/bin/env python3
"""Scheduled post cycles - market updates, DeFi updates and trading tips."""

from ..cache import CacheKey
from ..config import CONFIG
from ..filters import is_similar, similarity_ratio
from ..logging_utils import log, log_activity, log_content
from ..nlp_analysis import add_emojis_to_content
from ..state import BotContext

MARKET_FALLBACK = "🤖 Market analysis temporarily unavailable. Stay tuned for updates! Always DYOR 📊"


def do_market_update(ctx: BotContext) -> dict:
    """
    Generate market analysis and tweet it.
    In emergency mode the last good analysis is reposted instead.
    """
    if not ctx.should_post_content('market'):
        return {"success": True, "skipped": True, "reason": "disabled"}

    twitter = ctx.twitter
    crestal = ctx.crestal

    try:
        if not twitter.validate_connection():
            raise RuntimeError("Twitter connection failed")

        usage = crestal.usage_stats()
        if usage["emergency_mode"]:
            cached = ctx.cache.get(CacheKey.LAST_MARKET_ANALYSIS)
            if cached:
                log.warning("|  Emergency mode active - reposting cached analysis")
                tweet = twitter.post_market_update(cached + " (cached)")
                return {"success": bool(tweet), "mode": "emergency", "analysis": cached}

        log.info("|  Generating market analysis...")
        analysis = crestal.generate_market_analysis()
        ctx.cache.set(CacheKey.LAST_MARKET_ANALYSIS, analysis, 60)

        log_content("market_update", {"content": analysis})
        tweet = twitter.post_market_update(add_emojis_to_content(analysis))
        if not tweet:
            raise RuntimeError("Failed to post market update to Twitter")

        ctx.record_job_stats(CacheKey.MARKET_UPDATE_STATS, "successful")
        log_activity("MARKET_UPDATE", f"Tweet {tweet.get('id')}")

        usage = crestal.usage_stats()
        return {
            "success": True,
            "tweet_id": tweet.get("id"),
            "analysis": analysis[:100],
            "stats": {
                "caps_used": usage["daily_count"],
                "tweets_this_hour": twitter.stats()["tweets_this_hour"],
                "emergency_mode": usage["emergency_mode"],
            },
            "timestamp": ctx.now_iso(),
        }

    except Exception as e:
        log.error(f"|  Market update failed: {e}")
        ctx.record_job_stats(CacheKey.MARKET_UPDATE_STATS, "failed", error=e)
        ctx.log_error(e, {"job": "market-update"})

        if twitter.post_market_update(MARKET_FALLBACK):
            log.info("|  Posted fallback tweet")

        return {"success": False, "error": str(e), "timestamp": ctx.now_iso()}


def _post_generated(ctx: BotContext, kind: str, generate, last_key: CacheKey,
                    stats_key: CacheKey, content_type: str) -> dict:
    """Shared flow for the DeFi and tip cycles: generate, de-duplicate, post."""
    if not ctx.should_post_content(content_type):
        return {"success": True, "skipped": True, "reason": "disabled"}

    try:
        text = generate()

        previous = ctx.cache.get(last_key)
        threshold = CONFIG['strict_similarity_threshold']
        if is_similar(text, previous, threshold):
            log.info(f"|  Skipping {kind} - {similarity_ratio(text, previous):.0%} similar to last one")
            ctx.record_job_stats(stats_key, "skipped")
            return {"success": True, "skipped": True, "reason": "similar_content"}

        log_content(kind, {"content": text})
        tweet = ctx.twitter.post_update(kind, text)
        if not tweet:
            raise RuntimeError(f"Failed to post {kind} update to Twitter")

        ctx.cache.set(last_key, text, 60 * 24)
        ctx.record_job_stats(stats_key, "successful")
        log_activity(kind.upper(), f"Tweet {tweet.get('id')}")
        return {"success": True, "tweet_id": tweet.get("id"), "content": text[:100], "timestamp": ctx.now_iso()}

    except Exception as e:
        log.error(f"|  {kind} cycle failed: {e}")
        ctx.record_job_stats(stats_key, "failed", error=e)
        ctx.log_error(e, {"job": kind})
        return {"success": False, "error": str(e), "timestamp": ctx.now_iso()}


def do_defi_update(ctx: BotContext) -> dict:
    return _post_generated(ctx, "defi", lambda: ctx.crestal.generate_defi_update(),
                           CacheKey.LAST_DEFI_UPDATE, CacheKey.DEFI_UPDATE_STATS, 'defi')


def do_trading_tip(ctx: BotContext) -> dict:
    return _post_generated(ctx, "tip", lambda: ctx.crestal.generate_trading_tip(),
                           CacheKey.LAST_TRADING_TIP, CacheKey.TRADING_TIP_STATS, 'tips')
