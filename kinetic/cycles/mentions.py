#!/usr/bin/env python3
"""Mention cycle - answer people who tag the bot."""

import time

from ..cache import CacheKey, scoped_key
from ..config import CONFIG, MAX_INTERACTIONS_PER_COOLDOWN, REPLY_COOLDOWN_MINUTES
from ..crestal import CrestalError
from ..filters import extract_user_query, should_reply_to_mention
from ..formatter import format_analysis_response, format_error_response, sanitize_username
from ..logging_utils import log, log_activity, log_content
from ..nlp_analysis import analyze_content, extract_tokens
from ..state import BotContext

MAX_INTERACTIONS_PER_USER = 20


def record_interaction(ctx: BotContext, username: str, query: str, response: str) -> None:
    """Keep a short per-user history plus global interaction stats."""
    key = scoped_key("user_interactions", sanitize_username(username).lower())
    interactions = ctx.cache.get(key, [])
    interactions.append({
        "timestamp": ctx.clock(),
        "query": query[:100],
        "response": response[:100],
        "date": ctx.now_iso(),
    })
    ctx.cache.set(key, interactions[-MAX_INTERACTIONS_PER_USER:], 60 * 24 * 7)

    stats = ctx.cache.get(CacheKey.GLOBAL_INTERACTION_STATS) or {
        "total_interactions": 0,
        "unique_users": [],
        "top_tokens_asked": {},
    }
    stats["total_interactions"] += 1
    if username not in stats["unique_users"]:
        stats["unique_users"].append(username)
    for token in extract_tokens(query):
        stats["top_tokens_asked"][token] = stats["top_tokens_asked"].get(token, 0) + 1
    stats["last_updated"] = ctx.now_iso()
    ctx.cache.set(CacheKey.GLOBAL_INTERACTION_STATS, stats, 60 * 24)


def do_mention_cycle(ctx: BotContext, delay: float | None = None) -> dict:
    """
    Fetch new mentions and reply to each one worth answering.
    Returns a summary of what was processed.
    """
    if not ctx.should_post_content('mentions'):
        return {"success": True, "skipped": True, "reason": "disabled"}

    twitter = ctx.twitter
    crestal = ctx.crestal
    delay = CONFIG['reply_delay_seconds'] if delay is None else delay

    try:
        mentions = twitter.get_mentions(twitter.get_last_mention_id())
    except Exception as e:
        log.error(f"|  Mention check failed: {e}")
        ctx.log_error(e, {"job": "mentions"})
        return {"success": False, "error": str(e), "timestamp": ctx.now_iso()}

    if not mentions:
        return {"success": True, "processed": 0}

    log.info(f"|  Processing {len(mentions)} new mentions")
    processed = 0
    successful = 0
    errors = []

    for mention in mentions:
        username = mention["author_username"]
        try:
            should_reply, reason = should_reply_to_mention(mention, twitter.handle)
            if not should_reply:
                log.info(f"|  Skipping mention {mention['id']} ({reason})")
                continue

            if twitter.replied.has_replied(mention["id"]):
                log.info(f"|  Already answered mention {mention['id']}")
                continue

            user_key = scoped_key("user", sanitize_username(username).lower())
            if not ctx.limiter.check_and_record(user_key, MAX_INTERACTIONS_PER_COOLDOWN, REPLY_COOLDOWN_MINUTES):
                log.info(f"|  User @{username} is rate limited")
                continue

            query = extract_user_query(mention["text"], twitter.handle)
            analysis = analyze_content(query)
            try:
                answer = crestal.analyze_user_query(query, analysis)
            except CrestalError as e:
                log.warning(f"|  Crestal unavailable for @{username}: {e}")
                answer = format_error_response(e.kind)

            reply = format_analysis_response(answer, analysis.tokens)
            log_content("reply", {"user": username, "query": query, "content": reply})

            processed += 1
            if twitter.reply_to_mention(mention["id"], reply, username):
                successful += 1
                record_interaction(ctx, username, query, reply)
                log_activity("REPLY", f"To @{username}")
            else:
                errors.append(f"Failed to reply to @{username}")

            if delay:
                time.sleep(delay)

        except Exception as e:
            log.error(f"|  Error processing mention from @{username}: {e}")
            errors.append(f"Error with @{username}: {e}")

    twitter.set_last_mention_id(mentions[-1]["id"])

    stats = ctx.cache.get(CacheKey.MENTION_PROCESSING_STATS) or {"total": 0, "successful": 0, "failed": 0}
    stats["total"] += processed
    stats["successful"] += successful
    stats["failed"] += processed - successful
    stats["last_processed"] = ctx.now_iso()
    ctx.cache.set(CacheKey.MENTION_PROCESSING_STATS, stats, 60 * 24)

    log.info(f"|  Mention cycle complete: {processed} processed, {successful} replies sent")

    usage = crestal.usage_stats()
    result = {
        "success": True,
        "processed": processed,
        "successful": successful,
        "failed": processed - successful,
        "stats": {
            "caps_used": usage["daily_count"],
            "emergency_mode": usage["emergency_mode"],
            "twitter_rate_limit": twitter.stats(),
        },
        "timestamp": ctx.now_iso(),
    }
    if errors:
        result["errors"] = errors
    return result
