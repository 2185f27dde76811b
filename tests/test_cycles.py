"""Tests for the posting and mention cycles, wired through a BotContext."""
from types import SimpleNamespace

import responses

from kinetic.cache import CacheKey
from kinetic.cycles import (
    do_defi_update,
    do_degen_alert,
    do_market_update,
    do_mention_cycle,
    do_trading_tip,
)
from kinetic.cycles.degen import DEGEN_FALLBACK
from kinetic.cycles.market import MARKET_FALLBACK
from kinetic.state import BotContext
from kinetic.twitter import TwitterClient

from conftest import CRESTAL_URL, completion, mention, user

ALERT = "PEPE and WOJAK volume spiking on fresh exchange listings"


def posted_texts(tweepy_client):
    return [call.kwargs["text"] for call in tweepy_client.create_tweet.call_args_list]


# === MARKET UPDATE ===

@responses.activate
def test_market_update_posts_analysis(ctx, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, json=completion("BTC ranging 42-44k, alts lagging"))

    result = do_market_update(ctx)

    assert result["success"] is True
    assert result["tweet_id"] == "1000"
    assert result["stats"]["caps_used"] == 1
    assert "BTC ranging 42-44k" in posted_texts(tweepy_client)[0]
    assert ctx.cache.get(CacheKey.LAST_MARKET_ANALYSIS) == "BTC ranging 42-44k, alts lagging"
    assert ctx.cache.get(CacheKey.MARKET_UPDATE_STATS)["successful"] == 1


@responses.activate
def test_market_update_reposts_cached_analysis_in_emergency_mode(ctx, tweepy_client):
    ctx.cache.set(CacheKey.LAST_MARKET_ANALYSIS, "ETH outperforming BTC", 60)
    ctx.quota.enter_emergency_mode("test")

    result = do_market_update(ctx)

    assert result == {"success": True, "mode": "emergency", "analysis": "ETH outperforming BTC"}
    assert "ETH outperforming BTC (cached)" in posted_texts(tweepy_client)[0]
    assert len(responses.calls) == 0


@responses.activate
def test_market_update_failure_posts_fallback(ctx, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, status=500)

    result = do_market_update(ctx)

    assert result["success"] is False
    assert "500" in result["error"]
    assert MARKET_FALLBACK in posted_texts(tweepy_client)[0]
    assert ctx.cache.get(CacheKey.MARKET_UPDATE_STATS)["failed"] == 1
    assert len(ctx.cache.get(CacheKey.RECENT_ERRORS)) == 1


def test_market_update_skipped_in_maintenance(ctx, tweepy_client):
    ctx.set_maintenance_mode(True, "upgrading")

    assert do_market_update(ctx) == {"success": True, "skipped": True, "reason": "disabled"}
    tweepy_client.create_tweet.assert_not_called()


@responses.activate
def test_market_update_marks_bullish_analysis(ctx, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, json=completion("BTC about to pump through 45k"))

    do_market_update(ctx)

    assert "BTC about to pump through 45k 🚀" in posted_texts(tweepy_client)[0]
    # The stored analysis stays unmarked for emergency reposts
    assert ctx.cache.get(CacheKey.LAST_MARKET_ANALYSIS) == "BTC about to pump through 45k"


def test_gated_cycles_do_not_build_crestal_client(clock, tweepy_client):
    context = BotContext(clock=clock)
    context._twitter = TwitterClient(context.cache, client=tweepy_client, handle="KineticCryptoAI")
    context.set_maintenance_mode(True, "quiet")

    assert do_defi_update(context)["reason"] == "disabled"
    assert do_trading_tip(context)["reason"] == "disabled"
    assert context._crestal is None


def test_market_update_skipped_when_auto_posts_disabled(ctx, monkeypatch, tweepy_client):
    monkeypatch.setenv("ENABLE_AUTO_POSTS", "false")

    assert do_market_update(ctx)["skipped"] is True
    tweepy_client.create_tweet.assert_not_called()


# === DEGEN ALERT ===

@responses.activate
def test_degen_alert_posts_and_spaces_out(ctx, clock, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, json=completion(ALERT))

    first = do_degen_alert(ctx)
    assert first["success"] is True
    assert first["stats"]["caps_used_for_this_alert"] == 1
    assert ALERT in posted_texts(tweepy_client)[0]

    clock.advance(hours=3)
    second = do_degen_alert(ctx)
    assert second["skipped"] is True
    assert second["reason"] == "rate_limited"
    assert len(responses.calls) == 1

    stats = ctx.cache.get(CacheKey.DEGEN_ALERT_STATS)
    assert stats["successful"] == 1
    assert stats["skipped"] == 1
    assert stats["total_caps_used"] == 1


@responses.activate
def test_forced_degen_alert_still_rejects_similar_content(ctx, clock, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, json=completion(ALERT))
    do_degen_alert(ctx)
    clock.advance(hours=1)

    result = do_degen_alert(ctx, force=True)

    assert result["reason"] == "similar_content"
    assert len(responses.calls) == 2
    assert tweepy_client.create_tweet.call_count == 1
    # The timer moves anyway so the next attempt waits
    assert ctx.cache.get(CacheKey.LAST_DEGEN_ALERT_TIME) == clock()


@responses.activate
def test_degen_alert_conserves_caps(ctx, tweepy_client):
    ctx.quota.daily_count = 66  # ceiling 80, reserve 15

    result = do_degen_alert(ctx)

    assert result["reason"] == "cap_conservation"
    assert result["caps_used"] == 66
    assert len(responses.calls) == 0


@responses.activate
def test_degen_alert_skipped_in_emergency_mode(ctx):
    ctx.quota.enter_emergency_mode("test")

    assert do_degen_alert(ctx)["reason"] == "emergency_mode"
    assert len(responses.calls) == 0


@responses.activate
def test_degen_alert_too_short(ctx, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, json=completion("meh"))

    result = do_degen_alert(ctx)

    assert result["reason"] == "content_too_short"
    assert result["alert_length"] == 3
    tweepy_client.create_tweet.assert_not_called()


@responses.activate
def test_degen_alert_api_failure_posts_fallback(ctx, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, status=502)

    result = do_degen_alert(ctx)

    assert result["success"] is False
    assert result["error_type"] == "crestal_api"
    assert result["retryable"] is True
    assert DEGEN_FALLBACK in posted_texts(tweepy_client)[0]


@responses.activate
def test_degen_alert_rate_limit_posts_nothing(ctx, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, status=429)

    result = do_degen_alert(ctx)

    assert result["error_type"] == "rate_limit"
    assert result["retryable"] is False
    assert ctx.quota.emergency_mode is True
    tweepy_client.create_tweet.assert_not_called()


def test_degen_alert_disabled_by_flag(ctx, monkeypatch):
    monkeypatch.setenv("ENABLE_DEGEN_ALERTS", "false")
    assert do_degen_alert(ctx)["reason"] == "disabled"


# === DEFI UPDATE / TRADING TIP ===

@responses.activate
def test_defi_update_skips_repeat(ctx, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, json=completion("Aave and Lido TVL climbing, stablecoin yields holding"))

    assert do_defi_update(ctx)["success"] is True
    # The 45 minute cache hands back the same text, which is then rejected
    repeat = do_defi_update(ctx)

    assert repeat["reason"] == "similar_content"
    assert tweepy_client.create_tweet.call_count == 1
    assert posted_texts(tweepy_client)[0].startswith("🏛️ DeFi UPDATE")
    assert ctx.cache.get(CacheKey.DEFI_UPDATE_STATS)["skipped"] == 1


@responses.activate
def test_trading_tip_posts(ctx, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, json=completion("Never risk more than two percent per trade"))

    result = do_trading_tip(ctx)

    assert result["success"] is True
    assert posted_texts(tweepy_client)[0].startswith("💡 TRADING TIP")
    assert ctx.cache.get(CacheKey.LAST_TRADING_TIP) == "Never risk more than two percent per trade"


@responses.activate
def test_trading_tip_failure_is_reported(ctx, tweepy_client):
    responses.add(responses.POST, CRESTAL_URL, status=503)

    result = do_trading_tip(ctx)

    assert result["success"] is False
    assert ctx.cache.get(CacheKey.TRADING_TIP_STATS)["failed"] == 1
    tweepy_client.create_tweet.assert_not_called()


# === MENTIONS ===

def search_result(*tweets, users=()):
    return SimpleNamespace(data=list(tweets), includes={"users": list(users)})


@responses.activate
def test_mention_cycle_replies_and_skips(ctx, tweepy_client):
    tweepy_client.search_recent_tweets.return_value = search_result(
        mention(12, "@KineticCryptoAI hi", author_id=2),
        mention(10, "@KineticCryptoAI $BTC price?", author_id=1),
        mention(11, "@KineticCryptoAI gm", author_id=7),
        users=[user(1, "alice"), user(2, "bob"), user(7, "KineticCryptoAI")],
    )
    responses.add(responses.POST, CRESTAL_URL, json=completion("Holding 43k support"))

    result = do_mention_cycle(ctx, delay=0)

    assert result["processed"] == 1
    assert result["successful"] == 1
    assert "errors" not in result

    kwargs = tweepy_client.create_tweet.call_args.kwargs
    assert kwargs["in_reply_to_tweet_id"] == "10"
    assert kwargs["text"] == "BTC: Holding 43k support DYOR!"

    # Newest id is remembered for the next search
    assert ctx.twitter.get_last_mention_id() == "12"
    do_mention_cycle(ctx, delay=0)
    assert tweepy_client.search_recent_tweets.call_args.kwargs["since_id"] == "12"

    stats = ctx.cache.get(CacheKey.GLOBAL_INTERACTION_STATS)
    assert stats["total_interactions"] == 1
    assert stats["unique_users"] == ["alice"]
    assert stats["top_tokens_asked"] == {"BTC": 1}
    assert len(ctx.cache.get("user_interactions_alice")) == 1


@responses.activate
def test_mention_cycle_rate_limits_each_user(ctx, tweepy_client):
    tweepy_client.search_recent_tweets.return_value = search_result(
        *(mention(i, f"@KineticCryptoAI what about $SOL part {i}", author_id=1) for i in range(1, 5)),
        users=[user(1, "alice")],
    )
    responses.add(responses.POST, CRESTAL_URL, json=completion("SOL strong"))

    result = do_mention_cycle(ctx, delay=0)

    assert result["processed"] == 3
    assert tweepy_client.create_tweet.call_count == 3
    assert ctx.twitter.get_last_mention_id() == "4"


@responses.activate
def test_mention_cycle_skips_already_answered(ctx, tweepy_client):
    tweepy_client.search_recent_tweets.return_value = search_result(
        mention(10, "@KineticCryptoAI $BTC price?", author_id=1),
        users=[user(1, "alice")],
    )
    ctx.twitter.replied.mark_replied(10)

    result = do_mention_cycle(ctx, delay=0)

    assert result["processed"] == 0
    assert len(responses.calls) == 0
    tweepy_client.create_tweet.assert_not_called()


@responses.activate
def test_mention_cycle_answers_with_error_text_when_ai_is_down(ctx, tweepy_client):
    tweepy_client.search_recent_tweets.return_value = search_result(
        mention(10, "@KineticCryptoAI $BTC price?", author_id=1),
        users=[user(1, "alice")],
    )
    responses.add(responses.POST, CRESTAL_URL, status=500)

    result = do_mention_cycle(ctx, delay=0)

    assert result["successful"] == 1
    assert "Temporary issue" in tweepy_client.create_tweet.call_args.kwargs["text"]


def test_mention_cycle_with_nothing_new(ctx):
    assert do_mention_cycle(ctx, delay=0) == {"success": True, "processed": 0}


@responses.activate
def test_mention_cycle_records_failed_replies(ctx, tweepy_client):
    tweepy_client.search_recent_tweets.return_value = search_result(
        mention(10, "@KineticCryptoAI $BTC price?", author_id=1),
        users=[user(1, "alice")],
    )
    ctx.twitter.throttle.hourly_count = ctx.twitter.throttle.max_per_hour
    responses.add(responses.POST, CRESTAL_URL, json=completion("BTC fine"))

    result = do_mention_cycle(ctx, delay=0)

    assert result["failed"] == 1
    assert result["errors"] == ["Failed to reply to @alice"]
    assert ctx.cache.get(CacheKey.MENTION_PROCESSING_STATS)["failed"] == 1
