#!/usr/bin/env python3
"""
Twitter/X client for the Kinetic Crypto AI bot.
Posting goes through a per-client PostThrottle; API failures are logged and
reported as None/False/[] so the calling job decides what to do.
"""

import os

import tweepy

from . import config
from .cache import CacheKey, ExpiringCache
from .config import HASHTAG_SETS, MAX_TWEETS_PER_HOUR, TWEET_MAX_LENGTH
from .formatter import format_tweet, truncate_text
from .limits import PostThrottle, ReplyLedger
from .logging_utils import log

# update kind -> (template, template field, hashtag set)
UPDATE_KINDS = {
    "market": ("market_update", "analysis", "market"),
    "degen": ("degen_alert", "alert", "degen"),
    "defi": ("defi_update", "update", "defi"),
    "tip": ("trading_tip", "tip", "general"),
}


def build_tweepy_client() -> tweepy.Client:
    return tweepy.Client(
        bearer_token=os.getenv("TWITTER_BEARER_TOKEN"),
        consumer_key=os.getenv("TWITTER_API_KEY"),
        consumer_secret=os.getenv("TWITTER_API_SECRET"),
        access_token=os.getenv("TWITTER_ACCESS_TOKEN"),
        access_token_secret=os.getenv("TWITTER_ACCESS_SECRET"),
    )


class TwitterClient:
    def __init__(self, cache: ExpiringCache, client: tweepy.Client | None = None,
                 throttle: PostThrottle | None = None, handle: str | None = None):
        self.cache = cache
        self.client = client or build_tweepy_client()
        self.throttle = throttle or PostThrottle(MAX_TWEETS_PER_HOUR, clock=cache.now)
        self.replied = ReplyLedger(cache)
        self.handle = handle or config.bot_handle()

    def post_update(self, kind: str, text: str) -> dict | None:
        """Format text with the template for kind and tweet it."""
        template, field, hashtags = UPDATE_KINDS[kind]

        if not self.throttle.can_post():
            log.warning("Tweet rate limit reached")
            return None

        tweet = format_tweet(template, **{field: text, "hashtags": HASHTAG_SETS[hashtags]})
        try:
            response = self.client.create_tweet(text=tweet)
        except tweepy.TweepyException as e:
            log.error(f"Failed to post {kind} update: {e}")
            return None

        self.throttle.record_post()
        log.info(f"Posted {kind} update: {response.data.get('id')}")
        return response.data

    def post_market_update(self, analysis: str) -> dict | None:
        return self.post_update("market", analysis)

    def post_degen_alert(self, alert: str) -> dict | None:
        return self.post_update("degen", alert)

    def post_defi_update(self, update: str) -> dict | None:
        return self.post_update("defi", update)

    def post_trading_tip(self, tip: str) -> dict | None:
        return self.post_update("tip", tip)

    def reply_to_mention(self, tweet_id, reply_text: str, user_handle: str) -> dict | None:
        log.info(f"Replying to mention from @{user_handle}")

        if not self.throttle.can_post():
            log.warning("Reply rate limit reached")
            return None

        if self.replied.has_replied(tweet_id):
            log.warning(f"Already replied to tweet {tweet_id}")
            return None

        # Leave room for the auto-prefixed @handle
        reply = truncate_text(reply_text, TWEET_MAX_LENGTH - len(user_handle) - 10)
        try:
            response = self.client.create_tweet(text=reply, in_reply_to_tweet_id=tweet_id)
        except tweepy.TweepyException as e:
            log.error(f"Failed to reply to mention {tweet_id}: {e}")
            return None

        self.throttle.record_post()
        self.replied.mark_replied(tweet_id)
        return response.data

    def get_mentions(self, since_id: str | None = None) -> list[dict]:
        """Mentions of the bot handle, oldest first."""
        params = {
            "tweet_fields": ["author_id", "created_at", "conversation_id"],
            "user_fields": ["username"],
            "expansions": ["author_id"],
            "max_results": 100,
        }
        if since_id:
            params["since_id"] = since_id

        try:
            response = self.client.search_recent_tweets(f"@{self.handle} -is:retweet", **params)
        except tweepy.TweepyException as e:
            log.error(f"Failed to fetch mentions: {e}")
            return []

        if not response.data:
            log.info("No new mentions found")
            return []

        users = {user.id: user.username for user in (response.includes or {}).get("users", [])}
        mentions = [
            {
                "id": str(tweet.id),
                "text": tweet.text,
                "author_id": tweet.author_id,
                "author_username": users.get(tweet.author_id, "unknown"),
                "created_at": tweet.created_at,
                "conversation_id": tweet.conversation_id,
            }
            for tweet in response.data
        ]
        mentions.sort(key=lambda m: int(m["id"]))

        log.info(f"Found {len(mentions)} new mentions")
        return mentions

    def get_last_mention_id(self) -> str | None:
        return self.cache.get(CacheKey.LAST_MENTION_ID)

    def set_last_mention_id(self, mention_id: str) -> None:
        self.cache.set(CacheKey.LAST_MENTION_ID, str(mention_id), 60 * 24)

    def validate_connection(self) -> bool:
        try:
            me = self.client.get_me()
        except tweepy.TweepyException as e:
            log.error(f"Twitter connection failed: {e}")
            return False
        log.info(f"Twitter connection validated for @{me.data.username}")
        return True

    def stats(self) -> dict:
        return self.throttle.stats()
