"""Shared fixtures: a controllable clock, log redirection and wired-up clients."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from kinetic.crestal import CrestalClient
from kinetic.state import BotContext
from kinetic.twitter import TwitterClient

CRESTAL_URL = "https://crestal.test/v1/chat/completions"

# 2023-11-14 22:13:20 UTC - outside the 13-21 UTC active market hours
START = 1_700_000_000.0


class FakeClock:
    def __init__(self, start: float = START):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0, hours: float = 0) -> None:
        self.now += seconds + minutes * 60 + hours * 3600


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep log files out of the repo and feature flags at their defaults."""
    monkeypatch.setenv("KINETIC_LOGS_DIR", str(tmp_path / "logs"))
    for var in ("MAINTENANCE_MODE", "ENABLE_AUTO_POSTS", "ENABLE_DEGEN_ALERTS",
                "ENABLE_MENTION_REPLIES", "BOT_TWITTER_HANDLE", "CRESTAL_API_URL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tweepy_client():
    client = MagicMock()
    counter = iter(range(1000, 2000))
    client.create_tweet.side_effect = lambda **kwargs: SimpleNamespace(
        data={"id": str(next(counter)), "text": kwargs["text"]}
    )
    client.get_me.return_value = SimpleNamespace(data=SimpleNamespace(username="KineticCryptoAI"))
    client.search_recent_tweets.return_value = SimpleNamespace(data=None, includes={})
    return client


@pytest.fixture
def ctx(clock, tweepy_client):
    context = BotContext(clock=clock)
    context._twitter = TwitterClient(context.cache, client=tweepy_client, handle="KineticCryptoAI")
    context._crestal = CrestalClient(context.cache, context.quota,
                                     api_key="test-key", base_url="https://crestal.test")
    return context


def completion(text: str) -> dict:
    """Body of a successful chat completion."""
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def mention(tweet_id: int, text: str, author_id: int = 42):
    return SimpleNamespace(id=tweet_id, text=text, author_id=author_id,
                           created_at=None, conversation_id=tweet_id)


def user(user_id: int, username: str):
    return SimpleNamespace(id=user_id, username=username)
