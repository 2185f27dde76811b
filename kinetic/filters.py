#!/usr/bin/env python3
"""
Content filtering and decision functions for the Kinetic Crypto AI bot.
Determines what is too repetitive to post and which mentions deserve a reply.
"""

import re

from .config import SIMILARITY_THRESHOLD

# Words too common in our own output to say anything about similarity
STOP_WORDS = frozenset([
    'the', 'and', 'or', 'but', 'is', 'are', 'was', 'were',
    'crypto', 'coin', 'token', 'dyor',
])

MIN_QUERY_LENGTH = 3

_PUNCTUATION = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')


def normalize_text(text: str) -> str:
    """Lower-case, punctuation to spaces, single-spaced."""
    text = _PUNCTUATION.sub(' ', text.lower())
    return _WHITESPACE.sub(' ', text).strip()


def significant_words(text: str) -> set[str]:
    """Words longer than three characters that are not stop words."""
    return {
        word for word in normalize_text(text).split(' ')
        if len(word) > 3 and word not in STOP_WORDS
    }


def similarity_ratio(first: str, second: str) -> float:
    """Jaccard index of the two texts' significant words (0.0 when both are empty)."""
    first_words = significant_words(first or '')
    second_words = significant_words(second or '')
    union = first_words | second_words
    if not union:
        return 0.0
    return len(first_words & second_words) / len(union)


def is_similar(candidate: str, previous: str, threshold: float = SIMILARITY_THRESHOLD) -> bool:
    """
    True when candidate repeats too much of previous.
    Missing history never blocks.
    """
    if not candidate or not previous:
        return False
    return similarity_ratio(candidate, previous) > threshold


def extract_user_query(text: str, handle: str) -> str:
    """Strip every @handle mention of the bot from a tweet."""
    return re.sub(rf'@{re.escape(handle)}\b', '', text, flags=re.IGNORECASE).strip()


def should_reply_to_mention(mention: dict, handle: str) -> tuple[bool, str]:
    """
    Determine if a mention is worth answering.
    Returns (should_reply, reason).
    """
    author = mention.get('author_username') or ''

    # Don't respond to ourselves
    if author.lower() == handle.lower():
        return False, "own tweet"

    query = extract_user_query(mention.get('text') or '', handle)
    if len(query) < MIN_QUERY_LENGTH:
        return False, "empty query"

    return True, "question"


def classify_error(error: Exception) -> str:
    """Bucket an exception message into a coarse error type."""
    kind = getattr(error, 'kind', None)
    if kind == 'rate_limited' or kind == 'emergency_mode':
        return 'rate_limit'
    if kind == 'timeout':
        return 'timeout'

    message = str(error).lower()
    if 'rate' in message or 'limit' in message:
        return 'rate_limit'
    if 'timeout' in message or 'timed out' in message:
        return 'timeout'
    if 'network' in message or 'connection' in message:
        return 'network'
    if 'auth' in message or '401' in message:
        return 'auth'
    if 'twitter' in message:
        return 'twitter_api'
    if kind or 'crestal' in message:
        return 'crestal_api'
    return 'unknown'


def is_retryable_error(error: Exception) -> bool:
    return classify_error(error) in ('timeout', 'network', 'twitter_api', 'crestal_api')
