#!/usr/bin/env python3
"""
NLP analysis for the Kinetic Crypto AI bot.
Reads user questions and generated commentary to pick tokens, commands,
timeframes and overall market mood.
"""

import re
from enum import Enum
from typing import NamedTuple

from textblob import TextBlob

from .config import SUPPORTED_COMMANDS


class MarketMood(Enum):
    """Overall tone of a piece of market commentary."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"
    DEGEN = "degen"
    DEFI = "defi"


class ContentAnalysis(NamedTuple):
    """Analysis results for a user query."""
    sentiment: float          # -1.0 (negative) to 1.0 (positive)
    subjectivity: float       # 0.0 (objective) to 1.0 (subjective)
    mood: MarketMood
    tokens: list[str]         # Ticker symbols mentioned
    command: str              # One of SUPPORTED_COMMANDS
    timeframe: str            # 1h, 4h, 1d, 1w or 1m
    is_price_query: bool


# Symbols we recognise even without a $ prefix
COMMON_TOKENS = ['BTC', 'ETH', 'SOL', 'ADA', 'DOT', 'LINK', 'UNI', 'AAVE', 'PEPE', 'DOGE', 'SHIB']

PRICE_KEYWORDS = ['price', 'cost', 'value', 'worth', 'quote']

TIMEFRAMES = {
    '1h': ['1h', '1 hour', 'hourly'],
    '4h': ['4h', '4 hours'],
    '1d': ['1d', '1 day', 'daily', 'today'],
    '1w': ['1w', '1 week', 'weekly', 'week'],
    '1m': ['1m', '1 month', 'monthly', 'month'],
}

# Keywords that indicate various moods
BULLISH_KEYWORDS = ['pump', 'moon', 'bullish', 'up', 'green', 'gains']
BEARISH_KEYWORDS = ['dump', 'crash', 'bearish', 'down', 'red', 'loss']
DEGEN_KEYWORDS = ['meme', 'ape', 'diamond', 'hands', 'hodl']
DEFI_KEYWORDS = ['yield', 'farming', 'liquidity', 'staking', 'tvl']

MOOD_EMOJI = {
    MarketMood.BULLISH: ' 🚀',
    MarketMood.BEARISH: ' 📉',
}

_CASHTAG = re.compile(r'\$([A-Za-z0-9]+)')
_WORD = re.compile(r'[a-z0-9]+')


def extract_tokens(text: str) -> list[str]:
    """Ticker symbols from $cashtags plus well-known symbols, in order, no duplicates."""
    tokens = [match.upper() for match in _CASHTAG.findall(text)]
    words = set(re.findall(r'[A-Z0-9]+', text.upper()))
    tokens.extend(token for token in COMMON_TOKENS if token in words)
    return list(dict.fromkeys(tokens))


def extract_command(text: str) -> dict:
    """Find the first supported command in a mention. Defaults to 'analyze'."""
    clean = re.sub(r'@\w+', '', text.lower())
    clean = re.sub(r'[^\w\s$]', ' ', clean).strip()

    for command, description in SUPPORTED_COMMANDS.items():
        if command in clean:
            return {"command": command, "description": description, "full_text": clean}

    return {"command": "analyze", "description": SUPPORTED_COMMANDS['analyze'], "full_text": clean}


def extract_timeframe(text: str) -> str:
    text_lower = text.lower()
    for timeframe, keywords in TIMEFRAMES.items():
        if any(re.search(rf'\b{re.escape(kw)}\b', text_lower) for kw in keywords):
            return timeframe
    return '1d'


def extract_price_query(text: str) -> dict:
    tokens = extract_tokens(text)
    has_price_keyword = any(kw in text.lower() for kw in PRICE_KEYWORDS)
    return {
        "is_price_query": has_price_keyword or bool(tokens),
        "tokens": tokens,
        "timeframe": extract_timeframe(text),
    }


def detect_mood(text: str) -> MarketMood:
    """
    Keyword families first (degen, DeFi, bullish, bearish), then TextBlob
    polarity for anything the keywords miss.
    """
    words = set(_WORD.findall(text.lower()))

    if words & set(DEGEN_KEYWORDS):
        return MarketMood.DEGEN
    if words & set(DEFI_KEYWORDS):
        return MarketMood.DEFI
    if words & set(BULLISH_KEYWORDS):
        return MarketMood.BULLISH
    if words & set(BEARISH_KEYWORDS):
        return MarketMood.BEARISH

    polarity = TextBlob(text).sentiment.polarity
    if polarity > 0.3:
        return MarketMood.BULLISH
    if polarity < -0.3:
        return MarketMood.BEARISH
    return MarketMood.NEUTRAL


def add_emojis_to_content(text: str) -> str:
    """Degen and DeFi content is left alone; plain bull/bear takes get a marker."""
    return text + MOOD_EMOJI.get(detect_mood(text), '')


def analyze_content(text: str) -> ContentAnalysis:
    """Analyze a user query to shape the prompt and the reply."""
    blob = TextBlob(text)
    price = extract_price_query(text)

    return ContentAnalysis(
        sentiment=blob.sentiment.polarity,
        subjectivity=blob.sentiment.subjectivity,
        mood=detect_mood(text),
        tokens=price['tokens'],
        command=extract_command(text)['command'],
        timeframe=price['timeframe'],
        is_price_query=price['is_price_query'],
    )


def format_analysis_for_prompt(analysis: ContentAnalysis) -> str:
    """Format analysis results as context for the completion prompt."""
    lines = [f"Command: {analysis.command}", f"Timeframe: {analysis.timeframe}"]
    if analysis.tokens:
        lines.append(f"Tokens: {', '.join(analysis.tokens)}")
    if analysis.is_price_query:
        lines.append("The user wants price levels.")
    lines.append(f"User mood: {analysis.mood.value}")
    return '\n'.join(lines)
