#!/usr/bin/env python3
"""
Centralized configuration for the Kinetic Crypto AI bot.
All rate limits, timing, prompts and templates in one place.
"""

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

# === BOT IDENTITY ===
BOT_NAME = "Kinetic Crypto AI"
DEFAULT_HANDLE = "KineticCryptoAI"

# === PATHS ===
PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_LOGS_DIR = PROJECT_ROOT / "logs"

# === CRESTAL (AI completions) ===
CRESTAL_BASE = "https://open.service.crestal.network"
CRESTAL_CHAT_PATH = "/v1/chat/completions"
MODEL = "gpt-4o-mini"
MAX_TOKENS = 100
TEMPERATURE = 0.7
REQUEST_TIMEOUT = 8  # seconds
PLACEHOLDER_API_KEY = "your_crestal_api_key_here"

# === RATE LIMITS ===
# Tweets and replies share one hourly counter per Twitter client
RATE_LIMITS = {
    'max_tweets_per_hour': 50,
    'max_caps_per_cycle': 20,          # AI calls budgeted per posting cycle
    'cycles_per_day': 4,
    'reply_cooldown_minutes': 5,
    'max_interactions_per_cooldown': 3,
    'replied_tweets_retained': 1000,
    'degen_caps_reserve': 15,          # never spend the last 15 caps on degen alerts
}

CONFIG = {
    'market_update_interval_hours': 5,
    'degen_alert_interval_hours': 3,
    'degen_alert_min_gap_hours': 4,
    'defi_update_interval_hours': 8,
    'trading_tip_interval_hours': 12,
    'mention_check_interval_minutes': 5,
    'cache_sweep_interval_minutes': 10,
    'cache_duration_minutes': 30,
    'reply_delay_seconds': 1,
    'similarity_threshold': 0.5,
    'strict_similarity_threshold': 0.6,
    'min_alert_length': 20,
}

# Convenience accessors (read at import time)
MAX_TWEETS_PER_HOUR = RATE_LIMITS['max_tweets_per_hour']
MAX_CAPS_PER_CYCLE = RATE_LIMITS['max_caps_per_cycle']
CYCLES_PER_DAY = RATE_LIMITS['cycles_per_day']
REPLY_COOLDOWN_MINUTES = RATE_LIMITS['reply_cooldown_minutes']
MAX_INTERACTIONS_PER_COOLDOWN = RATE_LIMITS['max_interactions_per_cooldown']
CACHE_DURATION_MINUTES = CONFIG['cache_duration_minutes']
SIMILARITY_THRESHOLD = CONFIG['similarity_threshold']

# === CONTENT ===
TWEET_MAX_LENGTH = 280

SYSTEM_PROMPTS = {
    "market_analysis": "You are Kinetic Crypto AI. Provide concise crypto market analysis in 180 chars max. "
                       "Include key price levels and trends. Always end with DYOR.",
    "degen_alert": "You are Kinetic Crypto AI focused on meme coins and degen plays. "
                   "Alert about pumping tokens in 150 chars max. Be excited but include DYOR.",
    "defi_update": "You are Kinetic Crypto AI specializing in DeFi. Summarize TVL changes and yield "
                   "opportunities in 180 chars max. Include DYOR.",
    "user_reply": "You are Kinetic Crypto AI. Answer the users crypto question helpfully in 200 chars max. "
                  "Be direct and include DYOR for trading advice.",
    "trading_tips": "You are Kinetic Crypto AI. Give practical trading advice in 180 chars max. "
                    "Focus on risk management and include DYOR.",
}

TEMPLATES = {
    "market_update": "📊 MARKET UPDATE\n\n{analysis}\n\n{hashtags}",
    "degen_alert": "🚨 DEGEN ALERT 🚨\n\n{alert}\n\n{hashtags}",
    "defi_update": "🏛️ DeFi UPDATE\n\n{update}\n\n{hashtags}",
    "trading_tip": "💡 TRADING TIP\n\n{tip}\n\n{hashtags}",
    "error_response": "🤖 Temporary issue. Try again! DYOR always.",
}

HASHTAG_SETS = {
    "market": "#crypto #Bitcoin #Ethereum #trading",
    "degen": "#memecoins #degen #crypto #altcoins",
    "defi": "#DeFi #yield #crypto #staking",
    "general": "#crypto #blockchain #DYOR",
}

ERROR_MESSAGES = {
    "crestal_down": "AI temporarily unavailable. Market looking good! DYOR always.",
    "rate_limited": "High demand! Try again in a few minutes. DYOR.",
    "invalid_request": "Invalid request format. Try: @KineticCryptoAI analyze $BTC",
    "emergency_mode": "Running on cached data. Fresh analysis coming soon! DYOR.",
    "timeout": "Analysis taking longer than expected. Try a simpler question!",
}

SUPPORTED_COMMANDS = {
    'analyze': 'Analyze a specific token or market',
    'price': 'Get current price information',
    'yield': 'Find yield opportunities',
    'news': 'Latest crypto news and updates',
    'tip': 'Get a trading tip',
    'defi': 'DeFi protocol information',
    'degen': 'Meme coin and degen alerts',
}

# === ENVIRONMENT ===
REQUIRED_ENV = [
    'TWITTER_API_KEY',
    'TWITTER_API_SECRET',
    'TWITTER_ACCESS_TOKEN',
    'TWITTER_ACCESS_SECRET',
    'TWITTER_BEARER_TOKEN',
    'CRESTAL_API_KEY',
]

# Content type -> env flag that disables it when set to "false"
FEATURE_FLAGS = {
    'market': 'ENABLE_AUTO_POSTS',
    'defi': 'ENABLE_AUTO_POSTS',
    'tips': 'ENABLE_AUTO_POSTS',
    'degen': 'ENABLE_DEGEN_ALERTS',
    'mentions': 'ENABLE_MENTION_REPLIES',
}


class ConfigError(RuntimeError):
    """Raised when required environment variables are missing."""


def load_environment(validate: bool = True) -> None:
    """Load variables from a .env file in the working directory (if any) and optionally validate them."""
    load_dotenv(find_dotenv(usecwd=True))
    if validate:
        validate_environment()


def validate_environment(required: list[str] | None = None) -> None:
    """Raise ConfigError naming every missing variable."""
    missing = [key for key in (required or REQUIRED_ENV) if not os.getenv(key)]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")


def bot_handle() -> str:
    return os.getenv("BOT_TWITTER_HANDLE") or DEFAULT_HANDLE


def crestal_base_url() -> str:
    return os.getenv("CRESTAL_API_URL") or CRESTAL_BASE


def feature_enabled(content_type: str) -> bool:
    """Feature flags are on unless explicitly set to "false"."""
    env_var = FEATURE_FLAGS.get(content_type)
    return not (env_var and os.getenv(env_var, '').lower() == 'false')


def logs_dir() -> Path:
    """Log directory, read at call time so a .env override takes effect."""
    return Path(os.getenv("KINETIC_LOGS_DIR") or DEFAULT_LOGS_DIR)
