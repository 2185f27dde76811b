#!/usr/bin/env python3
"""
Crestal Network client.
Every completion request is charged against the usage quota before it is sent.
"""

import os
from datetime import datetime, timezone

import requests

from . import config
from .cache import CacheKey, ExpiringCache
from .config import ERROR_MESSAGES, SYSTEM_PROMPTS
from .limits import UsageQuota
from .logging_utils import log
from .nlp_analysis import ContentAnalysis, format_analysis_for_prompt

# US market hours (UTC) - market analysis is always regenerated inside them
ACTIVE_HOURS = range(13, 22)

MARKET_PROMPT = ("Analyze the current crypto market. Focus on BTC, ETH, and top altcoins. "
                 "Include key price levels, market sentiment, and any significant movements. "
                 "What should traders watch today?")
DEGEN_PROMPT = ("Check for trending meme coins and tokens with unusual activity. "
                "Look for new listings, volume spikes, or social media buzz. "
                "What degen plays are happening right now?")
DEFI_PROMPT = ("Analyze current DeFi landscape. Check TVL changes, new yield opportunities, "
               "protocol updates, and any significant developments. What should DeFi users know today?")
TIP_PROMPT = ("Provide a practical cryptocurrency trading tip. Focus on risk management, "
              "entry/exit strategies, or market psychology. Make it actionable for traders.")


class CrestalError(RuntimeError):
    """A completion could not be produced. ``kind`` keys into ERROR_MESSAGES."""

    def __init__(self, kind: str, message: str | None = None):
        self.kind = kind
        super().__init__(message or ERROR_MESSAGES.get(kind, kind))

    @property
    def fallback_message(self) -> str:
        return ERROR_MESSAGES.get(self.kind, ERROR_MESSAGES['crestal_down'])


class CrestalClient:
    def __init__(self, cache: ExpiringCache, quota: UsageQuota,
                 api_key: str | None = None, base_url: str | None = None):
        self.cache = cache
        self.quota = quota
        self.api_key = api_key if api_key is not None else os.getenv("CRESTAL_API_KEY", "")
        self.base_url = (base_url or config.crestal_base_url()).rstrip('/')

    def complete(self, prompt: str, system_prompt: str) -> str:
        """
        Send a prompt to the completion endpoint.
        Returns the generated text or raises CrestalError.
        """
        if not self.api_key or self.api_key == config.PLACEHOLDER_API_KEY:
            raise CrestalError("crestal_down", "No valid Crestal API key")

        if not self.quota.try_acquire():
            log.warning("Usage quota exhausted - emergency mode")
            raise CrestalError("emergency_mode")

        payload = {
            "model": config.MODEL,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt}
            ],
            "max_tokens": config.MAX_TOKENS,
            "temperature": config.TEMPERATURE,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        log.info("Calling Crestal API...")
        try:
            response = requests.post(f"{self.base_url}{config.CRESTAL_CHAT_PATH}",
                                     json=payload, headers=headers, timeout=config.REQUEST_TIMEOUT)
        except requests.exceptions.Timeout:
            raise CrestalError("timeout", f"Crestal request timed out ({config.REQUEST_TIMEOUT}s)")
        except requests.exceptions.RequestException as e:
            raise CrestalError("crestal_down", f"Crestal connection error: {e}")

        if response.status_code == 429:
            self.quota.enter_emergency_mode("Crestal returned 429")
            raise CrestalError("rate_limited", "Crestal rate limit hit (429)")
        if not response.ok:
            raise CrestalError("crestal_down", f"Crestal API error: {response.status_code} {response.reason}")

        try:
            return response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CrestalError("crestal_down", f"Malformed Crestal response: {e}")

    def should_refresh_market_data(self) -> bool:
        hour = datetime.fromtimestamp(self.cache.now(), tz=timezone.utc).hour
        return hour in ACTIVE_HOURS

    def generate_market_analysis(self) -> str:
        cached = self.cache.get(CacheKey.MARKET_ANALYSIS)
        if cached and not self.should_refresh_market_data():
            log.info("Using cached market analysis")
            return cached

        analysis = self.complete(MARKET_PROMPT, SYSTEM_PROMPTS['market_analysis'])
        self.cache.set(CacheKey.MARKET_ANALYSIS, analysis, 30)
        return analysis

    def generate_degen_alert(self) -> str:
        return self.complete(DEGEN_PROMPT, SYSTEM_PROMPTS['degen_alert'])

    def generate_defi_update(self) -> str:
        cached = self.cache.get(CacheKey.DEFI_UPDATE)
        if cached:
            log.info("Using cached DeFi data")
            return cached

        update = self.complete(DEFI_PROMPT, SYSTEM_PROMPTS['defi_update'])
        self.cache.set(CacheKey.DEFI_UPDATE, update, 45)
        return update

    def generate_trading_tip(self) -> str:
        return self.complete(TIP_PROMPT, SYSTEM_PROMPTS['trading_tips'])

    def analyze_user_query(self, query: str, analysis: ContentAnalysis | None = None) -> str:
        prompt = (f'User asked: "{query}". Provide helpful crypto analysis or information. '
                  f'If it\'s about a specific token, include price action and key levels if possible.')
        if analysis is not None:
            prompt += f"\n\n{format_analysis_for_prompt(analysis)}"
        return self.complete(prompt, SYSTEM_PROMPTS['user_reply'])

    def usage_stats(self) -> dict:
        return self.quota.stats()
