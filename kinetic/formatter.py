#!/usr/bin/env python3
"""Tweet formatting and text trimming."""

from .config import ERROR_MESSAGES, TEMPLATES, TWEET_MAX_LENGTH
from .logging_utils import log

ELLIPSIS = '...'

TRADING_KEYWORDS = ['buy', 'sell', 'entry', 'exit', 'target', 'support', 'resistance']

ERROR_RESPONSES = {
    'timeout': '⏰ ' + ERROR_MESSAGES['timeout'],
    'rate_limited': '🚨 ' + ERROR_MESSAGES['rate_limited'],
    'invalid_token': '❓ Token not found. Check spelling or try a different symbol.',
    'crestal_down': TEMPLATES['error_response'],
    'emergency_mode': '⚡ ' + ERROR_MESSAGES['emergency_mode'],
}


def truncate_text(text: str, max_length: int, suffix: str = ELLIPSIS) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def format_tweet(template: str, max_length: int = TWEET_MAX_LENGTH, **fields) -> str:
    """
    Fill a template from config.TEMPLATES.

    Over-long tweets lose the end of their body; the trailing hashtag block
    is kept intact.
    """
    text = TEMPLATES.get(template)
    if text is None:
        log.error(f"Unknown tweet template: {template}")
        return TEMPLATES['error_response']

    for name, value in fields.items():
        text = text.replace(f"{{{name}}}", value or '')

    if len(text) <= max_length:
        return text

    body, sep, tags = text.rpartition('\n\n')
    if sep and tags.startswith('#') and len(tags) + len(sep) + len(ELLIPSIS) < max_length:
        body = truncate_text(body.rstrip(), max_length - len(tags) - len(sep))
        return f"{body}{sep}{tags}"
    return truncate_text(text, max_length)


def format_analysis_response(analysis: str, tokens: list[str] | None = None) -> str:
    """Prefix the tokens asked about and make sure trading advice says DYOR."""
    response = analysis

    if tokens and tokens[0].lower() not in response.lower():
        response = f"{', '.join(tokens)}: {response}"

    lowered = response.lower()
    if any(kw in lowered for kw in TRADING_KEYWORDS) and 'dyor' not in lowered:
        response += ' DYOR!'

    return response


def format_error_response(kind: str) -> str:
    return ERROR_RESPONSES.get(kind, ERROR_RESPONSES['crestal_down'])


def sanitize_username(username: str) -> str:
    """Twitter handles: letters, digits and underscores, 15 chars max."""
    return ''.join(c for c in username if c.isascii() and (c.isalnum() or c == '_'))[:15]


def format_uptime(seconds: float) -> str:
    days, rest = divmod(int(seconds), 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60

    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
