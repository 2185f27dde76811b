#!/usr/bin/env python3
"""
Logging utilities for the Kinetic Crypto AI bot.
Handles activity logs, content logs, and console output.
"""

import json
import logging
from datetime import datetime

from . import config

# Logging format
LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Module logger
log = logging.getLogger('kinetic')


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure logging for the bot.
    Returns the configured logger.
    """
    logs_dir = config.logs_dir()
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[
            logging.FileHandler(logs_dir / 'kinetic.log'),
            logging.StreamHandler()
        ]
    )
    return logging.getLogger('kinetic')


def log_activity(action: str, details: str) -> None:
    """Log human-readable activity summary to activity.log."""
    logs_dir = config.logs_dir()
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    with open(logs_dir / 'activity.log', 'a') as f:
        f.write(f"[{timestamp}] {action}: {details}\n")


def log_content(entry_type: str, data: dict) -> None:
    """
    Log full generated content to JSONL file for later review.
    Also outputs a framed summary to the console.
    """
    logs_dir = config.logs_dir()
    logs_dir.mkdir(parents=True, exist_ok=True)
    entry = {
        "timestamp": datetime.now().isoformat(),
        "type": entry_type,
        **data
    }

    with open(logs_dir / 'content.jsonl', 'a') as f:
        f.write(json.dumps(entry, default=str) + '\n')

    separator = "=" * 60
    log.info(separator)
    log.info(f"  {entry_type.upper()}")

    if entry_type == 'reply':
        log.info(f"     To: @{data.get('user', 'unknown')}")
        log.info(f"     Query: {data.get('query', '')[:70]}")

    content = data.get('content', '')
    log.info(f"     Content ({len(content)} chars):")
    for line in content.split('\n')[:5]:
        log.info(f"       | {line[:70]}{'...' if len(line) > 70 else ''}")

    log.info(separator)
