#!/usr/bin/env python3
"""
Job cycles for the Kinetic Crypto AI bot.
Each cycle handles one kind of post or engagement.
"""

from .market import do_market_update, do_defi_update, do_trading_tip
from .degen import do_degen_alert
from .mentions import do_mention_cycle

__all__ = [
    'do_market_update',
    'do_defi_update',
    'do_trading_tip',
    'do_degen_alert',
    'do_mention_cycle',
]
