#!/usr/bin/env python3
"""
Kinetic Crypto AI - scheduled crypto commentary bot for Twitter/X.

Usage:
    from kinetic import BotContext, run_job, heartbeat_once, run_daemon

    # Run one job
    run_job("market-update")

    # Run every due job once
    heartbeat_once(BotContext())

    # Run continuous daemon
    run_daemon()
"""

import time
from datetime import datetime, timedelta

from .config import CONFIG
from .state import BotContext
from .logging_utils import log, log_activity, setup_logging

from .cycles import (
    do_market_update,
    do_defi_update,
    do_trading_tip,
    do_degen_alert,
    do_mention_cycle,
)

__all__ = [
    'BotContext',
    'JOBS',
    'run_job',
    'heartbeat_once',
    'run_daemon',
]

# job name -> (cycle, interval in minutes)
JOBS = {
    'mentions': (do_mention_cycle, CONFIG['mention_check_interval_minutes']),
    'market-update': (do_market_update, CONFIG['market_update_interval_hours'] * 60),
    'degen-alert': (do_degen_alert, CONFIG['degen_alert_interval_hours'] * 60),
    'defi-update': (do_defi_update, CONFIG['defi_update_interval_hours'] * 60),
    'trading-tip': (do_trading_tip, CONFIG['trading_tip_interval_hours'] * 60),
}

SWEEP_JOB = 'cache-sweep'


def run_job(name: str, ctx: BotContext | None = None, force: bool = False) -> dict:
    """Run a single job by name and record when it ran."""
    if name not in JOBS:
        raise ValueError(f"Unknown job: {name} (expected one of {', '.join(JOBS)})")

    ctx = ctx or BotContext()
    cycle, _ = JOBS[name]
    log.info(f"|- {name.upper()} ------------------------------------------")
    result = cycle(ctx, force=True) if force and name == 'degen-alert' else cycle(ctx)
    ctx.mark_job_run(name)
    return result


def heartbeat_once(ctx: BotContext) -> dict:
    """Run every job whose interval has elapsed, then sweep the cache if due."""
    results = {}
    for name, (_, interval) in JOBS.items():
        if ctx.job_due(name, interval):
            results[name] = run_job(name, ctx)

    if ctx.job_due(SWEEP_JOB, CONFIG['cache_sweep_interval_minutes']):
        results[SWEEP_JOB] = {"removed": ctx.cache.sweep()}
        ctx.mark_job_run(SWEEP_JOB)

    return results


def run_daemon(interval_minutes: float = CONFIG['mention_check_interval_minutes'],
               ctx: BotContext | None = None) -> None:
    """Run continuously with sleep intervals."""
    banner = r"""
====================================================================
   _  ___            _   _
  | |/ (_)_ __   ___| |_(_) ___
  | ' /| | '_ \ / _ \ __| |/ __|
  | . \| | | | |  __/ |_| | (__
  |_|\_\_|_| |_|\___|\__|_|\___|   CRYPTO AI

            MARKET UPDATES - DEGEN ALERTS - REPLIES
====================================================================
    """
    print(banner)
    setup_logging()
    ctx = ctx or BotContext()

    log.info("Starting Kinetic Crypto AI daemon")
    log.info(f"   Tick interval: {interval_minutes} minutes")
    for name, (_, interval) in JOBS.items():
        log.info(f"   {name}: every {interval} min")
    log.info(f"   Daily AI budget: {ctx.quota.ceiling} calls")
    log.info("=" * 60)

    log_activity("STARTUP", f"Daemon started with {interval_minutes}m interval")

    tick = 0
    while True:
        try:
            tick += 1
            log.info("")
            log.info(f"=== HEARTBEAT #{tick} ===")
            results = heartbeat_once(ctx)
            log_activity("CYCLE", f"Completed heartbeat #{tick}: {', '.join(results) or 'nothing due'}")
        except KeyboardInterrupt:
            log.info("")
            log.info("Daemon stopped by user")
            log_activity("SHUTDOWN", "Stopped by user")
            break
        except Exception as e:
            log.error(f"Heartbeat failed: {e}")
            log_activity("ERROR", str(e))
            ctx.log_error(e, {"job": "heartbeat"})

        log.info(f"Sleeping {interval_minutes} minutes until next heartbeat...")
        log.info(f"   Next heartbeat at: {(datetime.now() + timedelta(minutes=interval_minutes)).strftime('%H:%M:%S')}")
        try:
            time.sleep(interval_minutes * 60)
        except KeyboardInterrupt:
            log.info("Daemon stopped by user")
            log_activity("SHUTDOWN", "Stopped by user")
            break
