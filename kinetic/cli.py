#!/usr/bin/env python3
"""Command line entry point for the Kinetic Crypto AI bot."""

import argparse
import json
import sys

from . import JOBS, BotContext, run_daemon, run_job
from .config import CONFIG, ConfigError, SYSTEM_PROMPTS, load_environment
from .crestal import CrestalError
from .logging_utils import setup_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="kinetic", description="Kinetic Crypto AI bot")
    subparsers = parser.add_subparsers(dest="command")

    # Run one job
    run_parser = subparsers.add_parser("run", help="Run a single job")
    run_parser.add_argument("job", choices=list(JOBS))
    run_parser.add_argument("--force", action="store_true", help="Ignore the degen alert spacing")

    # Daemon
    daemon_parser = subparsers.add_parser("daemon", help="Run all jobs on their schedules")
    daemon_parser.add_argument("--interval", type=float, default=CONFIG['mention_check_interval_minutes'],
                               help="Minutes between heartbeats")

    # Status
    subparsers.add_parser("status", help="Show health, quota and throttle state")

    # Environment check
    subparsers.add_parser("check-env", help="Validate required environment variables")

    # Generate (just invoke model)
    gen_parser = subparsers.add_parser("generate", help="Raw model invocation")
    gen_parser.add_argument("prompt", help="Prompt to send")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        load_environment(validate=args.command in ("run", "daemon", "check-env"))
    except ConfigError as e:
        print(f"Environment check failed: {e}", file=sys.stderr)
        return 1

    if args.command == "check-env":
        print("Environment validation passed")
        return 0

    if args.command == "daemon":
        run_daemon(args.interval)
        return 0

    setup_logging()
    ctx = BotContext()

    if args.command == "run":
        result = run_job(args.job, ctx, force=args.force)
        print(json.dumps(result, indent=2, default=str))
        return 0 if result.get("success") else 1

    if args.command == "status":
        report = ctx.analytics_report()
        report["twitter"] = ctx.twitter.stats()
        print(json.dumps(report, indent=2, default=str))
        return 0

    if args.command == "generate":
        try:
            print(ctx.crestal.complete(args.prompt, SYSTEM_PROMPTS['user_reply']))
        except CrestalError as e:
            print(f"Generation failed ({e.kind}): {e}", file=sys.stderr)
            return 1
        return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
