#!/usr/bin/env python3
"""
SignalDeck - Live Signal Monitor
================================

Main entry point for running SignalDeck.

Usage:
    python main.py
    python main.py --log-level DEBUG    # per-message debug lines (console + file)

Log level can also come from config (system.log_level) or the
SIGNALDECK_LOG_LEVEL env var.
"""

import argparse
import asyncio
import os


def _parse_args():
    p = argparse.ArgumentParser(description="Run SignalDeck")
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        metavar="LEVEL",
        help="Set log level. Default from config.",
    )
    return p.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    if args.log_level:
        os.environ["SIGNALDECK_LOG_LEVEL"] = args.log_level
    try:
        from signaldeck.orchestrator import main
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nSignalDeck stopped by user")
