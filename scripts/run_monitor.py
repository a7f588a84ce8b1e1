#!/usr/bin/env python3
"""Run the laundry monitor.

Polls the machine status feed, posts a status overview on startup, and
notifies claimants and snoopers when a machine finishes. With
``LAUNDRY_INTERACTIONS_PORT`` set it also serves the endpoint Slack posts
button clicks and ``/laundry claim|snoop|release|unsnoop <machine>`` slash
commands to.

Usage
-----
Set environment variables and run::

    export LAUNDRY_API_URL="https://.../machines"
    export SLACK_BOT_TOKEN="xoxb-..."
    export SLACK_CHANNEL_ID="C0123456"
    export SLACK_SIGNING_SECRET="..."          # optional
    export LAUNDRY_INTERACTIONS_PORT=3000      # enables claim/snoop from chat
    python scripts/run_monitor.py

Options::

    --once               Run a single poll cycle and exit
    --interval SECONDS   Override LAUNDRY_POLL_INTERVAL
    --dry-run            Log notifications instead of posting them
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from pylaundry import (  # noqa: E402
    EngagementTracker,
    InteractionHandler,
    InteractionServer,
    LaundryConfig,
    LaundryConfigError,
    LaundryFeed,
    LogNotifier,
    MachineMonitor,
    NotificationDispatcher,
    SlackNotifier,
)
from pylaundry._transport import HttpTransport  # noqa: E402
from pylaundry.notify import Notifier  # noqa: E402

_logger = logging.getLogger("pylaundry.run_monitor")


async def run(args: argparse.Namespace) -> int:
    overrides = {}
    if args.interval is not None:
        overrides["poll_interval"] = args.interval
    try:
        config = LaundryConfig.from_env(**overrides)
    except LaundryConfigError as exc:
        _logger.error("Configuration error: %s", exc)
        return 2
    _logger.info("Configuration loaded successfully")

    async with aiohttp.ClientSession() as http_session:
        transport = HttpTransport(http_session, timeout=config.request_timeout)
        notifier: Notifier
        if config.notifications_enabled and not args.dry_run:
            assert config.slack_bot_token is not None and config.slack_channel_id is not None  # noqa: S101
            notifier = SlackNotifier(transport, bot_token=config.slack_bot_token, channel_id=config.slack_channel_id)
        else:
            _logger.info("Slack not configured or dry run requested; notifications are only logged")
            notifier = LogNotifier()

        tracker = EngagementTracker()
        dispatcher = NotificationDispatcher(tracker, notifier)

        async with LaundryFeed(config, transport=transport) as feed:
            monitor = MachineMonitor(
                feed.fetch_machines,
                dispatcher,
                tracker=tracker,
                poll_interval=config.poll_interval,
                stop_timeout=config.stop_timeout,
                debug=config.debug,
            )

            if args.once:
                events = await monitor.poll_once()
                finished = sum(1 for event in events if event.finished)
                _logger.info("Polled %d machine(s), %d finished", len(events), finished)
                await dispatcher.send_status_update(monitor.generation)
                return 0

            # Baseline generation first, then the startup overview.
            await monitor.poll_once()
            _logger.info("Sending initial status update")
            await dispatcher.send_status_update(monitor.generation)

            stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, stop_event.set)

            server: InteractionServer | None = None
            if config.interactions_port is not None:
                interactions = InteractionHandler(tracker, notifier, machines=lambda: monitor.generation)
                server = InteractionServer(
                    interactions,
                    host=config.interactions_host,
                    port=config.interactions_port,
                    signing_secret=config.slack_signing_secret,
                )
                await server.start()
            else:
                _logger.info("LAUNDRY_INTERACTIONS_PORT not set; claims and snoops are disabled")

            await monitor.start()
            _logger.info("Laundry monitor is running")
            await stop_event.wait()
            _logger.info("Shutting down")
            if server is not None:
                await server.stop()
            await monitor.stop()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Watch laundry machines and notify when they finish.")
    parser.add_argument("--once", action="store_true", help="Run a single poll cycle and exit")
    parser.add_argument("--interval", type=float, help="Seconds between poll cycles")
    parser.add_argument("--dry-run", action="store_true", help="Log notifications instead of posting them")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
