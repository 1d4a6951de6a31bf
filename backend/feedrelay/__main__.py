"""Command line entry point.

    python -m feedrelay update   # fetch the feed and store new items
    python -m feedrelay screen   # screen one item
    python -m feedrelay post     # summarize and post one item
    python -m feedrelay          # all three, in that order
"""

import argparse
import asyncio
import sys

from feedrelay.config import get_settings
from feedrelay.logging_config import configure_logging
from feedrelay.schemas.report import StageReport
from feedrelay.services.pipeline import FeedRelayBot

COMMANDS = ("update", "screen", "post")


async def run(command: str | None) -> list[StageReport]:
    settings = get_settings()
    logger = configure_logging(settings.log_level)

    async with FeedRelayBot.from_settings(settings, logger=logger) as bot:
        if command == "update":
            reports = [await bot.refresh_feed_items()]
        elif command == "screen":
            reports = [await bot.screen_item()]
        elif command == "post":
            reports = [await bot.post_summary()]
        else:
            reports = await bot.run_all()

    for report in reports:
        if report.error is not None:
            logger.error(
                "%s failed: %s: %s", report.stage.value, report.error.type, report.error.message
            )
    return reports


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="feedrelay", description=__doc__.splitlines()[0])
    parser.add_argument("command", nargs="?", choices=COMMANDS, help="run a single stage")
    args = parser.parse_args(argv)

    reports = asyncio.run(run(args.command))
    return 0 if all(report.ok for report in reports) else 1


if __name__ == "__main__":
    sys.exit(main())
