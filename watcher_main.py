"""
Main entry point for the train watcher.

Runs the watcher as a daemon, logging every notification, or performs a
single forced cycle with --once and prints the resulting status.
"""

import asyncio
import sys
from typing import Optional

from utilities.config import config
from utilities.logger import get_logger, setup_logging
from watcher.exceptions import WatcherError
from watcher.models import Status
from watcher.watcher_service import VersionWatcher


def log_notification(error: Optional[BaseException], status: Status) -> None:
    """Callback used in daemon mode."""
    logger = get_logger(__name__)
    if error is not None:
        logger.error(
            "Version check failed",
            error=str(error),
            train=status.train
        )
        return

    logger.info(
        "Deployment status",
        train=status.train,
        time=status.time.isoformat(),
        diffs=[diff.model_dump() for diff in status.diffs],
        patches=[patch.model_dump() for patch in status.patches]
    )


async def run_once() -> int:
    """Run a single forced cycle and print the status as JSON."""
    options = config.get_watcher_options()
    options["immediate"] = False
    watcher = VersionWatcher(lambda error, status: None, **options)
    status = await watcher.run_cycle(force_notify=True)
    if status is None:
        return 1
    print(status.model_dump_json(indent=2))
    return 0


async def run_daemon() -> None:
    """Watch until interrupted."""
    cancel = VersionWatcher(log_notification, **config.get_watcher_options()).start()
    try:
        while True:
            await asyncio.sleep(1)
    finally:
        cancel()


async def main() -> int:
    """Main function to start the watcher."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    logger = get_logger(__name__)

    if len(sys.argv) > 1 and sys.argv[1] not in ('--once', '--daemon'):
        print(f"Unknown argument: {sys.argv[1]}")
        print("Usage: python watcher_main.py [--once|--daemon]")
        return 2

    try:
        if len(sys.argv) > 1 and sys.argv[1] == '--once':
            logger.info("Running in RUN ONCE MODE - Single execution")
            return await run_once()

        logger.info("Running in DAEMON MODE", rate_ms=config.rate)
        await run_daemon()
        return 0
    except WatcherError as e:
        logger.error("Failed to start version watcher", error=str(e))
        return 1


def cli() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    cli()
