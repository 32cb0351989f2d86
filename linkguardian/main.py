"""Main entry point for the LinkGuardian scan service."""

import asyncio
import logging
import signal
import sys

from .config import load_config, validate_config
from .scanner import LinkScanner
from .server import ScanServer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)
logger = logging.getLogger(__name__)


async def run_service():
    """Load configuration and serve until interrupted."""
    config = load_config()

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        sys.exit(1)

    scanner = LinkScanner.from_config(config)
    server = ScanServer(scanner, config)

    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loop does not support add_signal_handler.
            pass

    await server.start()
    sources = ", ".join(scanner.signal_source_names) or "none (heuristic-only)"
    logger.info("External signal sources: %s", sources)
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down")
        await server.stop()


def main():
    """Entry point."""
    asyncio.run(run_service())


if __name__ == "__main__":
    main()
