"""CLI entry point."""

import asyncio
import os
import sys

from client.config import Config
from client.runtime import LiveDropClient
from cli.repl import repl_loop
from common.exceptions import IdentityUnavailable
from common.logging_config import setup_logging


async def run(offline: bool) -> int:
    config = Config()
    client = LiveDropClient.offline(config) if offline else LiveDropClient.from_config(config)

    try:
        async with client:
            await repl_loop(client)
    except IdentityUnavailable as e:
        print(f"Cannot start session: {e}")
        return 1
    return 0


def main() -> None:
    """Entry point for CLI."""
    log_level = 'DEBUG' if '--debug' in sys.argv else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('cli', log_level=log_level)

    if '--debug' in sys.argv:
        logger.info("Debug logging enabled")
        sys.argv.remove('--debug')

    offline = '--offline' in sys.argv
    if offline:
        sys.argv.remove('--offline')

    logger.info("CLI starting...")
    try:
        exit_code = asyncio.run(run(offline))
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
