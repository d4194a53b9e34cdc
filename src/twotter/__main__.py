"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    python -m twotter
    twotter

Settings come from the environment (see ServerConfig.from_env):

    TWOTTER_PORT_START=8000 TWOTTER_LOG_LEVEL=DEBUG python -m twotter

The server takes the first free port from TWOTTER_PORT_START upwards and
logs it ("Running on port: N"). It runs until the process is killed.

=============================================================================
"""

import argparse
import logging
import sys

from . import __version__
from .config import ServerConfig
from .core import BindError
from .server import TwotterServer


logger = logging.getLogger("twotter")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="twotter",
        description="Twotter microblogging server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  TWOTTER_HOST         Bind address (default: 0.0.0.0)
  TWOTTER_PORT_START   First port probed (default: 3000)
  TWOTTER_PORT_END     Probing stops before this port (default: 65000)
  TWOTTER_ASSETS_DIR   Templates and static files (default: bundled)
  TWOTTER_DATABASE     SQLite database file (default: twotter.db)
  TWOTTER_LOG_LEVEL    DEBUG, INFO, WARNING or ERROR (default: INFO)
        """
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"twotter {__version__}"
    )

    parser.parse_args()

    try:
        server = TwotterServer(ServerConfig.from_env())
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.run()
    except BindError as e:
        logger.error(f"Cannot start: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")


if __name__ == "__main__":
    main()
