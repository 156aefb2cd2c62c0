"""
Run script for starting the Ultravox speech-to-speech relay server.

The relay configuration is read and validated from the environment before the
server starts; a missing or invalid parameter aborts startup.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys
from pathlib import Path

import dotenv
import uvicorn

sys.path.append(str(Path(__file__).parent))

from app.config.logging_config import configure_logging
from app.config.settings import RelayConfig
from app.errors import ConfigurationError

# Load environment variables from .env file if it exists
dotenv.load_dotenv(Path(".") / ".env")


def parse_args(relay_config: RelayConfig):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the Ultravox speech-to-speech relay server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=relay_config.port,
        help="Port to run the server on (default: 6031 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=relay_config.host,
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args()


def main():
    """Validate the configuration and start the server."""
    logger = configure_logging()

    try:
        relay_config = RelayConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.detail}")
        sys.exit(1)

    args = parse_args(relay_config)
    logger = configure_logging(args.log_level)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Call type: {relay_config.call_type}")
    logger.info(f"Ultravox API key configured: {bool(relay_config.api_key)}")

    from app.main import create_app

    uvicorn.run(
        create_app(relay_config),
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
        # Disable access logs for lower overhead, we have our own logging
        access_log=False,
    )


if __name__ == "__main__":
    main()
