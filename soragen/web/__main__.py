"""Entry point for the web server.

Usage:
    python -m soragen.web [--port PORT] [--host HOST] [--config FILE] [--static-dir DIR]
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from soragen.logging_setup import setup_logging

logger = logging.getLogger("soragen.web")


def main() -> int:
    """Run the web server."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Sora Video Generator Web Interface",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", 3000)),
        help="Port to run the server on",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file",
    )
    parser.add_argument(
        "--static-dir",
        type=Path,
        default=None,
        help="Directory of static frontend files to serve at /",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()
    setup_logging(args.log_level.upper())

    # Import here to avoid loading FastAPI before parsing args
    import uvicorn
    from .backend.dependencies import get_config

    # Update config with CLI args
    config = get_config()
    config.host = args.host
    config.port = args.port
    config.config_path = args.config
    config.static_dir = args.static_dir

    logger.info("Starting Sora Video Generator on http://%s:%d", args.host, args.port)

    uvicorn.run(
        "soragen.web.backend.app:create_app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        factory=True,
        log_config=None,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
