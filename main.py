"""
Reservation gateway entry point.

Serves the HTTP API with uvicorn, or runs the offline console demo.

Usage:
    Serve API:    python main.py serve
    Console mode: python main.py console
"""

import logging
import sys

from evcharge.config import settings

logger = logging.getLogger(__name__)


def _run_server() -> None:
    """Start the HTTP gateway on the configured host and port."""
    import uvicorn

    from evcharge.api.app import create_app

    logger.info("Starting gateway on %s:%d", settings.api.host, settings.api.port)
    uvicorn.run(
        create_app(),
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.log_level.lower(),
    )


def _run_console_mode() -> None:
    """Run the offline console demo (no server required)."""
    from console_demo import main as console_main

    sys.argv = [sys.argv[0]] + sys.argv[2:]
    console_main()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_server()
