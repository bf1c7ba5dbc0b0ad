#!/usr/bin/env python3
"""
Chat Client Application

Client application for connecting to the chat server.
Provides a terminal-based user interface using the Textual framework.
"""

import argparse
import logging
import os
import sys

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main entry point for the chat client."""
    parser = argparse.ArgumentParser(description="Terminal chat client")
    parser.add_argument(
        "--server",
        default=os.environ.get("CHAT_SERVER", "localhost:8080"),
        help="Server address, host:port or ws:// URL (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    # Log to file to avoid interfering with UI
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler("chat_client.log", mode="a")],
    )

    logger.info("Starting chat client...")

    from .ui import ChatApp

    try:
        app = ChatApp(server_address=args.server)
        app.run()
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(0)


if __name__ == "__main__":
    main()
