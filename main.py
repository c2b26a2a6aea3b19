#!/usr/bin/env python3
"""
Main entry point for the Twitch chat client
"""

import asyncio
import logging
import sys

from twitch_irc.app import install_signal_handlers, run_client
from twitch_irc.config import load_config
from twitch_irc.errors.handling import log_error
from twitch_irc.logging_config import LoggerConfigurator


async def main():
    """Main function"""
    try:
        logging.info("🚀 Starting Twitch chat client")
        config = load_config()
        logging.info(f"⚙️ Configuration: {config.redacted()}")

        stop_event = asyncio.Event()
        install_signal_handlers(stop_event)
        await run_client(config, stop_event)
    except KeyboardInterrupt:
        logging.warning("⌨️ Interrupted by user")
    except Exception as e:
        log_error("Main application error", e)
        logging.critical(f"Critical error occurred: {e}", exc_info=True)
        sys.exit(1)
    finally:
        logging.info("🏁 Application shutdown complete")


if __name__ == "__main__":
    LoggerConfigurator().configure()

    # Simple health check mode
    if len(sys.argv) > 1 and sys.argv[1] == "--health-check":
        logging.info("🏥 Health check mode")
        try:
            config = load_config()
            logging.info(
                f"✅ Health check passed - {len(config.channels)} channel(s) configured"
            )
            sys.exit(0)
        except Exception as e:
            logging.error(f"❌ Health check failed: {e}")
            sys.exit(1)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Application terminated by user")
        sys.exit(0)
    except Exception as e:
        log_error("Top-level error", e)
        logging.critical(f"Critical error occurred: {e}", exc_info=True)
        sys.exit(1)
