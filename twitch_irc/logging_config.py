r"""
Logging configuration module for the Twitch IRC client.

Provides root logging setup using the colorlog library together with
structured error logging and aggregation.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import Any

import colorlog

from .constants import ERROR_ALERT_RATE_PER_HOUR


@dataclass
class ErrorStats:
    count: int = 0
    last_message: str = ""


class ErrorAggregator:
    """Counts structured errors per category over the session.

    A bad credential or an unreachable endpoint fails again on every
    reconnect; the per-hour rate makes that visible.
    """

    def __init__(self) -> None:
        self.stats: dict[str, ErrorStats] = {}
        self.start_time = time.time()

    def record_error(self, error_type: str, message: str) -> None:
        entry = self.stats.setdefault(error_type, ErrorStats())
        entry.count += 1
        entry.last_message = message

    def rate_per_hour(self, error_type: str) -> float:
        entry = self.stats.get(error_type)
        if entry is None:
            return 0.0
        hours = (time.time() - self.start_time) / 3600
        return entry.count / max(hours, 1)

    def should_alert(
        self, error_type: str, threshold_rate: float = ERROR_ALERT_RATE_PER_HOUR
    ) -> bool:
        return self.rate_per_hour(error_type) > threshold_rate

    def clear(self) -> None:
        self.stats.clear()
        self.start_time = time.time()

    def log_summary_report(self) -> None:
        if not self.stats:
            logging.info("No errors recorded in current session")
            return
        logging.warning("🚨 ERROR SUMMARY REPORT")
        for error_type, entry in self.stats.items():
            logging.warning(
                f"  {error_type}: {entry.count} total, "
                f"{self.rate_per_hour(error_type):.1f}/hour, last: {entry.last_message}"
            )


# Global error aggregator instance
error_aggregator = ErrorAggregator()


def log_structured_error(
    error_type: str,
    message: str,
    exception: Exception | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log an error with structured context and aggregation.

    Args:
        error_type: Category of the error (e.g., 'network', 'config', 'lookup')
        message: Descriptive error message
        exception: The exception that occurred (optional)
        context: Additional context data for debugging
        level: Logging level (default: ERROR)
    """
    structured_message = f"[{error_type.upper()}] {message}"

    if exception:
        structured_message += f" | Exception: {type(exception).__name__}: {str(exception)}"

    if context:
        context_str = " | ".join(f"{k}={v}" for k, v in context.items())
        structured_message += f" | Context: {context_str}"

    logging.log(level, structured_message)

    error_aggregator.record_error(error_type, message)

    if error_aggregator.should_alert(error_type):
        logging.critical(
            f"🚨 HIGH ERROR RATE ALERT: {error_type} occurring at "
            f"{error_aggregator.rate_per_hour(error_type):.1f}/hour"
        )


class LoggerConfigurator:
    """Handles root logging configuration using colorlog.

    Supports environment variable configuration for log levels.
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = config or {}

    def configure(self) -> None:
        """Configure logging with colored output using colorlog.

        Uses environment variables:
        - DEBUG: Set to 'true', '1', or 'yes' for DEBUG level, otherwise INFO
        """
        debug_env = os.environ.get("DEBUG", "").lower()
        log_level = logging.DEBUG if debug_env in ("true", "1", "yes") else logging.INFO

        formatter = colorlog.ColoredFormatter(
            "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "magenta",
            },
            secondary_log_colors={
                "message": {
                    "ERROR": "red",
                    "CRITICAL": "magenta",
                }
            },
            reset=True,
        )

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)

        logging.basicConfig(level=log_level, handlers=[handler], format="%(message)s")

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        # Frame-level chatter from the websocket library is rarely useful.
        logging.getLogger("websockets").setLevel(logging.INFO)

        for h in root_logger.handlers:
            h.setFormatter(formatter)

        atexit.register(self._log_final_error_summary)

    def _log_final_error_summary(self) -> None:
        """Log final error summary on application exit."""
        try:
            logging.info("📊 Final error summary before shutdown:")
            error_aggregator.log_summary_report()
        except Exception as e:  # noqa: BLE001
            logging.error(f"Failed to log final error summary: {e}")
