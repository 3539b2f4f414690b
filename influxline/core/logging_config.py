"""Centralized logging configuration for influxline.

Library modules only create loggers; applications call setup_logging once.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LoggingConfigurator:
    """Handles all logging setup independently of other configuration."""

    @staticmethod
    def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None) -> None:
        """Set up logging configuration.

        DEBUG shows every skipped empty field; INFO shows skipped fields only
        when empty fields are not being excluded on purpose; WARNING shows
        dropped tags and points that produced no line.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR). Defaults to
                INFLUXLINE_LOG_LEVEL or INFO.
            log_file: Optional path to log file. Defaults to INFLUXLINE_LOG_FILE;
                if neither is set, logs to console only.
        """
        log_level = log_level or os.getenv('INFLUXLINE_LOG_LEVEL', 'INFO')
        log_file = log_file or os.getenv('INFLUXLINE_LOG_FILE') or None

        level = getattr(logging, log_level.upper(), None)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {log_level}")

        handlers = [logging.StreamHandler()]
        if log_file:
            # Ensure directory exists
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)
            handlers.insert(0, logging.FileHandler(log_file))

        logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

