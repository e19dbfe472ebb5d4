"""
Logging Module for CoinVest

This module provides the centralized logging setup: a console handler on the
root logger, optional rotating file handlers per named logger, and the trade
audit log the API writes every executed buy and sell to.
"""

import os
import sys
import json
import logging
import threading
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler

from coinvest.core.config import settings
from coinvest.schemas.investment import TradeResult


class LoggerFactory:
    """Factory class to create and configure loggers."""

    _instance = None
    _lock = threading.Lock()
    _loggers = {}

    @classmethod
    def get_instance(cls):
        """Get singleton instance of LoggerFactory."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def __init__(self):
        """Initialize the logger factory."""
        self.default_level = getattr(logging, settings.log_level.upper(), logging.INFO)
        self.log_dir = settings.log_dir
        self.log_to_file = settings.log_to_file
        self.log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        self.date_format = "%Y-%m-%d %H:%M:%S"
        self.backup_count = 10

        if self.log_to_file:
            os.makedirs(self.log_dir, exist_ok=True)

        self._setup_root_logger()

    def _setup_root_logger(self):
        """Set up the root logger with console handler."""
        root_logger = logging.getLogger()
        root_logger.setLevel(self.default_level)

        # Remove existing handlers
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(self.log_format, self.date_format))
        root_logger.addHandler(console_handler)

    def get_logger(self, name, level=None, log_to_file=None, rotate_when='midnight', fmt=None):
        """
        Get a logger with the specified name and configuration.

        Args:
            name: Logger name
            level: Log level (default: configured level)
            log_to_file: Whether to log to file (default: configured flag)
            rotate_when: When to rotate log files (TimedRotatingFileHandler interval)
            fmt: Format of file records (default: the console format)

        Returns:
            Configured logger
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(name)
        logger.setLevel(self.default_level if level is None else level)

        if log_to_file is None:
            log_to_file = self.log_to_file

        if log_to_file:
            log_file = os.path.join(self.log_dir, f"{name}.log")

            file_handler = TimedRotatingFileHandler(
                log_file,
                when=rotate_when,
                backupCount=self.backup_count
            )

            file_handler.setFormatter(logging.Formatter(fmt or self.log_format, self.date_format))
            logger.addHandler(file_handler)

        self._loggers[name] = logger

        return logger


class TradeAuditLogger:
    """Audit log of executed trades, one JSON object per record."""

    def __init__(self, name="trades"):
        """
        Initialize the trade audit logger.

        Args:
            name: Logger name; file records go to <log_dir>/<name>.log
        """
        factory = LoggerFactory.get_instance()
        self.logger = factory.get_logger(name, fmt="%(message)s")

    def log_trade(self, user_id, result: TradeResult):
        """
        Write one executed trade.

        Args:
            user_id: User who traded
            result: Outcome returned by the ledger

        Returns:
            Dictionary that was logged
        """
        record = result.model_dump(mode="json", exclude={"position", "message"})
        record["user_id"] = user_id
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        record["position_open"] = result.position is not None

        self.logger.info(json.dumps(record, sort_keys=True))

        return record
