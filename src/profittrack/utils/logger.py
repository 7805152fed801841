"""Logging infrastructure with user context."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from ..config.settings import app_home, get_settings


class UserContextFilter(logging.Filter):
    """Add user context to log records."""

    def __init__(self):
        super().__init__()
        self.user_id: Optional[str] = None

    def filter(self, record):
        """Add user_id to record."""
        record.user_id = self.user_id or "system"
        return True


class ProfitTrackLogger:
    """Centralized logging manager."""

    def __init__(self, log_level: str = "INFO"):
        settings = get_settings()
        self.log_dir = app_home() / settings.logs_dir
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / settings.log_file
        self.user_filter = UserContextFilter()

        self.logger = logging.getLogger("profittrack")
        self.logger.setLevel(getattr(logging, log_level.upper()))

        # Remove existing handlers
        self.logger.handlers.clear()

        file_handler = RotatingFileHandler(
            self.log_file,
            maxBytes=settings.log_max_file_size_mb * 1024 * 1024,
            backupCount=settings.log_backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)

        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [user:%(user_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        file_handler.setFormatter(formatter)
        console_handler.setFormatter(formatter)

        file_handler.addFilter(self.user_filter)
        console_handler.addFilter(self.user_filter)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def set_user_context(self, user_id: Optional[str]):
        """Set current user context for logging."""
        self.user_filter.user_id = user_id

    def get_logger(self) -> logging.Logger:
        """Get the configured logger."""
        return self.logger


# Global logger instance
_logger_instance: Optional[ProfitTrackLogger] = None


def get_logger(log_level: Optional[str] = None) -> logging.Logger:
    """Get or create global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = ProfitTrackLogger(log_level or get_settings().log_level)
    return _logger_instance.get_logger()


def set_user_context(user_id: Optional[str]):
    """Set user context for logging."""
    if _logger_instance:
        _logger_instance.set_user_context(user_id)
