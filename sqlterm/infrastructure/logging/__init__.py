"""Logging setup."""

from sqlterm.infrastructure.logging.logger import StructuredLogger, setup_logging

__all__ = ["StructuredLogger", "setup_logging"]
