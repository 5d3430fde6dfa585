"""Shared utilities: logging setup and safe file output."""

from .io import atomic_write_bytes
from .logging import configure_logging, get_logger

__all__ = ["atomic_write_bytes", "configure_logging", "get_logger"]
