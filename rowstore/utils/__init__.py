"""
Utilities package for rowstore.

Exports shared logging helpers. Keep this package lightweight and free of
record-specific logic.
"""

from rowstore.utils.logging import JsonFormatter, configure_logging, get_logger

__all__ = [
    "JsonFormatter",
    "configure_logging",
    "get_logger",
]
