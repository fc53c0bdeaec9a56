"""
Utility helpers: logging setup, XML helpers and length conversions.
"""

from .logger import configure_logging, get_logger
from .units import UnitOfLength, format_length, mm_to_emu, pixels_to_mm

__all__ = [
    "configure_logging",
    "get_logger",
    "UnitOfLength",
    "format_length",
    "mm_to_emu",
    "pixels_to_mm",
]
