"""
Length conversions used when placing pictures.
"""

from decimal import Decimal, ROUND_CEILING
from enum import Enum

EMU_PER_CM = 360000
EMU_PER_MM = EMU_PER_CM // 10
MM_PER_INCH = 25.4
DEFAULT_DPI = 96


class UnitOfLength(Enum):
    """Units accepted for picture dimensions."""

    MILLIMETERS = "mm"
    CENTIMETERS = "cm"

    def to_millimeters(self, length: float) -> float:
        if self is UnitOfLength.CENTIMETERS:
            return length * 10.0
        return length

    def to_emu(self, length: float) -> int:
        return int(self.to_millimeters(length) * EMU_PER_MM)


def mm_to_emu(length_mm: float) -> int:
    """Convert millimeters to English Metric Units (truncated)."""
    return int(length_mm * EMU_PER_MM)


def pixels_to_mm(pixels: float, dpi: float = DEFAULT_DPI) -> float:
    """Convert a pixel count at ``dpi`` into millimeters."""
    if not dpi:
        dpi = DEFAULT_DPI
    return pixels * MM_PER_INCH / dpi


def format_length(length: float) -> str:
    """Format a length with four decimals, always rounding up."""
    return str(Decimal(str(length)).quantize(Decimal("0.0001"), rounding=ROUND_CEILING))
