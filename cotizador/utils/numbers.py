"""
Locale-aware numeric parsing for values received as text.

The currency webhook answers with Chilean formatted strings
("1.234,56"), but some deployments return plain dot-decimal
values ("950.35").  The format is detected explicitly before
normalizing so both are handled the same way.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any


class NumberFormat(str, Enum):
    COMMA_DECIMAL = "comma_decimal"  # 1.234,56
    DOT_DECIMAL = "dot_decimal"      # 1234.56


def detect_number_format(text: str) -> NumberFormat:
    """A comma anywhere means comma-decimal; otherwise the dot is the decimal mark."""
    if "," in text:
        return NumberFormat.COMMA_DECIMAL
    return NumberFormat.DOT_DECIMAL


def normalize_number_text(text: str, fmt: NumberFormat | None = None) -> str:
    """Rewrite *text* into a string that float() understands."""
    cleaned = text.strip().replace(" ", "").replace("\u00a0", "")
    fmt = fmt or detect_number_format(cleaned)
    if fmt is NumberFormat.COMMA_DECIMAL:
        # Dots are thousands separators
        return cleaned.replace(".", "").replace(",", ".")
    return cleaned


def parse_locale_number(value: Any) -> float:
    """
    Parse a number that may come as text in Chilean or plain format.
    Raises ValueError when the value is empty, unparseable or not finite.
    """
    if isinstance(value, bool):
        raise ValueError(f"Boolean is not a number: {value!r}")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        if not value.strip():
            raise ValueError("Empty numeric string")
        normalized = normalize_number_text(value)
        try:
            number = float(normalized)
        except ValueError:
            raise ValueError(f"Cannot parse number from {value!r}") from None
    else:
        raise ValueError(f"Unsupported numeric value type: {type(value).__name__}")

    if not math.isfinite(number):
        raise ValueError(f"Non-finite number: {value!r}")
    return number
