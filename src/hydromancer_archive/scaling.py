"""
Fixed-point conversion for prices and sizes.

All px and sz values in the archives are signed 64-bit integers scaled by
10^8. Conversion is exact: no floats are involved in either direction.
"""

import re
from typing import Optional


# Fixed-point multiplier (10^8) for price/size representation.
# All px and sz values are stored as raw_value * SCALE.
SCALE = 10**8
SCALE_DIGITS = 8

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_MAX_WHOLE_DIGITS = len(str(INT64_MAX // SCALE))

_DECIMAL_RE = re.compile(r"([+-]?)([0-9]+)(?:\.([0-9]+))?")


def decimal_to_fixed(text: str) -> Optional[int]:
    """
    Parse decimal string to scaled integer.

    Args:
        text: Decimal string (e.g., "42000.12345678", "-0.5")

    Returns:
        Scaled integer (value * 10^8), or None if the string is malformed,
        has more than 8 fractional digits, or overflows a signed 64-bit int
    """
    if not isinstance(text, str):
        return None
    m = _DECIMAL_RE.fullmatch(text)
    if m is None:
        return None
    sign, whole, frac = m.groups()
    frac = frac or ""
    if len(frac) > SCALE_DIGITS:
        return None
    # Whole parts wider than int64 // SCALE can never fit
    if len(whole.lstrip("0")) > _MAX_WHOLE_DIGITS:
        return None

    value = int(whole) * SCALE + int(frac.ljust(SCALE_DIGITS, "0"))
    if sign == "-":
        value = -value
    if value < INT64_MIN or value > INT64_MAX:
        return None
    return value


def fixed_to_decimal(value: int) -> str:
    """
    Format scaled integer to decimal string.

    Trims trailing zeros and decimal point if not needed.

    Args:
        value: Integer scaled by 10^8

    Returns:
        Decimal string (e.g., "25.381", "100", "-0.5")
    """
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), SCALE)
    frac_str = f"{frac:0{SCALE_DIGITS}d}".rstrip("0")
    if frac_str:
        return f"{sign}{whole}.{frac_str}"
    return f"{sign}{whole}"


# Aliases for clarity
format_price = fixed_to_decimal
format_size = fixed_to_decimal
