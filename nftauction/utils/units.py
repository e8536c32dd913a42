"""
Fixed-point unit helpers.

All on-chain amounts are integers counted in smallest units. These helpers
convert human-readable decimal strings to and from those integers without
ever going through floating point.
"""

from decimal import Decimal
from typing import Union

# Native currency precision (wei per ether)
NATIVE_DECIMALS = 18

# Oracle / USD precision
USD_DECIMALS = 8


def parse_units(value: Union[str, int, Decimal], decimals: int) -> int:
    """
    Convert a decimal amount into smallest units.

    Args:
        value: Human-readable amount, e.g. "1.5"
        decimals: Number of decimals of the unit

    Returns:
        Integer amount in smallest units

    Raises:
        ValueError: If the value has more precision than the unit allows
    """
    amount = Decimal(str(value)) * (Decimal(10) ** decimals)
    if amount != amount.to_integral_value():
        raise ValueError(f"{value} has more than {decimals} decimals")
    return int(amount)


def format_units(amount: int, decimals: int) -> str:
    """Render a smallest-unit amount as a decimal string."""
    sign = "-" if amount < 0 else ""
    whole, fraction = divmod(abs(amount), 10 ** decimals)
    if fraction == 0:
        return f"{sign}{whole}"
    digits = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{digits}"


def ether(value: Union[str, int, Decimal]) -> int:
    """Amount of native currency in wei."""
    return parse_units(value, NATIVE_DECIMALS)


def usd(value: Union[str, int, Decimal]) -> int:
    """USD figure at oracle precision (8 decimals)."""
    return parse_units(value, USD_DECIMALS)
