"""
Input Validation - Parameter checks for marketplace entry points.

Every validator returns (is_valid, error_message) so callers can decide
which error class to raise. Covers:
- Addresses (length, null identity)
- Amounts and durations (uint256 bounds, positivity)
- Fee rates (basis points ceiling)
- Fee tier lists (strictly ascending thresholds)
"""

from typing import Any, List, Optional, Sequence, Tuple

# =============================================================================
# Constants
# =============================================================================

ADDRESS_SIZE = 20
NULL_ADDRESS = bytes(ADDRESS_SIZE)

# uint256 bounds
MIN_AMOUNT = 0
MAX_AMOUNT = 2**256 - 1

# 100% in basis points
MAX_BASIS_POINTS = 10_000


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(data: Any, name: str, expected_length: Optional[int] = None) -> Tuple[bool, str]:
    """Validate a bytes value, optionally of an exact length."""
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a 20-byte address that is not the null identity."""
    valid, err = validate_bytes(address, name, expected_length=ADDRESS_SIZE)
    if not valid:
        return False, err

    if bytes(address) == NULL_ADDRESS:
        return False, f"{name} must not be the null address"

    return True, ""


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass but never a valid amount
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a strictly positive amount."""
    return validate_integer(amount, name, 1, MAX_AMOUNT)


def validate_duration(duration: Any) -> Tuple[bool, str]:
    """Validate an auction duration in seconds."""
    return validate_integer(duration, "duration", 1, MAX_AMOUNT)


def validate_basis_points(rate: Any, name: str = "fee_rate") -> Tuple[bool, str]:
    """Validate a fee rate expressed in basis points (0-10000)."""
    return validate_integer(rate, name, 0, MAX_BASIS_POINTS)


def validate_ascending(thresholds: Sequence[int]) -> Tuple[bool, str]:
    """Validate that fee tier thresholds are strictly ascending."""
    for i in range(1, len(thresholds)):
        if thresholds[i] <= thresholds[i - 1]:
            return False, (
                f"Tier {i} threshold {thresholds[i]} must exceed "
                f"tier {i - 1} threshold {thresholds[i - 1]}"
            )
    return True, ""


def validate_same_length(name_a: str, a: List[Any], name_b: str, b: List[Any]) -> Tuple[bool, str]:
    """Validate that two parallel arrays have equal length."""
    if len(a) != len(b):
        return False, f"{name_a} length {len(a)} != {name_b} length {len(b)}"
    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_bytes",
    "validate_address",
    "validate_integer",
    "validate_amount",
    "validate_duration",
    "validate_basis_points",
    "validate_ascending",
    "validate_same_length",
    "ADDRESS_SIZE",
    "NULL_ADDRESS",
    "MAX_AMOUNT",
    "MAX_BASIS_POINTS",
]
