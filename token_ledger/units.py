"""
Token Amount Units Module

Fixed-point amount handling for the token ledger. Amounts are plain
unsigned integers scaled by 10**DECIMALS. NEVER uses float for amounts;
conversion to and from human-readable strings goes through Decimal.
"""

from decimal import Decimal
from typing import Union
import re

from .errors import InvalidAmount


DECIMALS = 18
SCALE = 10 ** DECIMALS
UINT256_MAX = (1 << 256) - 1

_NUMBER_RE = re.compile(r'^\d+(\.\d+)?$')


def is_amount(value) -> bool:
    """Check whether value is a valid ledger amount"""
    # bool is an int subclass but never a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value <= UINT256_MAX


def validate_amount(value, field_name: str = "amount") -> int:
    """
    Validate that value is an unsigned 256-bit integer amount

    Args:
        value: Candidate amount (already scaled)
        field_name: Name used in the error message

    Returns:
        The amount unchanged

    Raises:
        InvalidAmount: If value is not an int or is out of uint256 range
    """
    if not is_amount(value):
        raise InvalidAmount(
            f"{field_name} must be an integer between 0 and 2**256 - 1, got {value!r}",
            context={"field": field_name, "value": repr(value)}
        )
    return value


def parse_units(value: Union[str, int, Decimal], decimals: int = DECIMALS) -> int:
    """
    Convert a human-readable quantity into a scaled integer amount

    parse_units("100", 18) == 100 * 10**18

    Args:
        value: Quantity as a decimal string, int or Decimal
        decimals: Number of fractional digits of the scale

    Returns:
        Scaled integer amount

    Raises:
        ValueError: If the value is negative, malformed, or has more
            fractional digits than the scale allows
    """
    if isinstance(value, float) or isinstance(value, bool):
        raise ValueError("Amounts must be given as str, int or Decimal, not float")

    if isinstance(value, int):
        quantity = Decimal(value)
    elif isinstance(value, Decimal):
        quantity = value
    elif isinstance(value, str):
        clean_value = value.strip().replace('_', '').replace(',', '')
        if not _NUMBER_RE.match(clean_value):
            raise ValueError(f"Cannot convert '{value}' to a token amount")
        quantity = Decimal(clean_value)
    else:
        raise ValueError(f"Unsupported amount type: {type(value).__name__}")

    if not quantity.is_finite() or quantity < 0:
        raise ValueError(f"Token amounts must be finite and non-negative, got {value}")

    # Work on the exact digits; Decimal arithmetic would round to the context precision
    _, digits, exponent = quantity.as_tuple()
    coefficient = int(''.join(map(str, digits)))
    if exponent >= 0:
        result = coefficient * 10 ** (exponent + decimals)
    elif -exponent <= decimals:
        result = coefficient * 10 ** (decimals + exponent)
    else:
        result, remainder = divmod(coefficient, 10 ** (-exponent - decimals))
        if remainder:
            raise ValueError(f"'{value}' has more than {decimals} fractional digits")

    return validate_amount(result)


def format_units(amount: int, decimals: int = DECIMALS) -> str:
    """
    Format a scaled integer amount as a human-readable decimal string

    Trailing fractional zeros are dropped: format_units(1500 * 10**15) == "1.5"
    """
    validate_amount(amount)
    whole, fraction = divmod(amount, 10 ** decimals)
    if fraction == 0:
        return str(whole)
    fraction_str = str(fraction).rjust(decimals, '0').rstrip('0')
    return f"{whole}.{fraction_str}"
