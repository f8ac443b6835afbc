"""
Account Identifiers

Accounts are opaque string keys. Hex addresses ("0x" + 40 hex digits) are
lower-cased so that checksum-cased and plain forms refer to one account.
"""

import re


ZERO_ADDRESS = "0x" + "0" * 40

_HEX_ADDRESS_RE = re.compile(r'^0[xX][0-9a-fA-F]{40}$')


def is_hex_address(value: str) -> bool:
    """Check if value looks like a 20-byte hex address"""
    return bool(_HEX_ADDRESS_RE.match(value))


def normalize_account(account, field_name: str = "account") -> str:
    """
    Validate and normalise an account identifier

    Args:
        account: Account identifier
        field_name: Name used in the error message

    Returns:
        Normalised identifier

    Raises:
        ValueError: If account is not a non-empty string
    """
    if not isinstance(account, str) or not account.strip():
        raise ValueError(f"{field_name} must be a non-empty string, got {account!r}")

    if is_hex_address(account):
        return "0x" + account[2:].lower()
    return account


def is_zero_account(account: str) -> bool:
    """Check if account is the reserved zero account"""
    return normalize_account(account) == ZERO_ADDRESS
