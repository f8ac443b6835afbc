"""
Token Ledger

An in-process fungible token ledger with a fixed supply, delegated
spending allowances, integer amounts scaled by 10**18, and a hash-chained
audit trail of every operation.
"""

__version__ = "1.0.0"

from .accounts import ZERO_ADDRESS
from .errors import (
    TokenLedgerError, InvalidRecipient, InsufficientBalance,
    InsufficientBalanceForApproval, AllowanceExceeded, InvalidAmount,
    LedgerInvariantError
)
from .ledger import TokenLedger
from .units import DECIMALS, parse_units, format_units

__all__ = [
    "TokenLedger",
    "ZERO_ADDRESS",
    "DECIMALS",
    "parse_units",
    "format_units",
    "TokenLedgerError",
    "InvalidRecipient",
    "InsufficientBalance",
    "InsufficientBalanceForApproval",
    "AllowanceExceeded",
    "InvalidAmount",
    "LedgerInvariantError",
]
