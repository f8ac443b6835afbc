"""
Token Ledger Error Taxonomy

Every rejected ledger operation surfaces as one of the exceptions below.
They are all caller/input errors: the ledger never retries, and a rejected
operation leaves ledger state unchanged.
"""

from typing import Any, Dict, Optional


class TokenLedgerError(ValueError):
    """Base exception for rejected token ledger operations"""

    kind = "TokenLedgerError"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Structured form used by audit records and logs"""
        return {
            "kind": self.kind,
            "message": self.message,
            "context": self.context
        }


class InvalidRecipient(TokenLedgerError):
    """Destination is the reserved zero account"""

    kind = "InvalidRecipient"


class InsufficientBalance(TokenLedgerError):
    """Sender or owner balance is below the requested amount"""

    kind = "InsufficientBalance"


class InsufficientBalanceForApproval(TokenLedgerError):
    """Approver balance is below the approval amount"""

    kind = "InsufficientBalanceForApproval"


class AllowanceExceeded(TokenLedgerError):
    """Spender allowance for the owner is below the requested amount"""

    kind = "AllowanceExceeded"


class InvalidAmount(TokenLedgerError):
    """Amount is not an unsigned 256-bit integer"""

    kind = "InvalidAmount"


class LedgerInvariantError(TokenLedgerError):
    """Balances no longer add up to the total supply"""

    kind = "LedgerInvariantError"
