"""
Token Ledger Engine

Authoritative record of balances, allowances and a fixed total supply for a
single fungible token. Every mutation is validated completely before any
state changes, and all mutations are serialised through one lock so the
sum of balances always equals the total supply.
"""

import threading
from typing import Dict, Optional, Tuple

from .accounts import ZERO_ADDRESS, normalize_account, is_zero_account
from .audit import AuditTrail, AuditEventType
from .config import TokenLedgerConfig, get_config
from .errors import (
    TokenLedgerError, InvalidRecipient, InsufficientBalance,
    InsufficientBalanceForApproval, AllowanceExceeded, InvalidAmount,
    LedgerInvariantError
)
from .events import EventDispatcher, create_transfer_event, create_approval_event
from .logging_config import get_logger, log_action
from .units import DECIMALS, validate_amount, format_units


class TokenLedger:
    """
    Single-asset token ledger

    The initiating account is an explicit argument on every mutating
    operation. Amounts are integers already scaled by 10**18.
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        total_supply: int,
        owner: str,
        audit_trail: Optional[AuditTrail] = None,
        event_dispatcher: Optional[EventDispatcher] = None,
        settings: Optional[TokenLedgerConfig] = None
    ):
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Token name must be a non-empty string")
        if not isinstance(symbol, str) or not symbol.strip():
            raise ValueError("Token symbol must be a non-empty string")
        validate_amount(total_supply, "total_supply")
        if total_supply == 0:
            raise InvalidAmount("total_supply must be positive", context={"field": "total_supply"})
        owner = normalize_account(owner, "owner")
        if is_zero_account(owner):
            raise InvalidRecipient("Transfer to the zero address is not allowed",
                                   context={"recipient": owner})

        self.settings = settings or get_config()
        self.logger = get_logger("token_ledger.ledger")
        if audit_trail is None and self.settings.enable_audit_logging:
            audit_trail = AuditTrail(max_events=self.settings.audit_max_events)
        self.audit_trail = audit_trail
        self.event_dispatcher = event_dispatcher or EventDispatcher()

        self._name = name
        self._symbol = symbol
        self._decimals = DECIMALS
        self._total_supply = total_supply
        self._owner = owner
        self._balances: Dict[str, int] = {owner: total_supply}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._lock = threading.RLock()

        self._audit(AuditEventType.TOKEN_CREATED, owner, {
            "name": name,
            "symbol": symbol,
            "decimals": DECIMALS,
            "total_supply": total_supply,
            "owner": owner
        })
        self._publish(create_transfer_event(symbol, ZERO_ADDRESS, owner, total_supply))
        log_action(self.logger, "info",
                   f"Created token {symbol} with supply {format_units(total_supply)}",
                   user_id=owner, action="create", resource=symbol)

    @classmethod
    def create(
        cls,
        name: str,
        symbol: str,
        total_supply: int,
        owner: str,
        **kwargs
    ) -> 'TokenLedger':
        """
        Create a ledger and credit the whole supply to owner

        Args:
            name: Token name
            symbol: Token symbol
            total_supply: Supply already scaled by 10**18
            owner: Deploying account that receives the supply
            **kwargs: Optional audit_trail, event_dispatcher, settings

        Returns:
            New TokenLedger
        """
        return cls(name, symbol, total_supply, owner, **kwargs)

    # Read-only queries

    @property
    def owner(self) -> str:
        return self._owner

    def name(self) -> str:
        return self._name

    def symbol(self) -> str:
        return self._symbol

    def decimals(self) -> int:
        return self._decimals

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        """Current balance, 0 for accounts never seen"""
        account = normalize_account(account)
        with self._lock:
            return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        """Amount spender may still move out of owner's balance"""
        key = (normalize_account(owner, "owner"), normalize_account(spender, "spender"))
        with self._lock:
            return self._allowances.get(key, 0)

    def holders(self) -> Dict[str, int]:
        """Snapshot of every balance entry, including zero balances"""
        with self._lock:
            return dict(self._balances)

    def check_invariants(self) -> None:
        """
        Verify that balances add up to the total supply

        Raises:
            LedgerInvariantError: If the ledger is inconsistent
        """
        with self._lock:
            negative = [a for a, b in self._balances.items() if b < 0]
            negative += [f"{o}->{s}" for (o, s), v in self._allowances.items() if v < 0]
            if negative:
                raise LedgerInvariantError(f"Negative entries found: {negative}",
                                           context={"accounts": negative})
            balance_sum = sum(self._balances.values())
            if balance_sum != self._total_supply:
                raise LedgerInvariantError(
                    f"Sum of balances {balance_sum} does not match total supply {self._total_supply}",
                    context={"sum": str(balance_sum), "total_supply": str(self._total_supply)}
                )

    # Mutating operations

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Move amount from sender to recipient

        Raises:
            InvalidRecipient: If recipient is the zero account
            InsufficientBalance: If sender holds less than amount
        """
        sender = normalize_account(sender, "sender")
        recipient = normalize_account(recipient, "recipient")

        with self._lock:
            try:
                self._require_consistent()
                validate_amount(amount)
                self._require_recipient(recipient)
                self._require_balance(sender, amount)
            except TokenLedgerError as e:
                self._reject("transfer", sender, e)
                raise

            self._move(sender, recipient, amount)
            self._committed(AuditEventType.TRANSFER, "transfer", sender, {
                "from": sender,
                "to": recipient,
                "amount": amount
            })
            self._publish(create_transfer_event(self._symbol, sender, recipient, amount))

        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """
        Set spender's allowance over owner's balance to amount

        The approvable amount is bounded by owner's balance at approval
        time. The previous allowance is overwritten, not added to.

        Raises:
            InsufficientBalanceForApproval: If owner holds less than amount
        """
        owner = normalize_account(owner, "owner")
        spender = normalize_account(spender, "spender")

        with self._lock:
            try:
                self._require_consistent()
                validate_amount(amount)
                balance = self._balances.get(owner, 0)
                if balance < amount:
                    raise InsufficientBalanceForApproval(
                        "Insufficient balance for approval",
                        context={"owner": owner, "balance": str(balance), "amount": str(amount)}
                    )
            except TokenLedgerError as e:
                self._reject("approve", owner, e)
                raise

            self._allowances[(owner, spender)] = amount
            self._committed(AuditEventType.APPROVAL, "approve", owner, {
                "owner": owner,
                "spender": spender,
                "amount": amount
            })
            self._publish(create_approval_event(self._symbol, owner, spender, amount))

        return True

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        """
        Move amount from owner to recipient on behalf of spender

        The owner's balance is checked again here, independently of the
        check made when the allowance was granted.

        Raises:
            InvalidRecipient: If recipient is the zero account
            AllowanceExceeded: If spender's allowance for owner is below amount
            InsufficientBalance: If owner holds less than amount
        """
        spender = normalize_account(spender, "spender")
        owner = normalize_account(owner, "owner")
        recipient = normalize_account(recipient, "recipient")
        key = (owner, spender)

        with self._lock:
            try:
                self._require_consistent()
                validate_amount(amount)
                self._require_recipient(recipient)
                allowed = self._allowances.get(key, 0)
                if allowed < amount:
                    raise AllowanceExceeded(
                        "Transfer amount exceeds allowance",
                        context={"owner": owner, "spender": spender,
                                 "allowance": str(allowed), "amount": str(amount)}
                    )
                self._require_balance(owner, amount)
            except TokenLedgerError as e:
                self._reject("transfer_from", spender, e)
                raise

            self._move(owner, recipient, amount)
            self._allowances[key] = allowed - amount
            self._committed(AuditEventType.TRANSFER_FROM, "transfer_from", spender, {
                "spender": spender,
                "from": owner,
                "to": recipient,
                "amount": amount,
                "remaining_allowance": allowed - amount
            })
            self._publish(create_transfer_event(self._symbol, owner, recipient, amount, spender=spender))

        return True

    # Internal helpers, callers hold self._lock

    def _require_recipient(self, recipient: str) -> None:
        if is_zero_account(recipient):
            raise InvalidRecipient("Transfer to the zero address is not allowed",
                                   context={"recipient": recipient})

    def _require_balance(self, account: str, amount: int) -> None:
        balance = self._balances.get(account, 0)
        if balance < amount:
            raise InsufficientBalance(
                "You can't take more than what is avaliable",
                context={"account": account, "balance": str(balance), "amount": str(amount)}
            )

    def _move(self, source: str, destination: str, amount: int) -> None:
        self._balances[source] = self._balances.get(source, 0) - amount
        self._balances[destination] = self._balances.get(destination, 0) + amount

    def _require_consistent(self) -> None:
        # Runs before any mutation; _move conserves supply
        if self.settings.verify_invariants:
            self.check_invariants()

    def _committed(self, event_type: AuditEventType, action: str, initiator: str, metadata: Dict) -> None:
        self._audit(event_type, initiator, metadata)
        log_action(self.logger, "info", f"{action} accepted",
                   user_id=initiator, action=action, resource=self._symbol,
                   extra={k: str(v) for k, v in metadata.items()})

    def _reject(self, action: str, initiator: str, error: TokenLedgerError) -> None:
        self._audit(AuditEventType.OPERATION_REJECTED, initiator, {
            "action": action,
            "error": error.to_dict()
        })
        log_action(self.logger, "warning", f"{action} rejected: {error.message}",
                   user_id=initiator, action=action, resource=self._symbol,
                   extra={"kind": error.kind})

    def _audit(self, event_type: AuditEventType, initiator: str, metadata: Dict) -> None:
        if self.audit_trail is not None:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="token",
                entity_id=self._symbol,
                metadata=metadata,
                user_id=initiator
            )

    def _publish(self, event) -> None:
        if self.settings.enable_events:
            self.event_dispatcher.publish(event)
