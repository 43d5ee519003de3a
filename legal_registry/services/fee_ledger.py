"""
Fee Ledger - value transfer used to collect registration fees.

The registry only needs an all-or-nothing transfer:

    transfer(amount, sender, recipient) -> bool

A transfer fails when:
- amount is not positive
- sender and recipient are the same principal
- the ledger is metered and the sender cannot cover the amount

An unmetered ledger (no opening balance) accepts every well-formed
transfer and only keeps the transfer log.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class ValueTransfer(Protocol):
    """Transfer primitive consumed by the record registry."""

    def transfer(self, amount: int, sender: str, recipient: str) -> bool:
        ...


@dataclass
class FeeTransfer:
    """A completed transfer."""
    amount: int
    sender: str
    recipient: str
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "amount": self.amount,
            "sender": self.sender,
            "recipient": self.recipient,
            "recorded_at": self.recorded_at.isoformat(),
        }


class FeeLedger:
    """In-process balance ledger implementing ValueTransfer."""

    def __init__(self, opening_balance: Optional[int] = None):
        self.opening_balance = opening_balance
        self._balances: dict[str, int] = {}
        self._transfers: list[FeeTransfer] = []

    @property
    def metered(self) -> bool:
        return self.opening_balance is not None

    def balance_of(self, principal: str) -> Optional[int]:
        """Current balance, or None on an unmetered ledger."""
        if not self.metered:
            return None
        return self._balances.get(principal, self.opening_balance)

    def credit(self, principal: str, amount: int) -> int:
        """Add funds to a principal. Returns the new balance."""
        if amount <= 0:
            raise ValueError(f"Credit amount must be positive, got {amount}")
        if not self.metered:
            raise ValueError("Cannot credit an unmetered ledger")
        new_balance = self.balance_of(principal) + amount
        self._balances[principal] = new_balance
        return new_balance

    def transfer(self, amount: int, sender: str, recipient: str) -> bool:
        if amount <= 0 or sender == recipient:
            logger.debug("Rejected transfer of %d from %s to %s", amount, sender, recipient)
            return False

        if self.metered:
            sender_balance = self.balance_of(sender)
            if sender_balance < amount:
                logger.info(
                    "Insufficient balance for transfer: %s has %d, needs %d",
                    sender, sender_balance, amount,
                )
                return False
            self._balances[sender] = sender_balance - amount
            self._balances[recipient] = self.balance_of(recipient) + amount

        self._transfers.append(FeeTransfer(amount=amount, sender=sender, recipient=recipient))
        logger.info("Transferred %d from %s to %s", amount, sender, recipient)
        return True

    @property
    def transfers(self) -> list[FeeTransfer]:
        return list(self._transfers)

    @property
    def balances(self) -> dict[str, int]:
        """Balances of every principal that has been credited or paid."""
        return dict(self._balances)

    def restore(self, balances: dict[str, int], transfers: list[FeeTransfer]) -> None:
        """Replace balances and the transfer log, e.g. after loading a snapshot."""
        self._balances = dict(balances)
        self._transfers = list(transfers)
