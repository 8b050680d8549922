"""
Data models for SettleLedger
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from utils import name_key


class ExpenseStatus:
    """Expense status values. Only APPROVED expenses move balances."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


VALID_STATUSES = frozenset({
    ExpenseStatus.PENDING,
    ExpenseStatus.APPROVED,
    ExpenseStatus.REJECTED,
})


class TransferStatus:
    """Position of a proposed transfer in its confirmation lifecycle"""
    OUTSTANDING = "outstanding"
    PARTIALLY_CONFIRMED = "partially_confirmed"
    FULLY_CONFIRMED = "fully_confirmed"


class AnomalyKind:
    """Non-fatal data integrity problems found while settling"""
    EMPTY_SPLIT = "empty_split"
    UNKNOWN_PARTICIPANT = "unknown_participant"
    OVERPAYMENT = "overpayment"
    UNMATCHED_CONFIRMATION = "unmatched_confirmation"


@dataclass
class ExpenseRecord:
    """Single shared expense"""
    id: str
    amount: float
    paid_by: str
    split_between: List[str]
    status: str = ExpenseStatus.PENDING
    date: str = ""  # YYYY-MM-DD, optional
    description: str = ""
    submitted_by: str = ""


@dataclass(frozen=True)
class Transfer:
    """Proposed payment from a debtor to a creditor"""
    from_person: str
    to_person: str
    amount: float

    @property
    def key(self) -> Tuple[str, str]:
        return (name_key(self.from_person), name_key(self.to_person))


@dataclass
class SettlementConfirmation:
    """Acknowledged (full or partial) payment of a proposed transfer"""
    from_person: str
    to_person: str
    amount: float
    confirmed_by: str = ""
    confirmed_at: str = ""  # ISO-8601 UTC

    @property
    def key(self) -> Tuple[str, str]:
        return (name_key(self.from_person), name_key(self.to_person))


@dataclass
class ReconciledTransfer:
    """Transfer merged with whatever confirmations exist for its pair"""
    transfer: Transfer
    confirmed_amount: float = 0.0
    remaining_amount: float = 0.0
    confirmed: bool = False
    overpaid_amount: float = 0.0

    @property
    def from_person(self) -> str:
        return self.transfer.from_person

    @property
    def to_person(self) -> str:
        return self.transfer.to_person

    @property
    def amount(self) -> float:
        return self.transfer.amount

    @property
    def status(self) -> str:
        if self.confirmed:
            return TransferStatus.FULLY_CONFIRMED
        if self.confirmed_amount > 0:
            return TransferStatus.PARTIALLY_CONFIRMED
        return TransferStatus.OUTSTANDING

    def to_dict(self) -> dict:
        return {
            "from": self.from_person,
            "to": self.to_person,
            "amount": self.amount,
            "confirmed": self.confirmed,
            "confirmedAmount": self.confirmed_amount,
            "remainingAmount": self.remaining_amount,
            "status": self.status,
        }


@dataclass
class Anomaly:
    """Flagged data problem; computation proceeds with a defensive default"""
    kind: str
    message: str
    expense_id: Optional[str] = None
    person: Optional[str] = None


@dataclass
class Ledger:
    """Everything the engine needs for one group, passed explicitly"""
    participants: List[str]
    expenses: List[ExpenseRecord] = field(default_factory=list)
    confirmations: List[SettlementConfirmation] = field(default_factory=list)
    currency: str = "₹"  # display only
    version: int = 1


@dataclass
class SettlementReport:
    """Result of one settlement pass over a ledger"""
    balances: Dict[str, float]
    transfers: List[ReconciledTransfer]
    anomalies: List[Anomaly] = field(default_factory=list)
    summary: Dict[str, dict] = field(default_factory=dict)  # person -> {paid, share, net}
    total_spent: float = 0.0

    @property
    def outstanding_total(self) -> float:
        return sum(t.remaining_amount for t in self.transfers)

    @property
    def is_settled(self) -> bool:
        return all(t.confirmed for t in self.transfers)
