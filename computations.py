"""
Settlement engine for SettleLedger: balances, greedy transfers and
confirmation reconciliation. Everything here is a pure function of its inputs.
"""
from __future__ import annotations
import logging
from datetime import date
from typing import Dict, Iterator, List, Optional, Tuple

from exceptions import (
    InvalidConfirmationError,
    InvalidExpenseError,
    UnknownParticipantError,
)
from models import (
    Anomaly,
    AnomalyKind,
    ExpenseRecord,
    ExpenseStatus,
    Ledger,
    ReconciledTransfer,
    SettlementConfirmation,
    SettlementReport,
    Transfer,
    VALID_STATUSES,
)
from utils import is_number, name_key, parse_date

logger = logging.getLogger(__name__)

SETTLEMENT_EPSILON = 0.01


def _flag(anomalies: Optional[List[Anomaly]], anomaly: Anomaly) -> None:
    logger.warning("%s: %s", anomaly.kind, anomaly.message)
    if anomalies is not None:
        anomalies.append(anomaly)


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

def build_roster(participants: List[str]) -> Dict[str, str]:
    """Map case-folded name -> roster spelling. First spelling wins."""
    roster: Dict[str, str] = {}
    for p in participants:
        k = name_key(p)
        if k and k not in roster:
            roster[k] = str(p).strip()
    return roster


def canonical_name(name: str, roster: Dict[str, str]) -> Tuple[str, bool]:
    """
    Resolve a name against the roster, ignoring case.
    Returns (display name, known). Unknown names keep their own spelling.
    """
    k = name_key(name)
    if k in roster:
        return roster[k], True
    return str(name).strip(), False


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_expense(e: ExpenseRecord) -> None:
    """Raise InvalidExpenseError if the record breaks the input contract"""
    eid = getattr(e, "id", None)
    if eid is None or str(eid).strip() == "":
        raise InvalidExpenseError("Expense is missing an id")
    details = {"expense_id": eid}

    if not is_number(getattr(e, "amount", None)):
        raise InvalidExpenseError(f"Amount must be a finite number, got {e.amount!r}", details)
    if e.amount < 0:
        raise InvalidExpenseError(f"Amount must not be negative, got {e.amount}", details)

    if not e.paid_by or not str(e.paid_by).strip():
        raise InvalidExpenseError("Expense is missing paid_by", details)
    if not isinstance(e.split_between, (list, tuple, set, frozenset)):
        raise InvalidExpenseError("split_between must be a list of names", details)
    for person in e.split_between:
        if not isinstance(person, str) or not person.strip():
            raise InvalidExpenseError(f"Invalid name in split_between: {person!r}", details)

    if e.status not in VALID_STATUSES:
        raise InvalidExpenseError(f"Unknown status {e.status!r}", details)


def validate_confirmation(c: SettlementConfirmation) -> None:
    """Raise InvalidConfirmationError if the record breaks the input contract"""
    if not c.from_person or not str(c.from_person).strip():
        raise InvalidConfirmationError("Confirmation is missing 'from'")
    if not c.to_person or not str(c.to_person).strip():
        raise InvalidConfirmationError("Confirmation is missing 'to'")
    details = {"from": c.from_person, "to": c.to_person}
    if not is_number(c.amount):
        raise InvalidConfirmationError(f"Amount must be a finite number, got {c.amount!r}", details)
    if c.amount < 0:
        raise InvalidConfirmationError(f"Amount must not be negative, got {c.amount}", details)


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------

def filter_expenses_by_date(
    expenses: List[ExpenseRecord],
    start: Optional[date],
    end: Optional[date]
) -> List[ExpenseRecord]:
    """Filter expenses by date range. Undated expenses only pass without a range."""
    if start is None and end is None:
        return list(expenses)
    out = []
    for e in expenses:
        if not e.date:
            continue
        try:
            ed = parse_date(e.date)
        except ValueError:
            raise InvalidExpenseError(f"Bad date {e.date!r}, expected YYYY-MM-DD", {"expense_id": e.id})
        if start and ed < start:
            continue
        if end and ed > end:
            continue
        out.append(e)
    return out


def _approved_postings(
    expenses: List[ExpenseRecord],
    roster: Dict[str, str],
    anomalies: Optional[List[Anomaly]]
) -> Iterator[Tuple[ExpenseRecord, str, List[str], float]]:
    """
    Yield (expense, payer, members, share) for every approved, usable expense.
    Names are resolved to roster spelling; unknown names are added to the
    roster under their first-seen spelling and flagged.
    """
    seen_ids = set()
    for e in expenses:
        validate_expense(e)
        eid = str(e.id).strip()
        if eid in seen_ids:
            raise InvalidExpenseError(f"Duplicate expense id {e.id!r}", {"expense_id": e.id})
        seen_ids.add(eid)

    known_keys = frozenset(roster)
    for e in expenses:
        if e.status != ExpenseStatus.APPROVED:
            continue
        if not e.split_between:
            _flag(anomalies, Anomaly(
                kind=AnomalyKind.EMPTY_SPLIT,
                message=f"Approved expense {e.id} has nobody to split between; skipped",
                expense_id=e.id,
            ))
            continue

        flagged = set()

        def resolve(name: str) -> str:
            display, known = canonical_name(name, roster)
            if not known:
                roster[name_key(name)] = display
            k = name_key(display)
            if k not in flagged and k not in known_keys:
                flagged.add(k)
                _flag(anomalies, Anomaly(
                    kind=AnomalyKind.UNKNOWN_PARTICIPANT,
                    message=f"Expense {e.id} references '{display}' who is not in the participant list",
                    expense_id=e.id,
                    person=display,
                ))
            return display

        payer = resolve(e.paid_by)
        members: List[str] = []
        seen = set()
        for person in e.split_between:
            k = name_key(person)
            if k in seen:
                continue
            seen.add(k)
            members.append(resolve(person))

        yield e, payer, members, float(e.amount) / len(members)


def _tally(
    postings: Iterator[Tuple[ExpenseRecord, str, List[str], float]],
    names: List[str]
) -> Tuple[Dict[str, float], Dict[str, dict], float]:
    """Fold postings into (balances, per-person summary, total spent)"""
    balances = {n: 0.0 for n in names}
    paid = {n: 0.0 for n in names}
    share_of = {n: 0.0 for n in names}
    total = 0.0
    for e, payer, members, share in postings:
        amount = float(e.amount)
        total += amount
        balances[payer] = balances.get(payer, 0.0) + amount
        paid[payer] = paid.get(payer, 0.0) + amount
        share_of.setdefault(payer, 0.0)
        for person in members:
            balances[person] = balances.get(person, 0.0) - share
            paid.setdefault(person, 0.0)
            share_of[person] = share_of.get(person, 0.0) + share

    summary = {
        p: {
            "paid": paid[p],
            "share": share_of[p],
            "net": balances[p],
        } for p in balances
    }
    return balances, summary, total


def compute_balances(
    expenses: List[ExpenseRecord],
    participants: List[str],
    anomalies: Optional[List[Anomaly]] = None
) -> Dict[str, float]:
    """
    Net balance per participant over approved expenses.
    Positive -> is owed money (creditor); negative -> owes money (debtor).
    Every roster participant is present, even at 0.0. No rounding is applied.
    """
    roster = build_roster(participants)
    names = list(roster.values())
    balances, _, _ = _tally(_approved_postings(expenses, roster, anomalies), names)
    return balances


def compute_summary(
    expenses: List[ExpenseRecord],
    participants: List[str],
    start: Optional[date] = None,
    end: Optional[date] = None,
    anomalies: Optional[List[Anomaly]] = None
) -> Dict[str, dict]:
    """
    Compute summary statistics for each person.
    Returns dict mapping person -> {paid, share, net}
    """
    roster = build_roster(participants)
    names = list(roster.values())
    exps = filter_expenses_by_date(expenses, start, end)
    _, summary, _ = _tally(_approved_postings(exps, roster, anomalies), names)
    return summary


def balance_status(balance: float, eps: float = SETTLEMENT_EPSILON) -> str:
    """'creditor', 'debtor' or 'settled' for a net balance"""
    if balance > eps:
        return "creditor"
    if balance < -eps:
        return "debtor"
    return "settled"


def person_summary(ledger: Ledger, name: str) -> dict:
    """
    Paid / share / net for one roster participant, looked up ignoring case,
    plus the group's total spend.
    """
    display, known = canonical_name(name, build_roster(ledger.participants))
    if not known:
        raise UnknownParticipantError(f"'{name}' is not in the participant list")
    report = settle(ledger)
    s = report.summary[display]
    return dict(name=display, status=balance_status(s["net"]), group_total=report.total_spent, **s)


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

def compute_transfers(balances: Dict[str, float], eps: float = SETTLEMENT_EPSILON) -> List[Transfer]:
    """
    Greedy settlement: the largest remaining debtor pays the largest remaining
    creditor min(owed, owing) until one side runs out.
    net>0 creditor; net<0 debtor; |net|<=eps settled and skipped.
    Sorts are stable, so ties keep the balances' iteration order.
    """
    creditors = [(p, v) for p, v in balances.items() if v > eps]
    debtors = [(p, -v) for p, v in balances.items() if v < -eps]
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    transfers = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        dname, damt = debtors[i]
        cname, camt = creditors[j]
        x = min(damt, camt)
        transfers.append(Transfer(from_person=dname, to_person=cname, amount=x))
        damt -= x
        camt -= x
        if damt < eps:
            i += 1
        else:
            debtors[i] = (dname, damt)
        if camt < eps:
            j += 1
        else:
            creditors[j] = (cname, camt)

    logger.debug("%d creditors, %d debtors -> %d transfers", len(creditors), len(debtors), len(transfers))
    return transfers


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

def reconcile(
    transfers: List[Transfer],
    confirmations: List[SettlementConfirmation],
    anomalies: Optional[List[Anomaly]] = None,
    eps: float = SETTLEMENT_EPSILON
) -> List[ReconciledTransfer]:
    """
    Overlay the confirmation log on proposed transfers.
    Confirmations match on the (from, to) pair, ignoring case, never on amount;
    repeated partial payments for a pair are summed. When several transfers
    share a pair, the pair's total is used up by them in order.
    """
    for c in confirmations:
        validate_confirmation(c)

    totals: Dict[Tuple[str, str], float] = {}
    first_seen: Dict[Tuple[str, str], SettlementConfirmation] = {}
    for c in confirmations:
        totals[c.key] = totals.get(c.key, 0.0) + float(c.amount)
        first_seen.setdefault(c.key, c)

    available = dict(totals)
    last_for_pair: Dict[Tuple[str, str], int] = {}
    out = []
    for t in transfers:
        left = available.get(t.key, 0.0)
        confirmed_amount = min(left, t.amount)
        available[t.key] = left - confirmed_amount
        remaining = t.amount - confirmed_amount
        last_for_pair[t.key] = len(out)
        out.append(ReconciledTransfer(
            transfer=t,
            confirmed_amount=confirmed_amount,
            remaining_amount=remaining,
            confirmed=remaining < eps,
        ))

    # whatever a pair's transfers could not absorb is overpaid on the last of them
    for key, i in sorted(last_for_pair.items(), key=lambda kv: kv[1]):
        excess = available.get(key, 0.0)
        if excess <= 0:
            continue
        r = out[i]
        r.overpaid_amount = excess
        if excess > eps:
            _flag(anomalies, Anomaly(
                kind=AnomalyKind.OVERPAYMENT,
                message=(f"Confirmations {r.from_person} -> {r.to_person} total {totals[key]:.2f}, "
                         f"{excess:.2f} more than proposed"),
                person=r.from_person,
            ))

    for key, total in totals.items():
        if key in last_for_pair:
            continue
        c = first_seen[key]
        _flag(anomalies, Anomaly(
            kind=AnomalyKind.UNMATCHED_CONFIRMATION,
            message=(f"Confirmation {c.from_person} -> {c.to_person} ({total:.2f}) "
                     f"matches no proposed transfer"),
            person=c.from_person,
        ))

    return out


def settle(ledger: Ledger, start: Optional[date] = None, end: Optional[date] = None) -> SettlementReport:
    """Run the whole pipeline over a ledger, folding expenses only once"""
    anomalies: List[Anomaly] = []
    exps = filter_expenses_by_date(ledger.expenses, start, end)
    roster = build_roster(ledger.participants)
    names = list(roster.values())
    balances, summary, total = _tally(_approved_postings(exps, roster, anomalies), names)
    transfers = compute_transfers(balances)
    reconciled = reconcile(transfers, ledger.confirmations, anomalies)
    logger.debug("settled %d expenses, %d anomalies", len(exps), len(anomalies))
    return SettlementReport(
        balances=balances,
        transfers=reconciled,
        anomalies=anomalies,
        summary=summary,
        total_spent=total,
    )
