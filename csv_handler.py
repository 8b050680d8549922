"""
CSV export and import functionality for SettleLedger
"""
from __future__ import annotations
import csv
from typing import List

from exceptions import LedgerFileError
from models import ExpenseRecord, ExpenseStatus, SettlementConfirmation

EXPENSE_COLUMNS = ['id', 'date', 'description', 'amount', 'paid_by', 'split_between', 'status', 'submitted_by']
CONFIRMATION_COLUMNS = ['from', 'to', 'amount', 'confirmed_by', 'confirmed_at']


def _parse_amount(value: str, line: int) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise LedgerFileError(f"Bad amount {value!r}", {"line": line})


def _check_header(reader: csv.DictReader, required: List[str], filepath: str) -> None:
    missing = [c for c in required if c not in (reader.fieldnames or [])]
    if missing:
        raise LedgerFileError(f"CSV is missing columns: {', '.join(missing)}", {"path": filepath})


def export_expenses_to_csv(expenses: List[ExpenseRecord], filepath: str) -> None:
    """
    Export expenses list to CSV file
    split_between is written as names joined with ';'
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(EXPENSE_COLUMNS)
        for e in expenses:
            writer.writerow([
                e.id,
                e.date,
                e.description,
                e.amount,
                e.paid_by,
                ';'.join(e.split_between),
                e.status,
                e.submitted_by,
            ])


def import_expenses_from_csv(filepath: str) -> List[ExpenseRecord]:
    """
    Import expenses list from CSV file
    Returns list of ExpenseRecord objects
    """
    expenses = []

    with open(filepath, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        _check_header(reader, ['id', 'amount', 'paid_by', 'split_between'], filepath)

        for row in reader:
            split = [p.strip() for p in (row['split_between'] or '').split(';') if p.strip()]
            expenses.append(ExpenseRecord(
                id=row['id'],
                amount=_parse_amount(row['amount'], reader.line_num),
                paid_by=row['paid_by'],
                split_between=split,
                status=row.get('status') or ExpenseStatus.PENDING,
                date=row.get('date') or '',
                description=row.get('description') or '',
                submitted_by=row.get('submitted_by') or '',
            ))

    return expenses


def export_confirmations_to_csv(confirmations: List[SettlementConfirmation], filepath: str) -> None:
    """Export the confirmation log to CSV file"""
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(CONFIRMATION_COLUMNS)
        for c in confirmations:
            writer.writerow([c.from_person, c.to_person, c.amount, c.confirmed_by, c.confirmed_at])


def import_confirmations_from_csv(filepath: str) -> List[SettlementConfirmation]:
    """Import a confirmation log from CSV file"""
    confirmations = []

    with open(filepath, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        _check_header(reader, ['from', 'to', 'amount'], filepath)

        for row in reader:
            confirmations.append(SettlementConfirmation(
                from_person=row['from'],
                to_person=row['to'],
                amount=_parse_amount(row['amount'], reader.line_num),
                confirmed_by=row.get('confirmed_by') or '',
                confirmed_at=row.get('confirmed_at') or '',
            ))

    return confirmations
