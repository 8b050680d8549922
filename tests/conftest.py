"""
Shared fixtures: the three-person trip used across the suite.

    Alice paid 300 for Alice, Bob, Charlie
    Bob   paid 150 for Alice, Bob, Charlie
    -> Alice +150, Bob 0, Charlie -150
"""

import pytest

from models import ExpenseRecord, ExpenseStatus, Ledger

PEOPLE = ["Alice", "Bob", "Charlie"]


def expense(eid, amount, paid_by, split_between, status=ExpenseStatus.APPROVED, date=""):
    return ExpenseRecord(
        id=eid,
        amount=amount,
        paid_by=paid_by,
        split_between=list(split_between),
        status=status,
        date=date,
    )


@pytest.fixture
def people():
    return list(PEOPLE)


@pytest.fixture
def trip_expenses():
    return [
        expense("e1", 300, "Alice", PEOPLE, date="2025-12-01"),
        expense("e2", 150, "Bob", PEOPLE, date="2025-12-02"),
    ]


@pytest.fixture
def trip_ledger(people, trip_expenses):
    return Ledger(participants=people, expenses=trip_expenses)
