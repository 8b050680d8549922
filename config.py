"""
Configuration and data loading/saving for SettleLedger
"""
from __future__ import annotations
import json
import logging
import os
from typing import List, Optional

from exceptions import LedgerFileError
from models import ExpenseRecord, ExpenseStatus, Ledger, SettlementConfirmation
from utils import app_dir

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_NAME = "ledger.json"


def load_people(path: str) -> List[str]:
    """Load people list from JSON file"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return list(data.get("people", []))
    except FileNotFoundError:
        return []


def default_ledger_path() -> str:
    """Ledger file inside the application data directory"""
    return os.path.join(app_dir(), DEFAULT_LEDGER_NAME)


def get_default_ledger() -> Ledger:
    """Create an empty ledger seeded with people.json from the data directory"""
    people = load_people(os.path.join(app_dir(), "people.json"))
    return Ledger(participants=people)


def expense_to_dict(e: ExpenseRecord) -> dict:
    return {
        "id": e.id,
        "date": e.date,
        "description": e.description,
        "amount": e.amount,
        "paidBy": e.paid_by,
        "splitBetween": list(e.split_between),
        "status": e.status,
        "submittedBy": e.submitted_by,
    }


def _require_object(d, what: str) -> dict:
    if not isinstance(d, dict):
        raise LedgerFileError(f"{what} must be a JSON object, got {type(d).__name__}")
    return d


def _list_field(d: dict, key: str) -> list:
    """A top-level list field; absent means empty"""
    value = d.get(key, [])
    if not isinstance(value, list):
        raise LedgerFileError(f"'{key}' must be a JSON list, got {type(value).__name__}")
    return value


def dict_to_expense(d: dict) -> ExpenseRecord:
    """Build an ExpenseRecord from its JSON form. Values are not coerced."""
    _require_object(d, "Expense record")
    try:
        return ExpenseRecord(
            id=d["id"],
            amount=d["amount"],
            paid_by=d["paidBy"],
            split_between=d.get("splitBetween", []),
            status=d.get("status", ExpenseStatus.PENDING),
            date=d.get("date", ""),
            description=d.get("description", ""),
            submitted_by=d.get("submittedBy", ""),
        )
    except KeyError as ex:
        raise LedgerFileError(f"Expense record is missing '{ex.args[0]}'", {"record": d.get("id")})


def confirmation_to_dict(c: SettlementConfirmation) -> dict:
    return {
        "from": c.from_person,
        "to": c.to_person,
        "amount": c.amount,
        "confirmedBy": c.confirmed_by,
        "confirmedAt": c.confirmed_at,
    }


def dict_to_confirmation(d: dict) -> SettlementConfirmation:
    _require_object(d, "Confirmation record")
    try:
        return SettlementConfirmation(
            from_person=d["from"],
            to_person=d["to"],
            amount=d["amount"],
            confirmed_by=d.get("confirmedBy", ""),
            confirmed_at=d.get("confirmedAt", ""),
        )
    except KeyError as ex:
        raise LedgerFileError(f"Confirmation record is missing '{ex.args[0]}'")


def ledger_to_dict(ledger: Ledger) -> dict:
    """Convert Ledger object to dictionary for JSON serialization"""
    return {
        "version": ledger.version,
        "currency": ledger.currency,
        "participants": ledger.participants,
        "expenses": [expense_to_dict(e) for e in ledger.expenses],
        "confirmations": [confirmation_to_dict(c) for c in ledger.confirmations],
    }


def dict_to_ledger(d: dict) -> Ledger:
    """Convert dictionary from JSON to Ledger object"""
    _require_object(d, "Ledger file")
    participants = _list_field(d, "participants")
    if not all(isinstance(p, str) for p in participants):
        raise LedgerFileError("'participants' must be a list of names")
    return Ledger(
        version=d.get("version", 1),
        currency=d.get("currency", "₹"),
        participants=list(participants),
        expenses=[dict_to_expense(e) for e in _list_field(d, "expenses")],
        confirmations=[dict_to_confirmation(c) for c in _list_field(d, "confirmations")],
    )


def load_ledger(path: Optional[str] = None, create: bool = False) -> Ledger:
    """
    Read a ledger file. A missing default file, or a missing explicit file
    when create is set, yields a fresh ledger seeded from people.json.
    """
    fp = path or default_ledger_path()
    try:
        with open(fp, "r", encoding="utf-8") as f:
            d = json.load(f)
    except FileNotFoundError:
        if path is None or create:
            logger.info("No ledger at %s, starting a new one", fp)
            return get_default_ledger()
        raise LedgerFileError(f"Ledger file not found: {fp}")
    except json.JSONDecodeError as ex:
        raise LedgerFileError(f"Ledger file is not valid JSON: {ex.msg}", {"path": fp, "line": ex.lineno})
    ledger = dict_to_ledger(d)
    logger.debug("Loaded %s: %d participants, %d expenses, %d confirmations",
                 fp, len(ledger.participants), len(ledger.expenses), len(ledger.confirmations))
    return ledger


def save_ledger(ledger: Ledger, path: Optional[str] = None) -> str:
    fp = path or default_ledger_path()
    with open(fp, "w", encoding="utf-8") as f:
        json.dump(ledger_to_dict(ledger), f, ensure_ascii=False, indent=2)
    return fp
