"""
Utility functions for SettleLedger
"""
from __future__ import annotations
import math
import os
from datetime import date, datetime, timezone


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a Z suffix, second precision"""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD date string"""
    return datetime.strptime(s.strip(), "%Y-%m-%d").date()


def name_key(name: str) -> str:
    """Case-insensitive matching key for a participant name"""
    return str(name).strip().casefold()


def is_number(x) -> bool:
    """True for finite int/float values (bool excluded)"""
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        return False
    return math.isfinite(x)


def format_currency(amount: float, symbol: str = "₹") -> str:
    """Format an amount for display; rounding happens only here"""
    return f"{symbol}{amount:,.2f}"


def app_dir() -> str:
    """
    Get application data directory: $SETTLE_LEDGER_HOME or ~/.settle_ledger
    Creates directory if it doesn't exist.
    """
    path = os.environ.get("SETTLE_LEDGER_HOME") or os.path.expanduser("~/.settle_ledger")
    os.makedirs(path, exist_ok=True)
    return path
