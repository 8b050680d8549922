"""
Exception hierarchy for SettleLedger

All exceptions inherit from SettleLedgerError for easy catching.
"""
from __future__ import annotations
from typing import Optional


class SettleLedgerError(Exception):
    """Base exception for all SettleLedger errors"""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(SettleLedgerError):
    """Raised when caller-supplied records break the input contract"""
    pass


class InvalidExpenseError(ValidationError):
    """Raised when an expense record is missing fields or has a bad amount"""
    pass


class InvalidConfirmationError(ValidationError):
    """Raised when a settlement confirmation is malformed"""
    pass


class UnknownParticipantError(SettleLedgerError):
    """Raised when a name cannot be resolved against the roster"""
    pass


class LedgerFileError(SettleLedgerError):
    """Raised when a ledger, CSV or report file cannot be read or parsed"""
    pass
