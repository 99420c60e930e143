# services/ledger_errors.py
"""
Error taxonomy for the trade ledger.

Every error carries the HTTP status the API answers with and a message that
is safe to show the user. ``StorageFault`` deliberately hides its cause; the
cause is chained (``raise ... from exc``) and logged where it is raised.
"""
from __future__ import annotations


class LedgerError(Exception):
    """Base class for every ledger failure."""

    http_status = 400
    default_message = "Trade rejected"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ---- user-correctable input ------------------------------------------

class ValidationError(LedgerError):
    default_message = "Invalid request"


class InvalidQuantity(ValidationError):
    default_message = "Quantity must be a positive, finite number"


class InvalidPrice(ValidationError):
    default_message = "Price must be a positive, finite number"


class AmountTooSmall(ValidationError):
    default_message = "Trade amount rounds to zero at 8 decimal places"


class AmountTooLarge(ValidationError):
    default_message = "Trade amount exceeds the supported range"


class UnknownAsset(ValidationError):
    http_status = 404
    default_message = "Asset not found"


class PriceUnavailable(ValidationError):
    http_status = 409
    default_message = "No reference price available for this asset"


class PriceOutOfTolerance(ValidationError):
    http_status = 409
    default_message = "Price moved outside the allowed tolerance"


# ---- business-rule rejections -----------------------------------------

class BusinessRuleError(LedgerError):
    pass


class InsufficientBalance(BusinessRuleError):
    default_message = "Insufficient balance"


class InsufficientHoldings(BusinessRuleError):
    default_message = "Insufficient quantity"


# ---- lookups ---------------------------------------------------------

class AccountNotFound(LedgerError):
    http_status = 404
    default_message = "Account not found"


class TradeNotFound(LedgerError):
    http_status = 404
    default_message = "Trade not found"


class SettlementConflict(LedgerError):
    http_status = 409
    default_message = "Trade already carries a different settlement reference"


# ---- infrastructure --------------------------------------------------

class ConcurrencyConflict(LedgerError):
    """Raised only after the ledger's own retries are exhausted."""

    http_status = 409
    default_message = "Account is busy, please retry"


class StorageFault(LedgerError):
    http_status = 500
    default_message = "Trade could not be completed"
