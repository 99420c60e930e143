# services/settlement_service.py
"""
Optional settlement references for executed trades.

A trade is final the moment the ledger commits it. An external settler (for
example something that writes a memo transaction on a chain) may later hand
back an opaque reference, which is attached to the trade exactly once.
Failures here are logged and never affect the trade itself.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from sqlalchemy.orm import Session, sessionmaker

from config import settings
from config.logging_config import ledger_context
from models.trade import TradeRecord
from services.ledger_errors import LedgerError, SettlementConflict, TradeNotFound, ValidationError

logger = logging.getLogger(__name__)

MAX_REFERENCE_LENGTH = 255


class SettlementRecorder(Protocol):
    def record(self, memo: str) -> Optional[str]:
        ...


class NullSettlementRecorder:
    """Used when no settler is configured: trades simply stay unsettled."""

    def record(self, memo: str) -> Optional[str]:
        return None


class WebhookSettlementRecorder:
    """POSTs the trade memo to a settler and reads back ``{"signature": ...}``."""

    def __init__(self, url: str, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    def _post(self, client: httpx.Client, memo: str) -> httpx.Response:
        resp = client.post(self.url, json={"memo": memo})
        resp.raise_for_status()
        return resp

    def record(self, memo: str) -> Optional[str]:
        if self._client is not None:
            resp = self._post(self._client, memo)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                resp = self._post(client, memo)
        try:
            data: Dict[str, Any] = resp.json()
        except ValueError:
            return None
        sig = data.get("signature") if isinstance(data, dict) else None
        return str(sig) if sig else None


def get_settlement_recorder() -> SettlementRecorder:
    if settings.SETTLEMENT_WEBHOOK_URL:
        return WebhookSettlementRecorder(settings.SETTLEMENT_WEBHOOK_URL, settings.SETTLEMENT_TIMEOUT_SEC)
    return NullSettlementRecorder()


def build_settlement_memo(trade: TradeRecord) -> str:
    return "TRADE:{account}:{symbol}:{side}:{qty:.8f}:{price:.2f}".format(
        account=trade.account_id,
        symbol=trade.asset.symbol,
        side=trade.trade_type.value,
        qty=trade.quantity,
        price=trade.price,
    )


def attach_settlement_reference(
    db: Session,
    trade_id: int,
    reference: str,
    *,
    account_id: Optional[int] = None,
) -> TradeRecord:
    """Set the trade's settlement reference once; same value again is a no-op."""
    reference = (reference or "").strip()
    if not reference or len(reference) > MAX_REFERENCE_LENGTH:
        raise ValidationError(f"reference must be 1-{MAX_REFERENCE_LENGTH} characters")

    query = db.query(TradeRecord).filter(TradeRecord.id == trade_id)
    if account_id is not None:
        query = query.filter(TradeRecord.account_id == account_id)

    updated = (
        query.filter(TradeRecord.settlement_reference.is_(None))
        .update({TradeRecord.settlement_reference: reference}, synchronize_session=False)
    )
    db.commit()

    trade = query.populate_existing().first()
    if trade is None:
        raise TradeNotFound()
    if not updated and trade.settlement_reference != reference:
        raise SettlementConflict()

    if updated:
        logger.info("settlement_attached", extra=ledger_context(trade_id=trade_id))
    return trade


def record_settlement(
    session_factory: sessionmaker,
    trade_id: int,
    recorder: SettlementRecorder,
) -> Optional[str]:
    """Background job: ask the settler for a reference and attach it."""
    db = session_factory()
    try:
        trade = db.get(TradeRecord, trade_id)
        if trade is None:
            logger.warning("settlement_skipped", extra=ledger_context(trade_id=trade_id, reason="missing"))
            return None
        if trade.settlement_reference:
            return trade.settlement_reference

        memo = build_settlement_memo(trade)
        try:
            reference = recorder.record(memo)
        except httpx.HTTPError as exc:
            logger.warning("settlement_failed", extra=ledger_context(trade_id=trade_id, reason=type(exc).__name__))
            return None

        if not reference:
            return None

        try:
            return attach_settlement_reference(db, trade_id, reference).settlement_reference
        except LedgerError as exc:
            logger.warning("settlement_not_attached", extra=ledger_context(trade_id=trade_id, reason=type(exc).__name__))
            return None
    finally:
        db.close()
