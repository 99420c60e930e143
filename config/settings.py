# config/settings.py
"""
Runtime settings for the ledger service.

Everything is read from the environment once, at import time. A local
``.env`` file is honoured through python-dotenv so development setups don't
need exported variables.
"""
import os
from decimal import Decimal
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_decimal(name: str, default: Optional[str]) -> Optional[Decimal]:
    raw = os.getenv(name, default or "")
    raw = raw.strip()
    if not raw:
        return None
    return Decimal(raw)


def _env_bool(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# ─── Ledger ─────────────────────────────────────────────────────────
STARTING_BALANCE: Decimal = _env_decimal("STARTING_BALANCE", "10000") or Decimal("10000")
LEDGER_MAX_RETRIES = int(os.getenv("LEDGER_MAX_RETRIES", "3"))
LEDGER_LOCK_TIMEOUT_SEC = float(os.getenv("LEDGER_LOCK_TIMEOUT_SEC", "10"))

# Max deviation (in percent) between a client price and the oracle price.
# Unset => client price is accepted verbatim.
PRICE_TOLERANCE_PCT: Optional[Decimal] = _env_decimal("PRICE_TOLERANCE_PCT", None)

# ─── History paging ─────────────────────────────────────────────────
HISTORY_DEFAULT_LIMIT = int(os.getenv("HISTORY_DEFAULT_LIMIT", "100"))
HISTORY_MAX_LIMIT = int(os.getenv("HISTORY_MAX_LIMIT", "500"))

# ─── Auth ───────────────────────────────────────────────────────────
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-prod")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE") or None

# ─── HTTP ───────────────────────────────────────────────────────────
CORS_ORIGINS = _env_list("CORS_ORIGINS", "http://localhost:3000")
RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", "1")
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "120/minute")
RATE_LIMIT_TRADE = os.getenv("RATE_LIMIT_TRADE", "30/minute")
RATE_LIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")

# ─── Settlement ─────────────────────────────────────────────────────
SETTLEMENT_WEBHOOK_URL = os.getenv("SETTLEMENT_WEBHOOK_URL") or None
SETTLEMENT_TIMEOUT_SEC = float(os.getenv("SETTLEMENT_TIMEOUT_SEC", "5"))
