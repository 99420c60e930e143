# middleware/rate_limit.py
"""
Rate limiting with slowapi.

Trade endpoints carry an explicit ``@limiter.limit(RATE_LIMIT_TRADE)``; a
rapid double-submit from the dashboard is still executed (the ledger
serializes it), this only caps abuse.
"""
import logging

from fastapi import Request
from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.util import get_remote_address

from config import settings

logger = logging.getLogger(__name__)


def _get_rate_limit_key(request: Request) -> str:
    """Bucket by token subject when there is one, else by client IP."""
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        token = auth.split(" ", 1)[1].strip()
        try:
            # unverified on purpose: auth itself is enforced by get_current_account
            sub = jwt.get_unverified_claims(token).get("sub")
        except JWTError:
            sub = None
        if sub:
            return f"account:{sub}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=_get_rate_limit_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)
