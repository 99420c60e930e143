# services/auth.py
"""
Bearer-token account context.

Tokens are issued elsewhere; this module only verifies them (HS256 shared
secret) and maps the ``sub`` claim to a ledger account. There is no guest
account: a missing, malformed or expired token is always a 401.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.account import Account
from services.ledger_store import open_account

ACCESS_TOKEN_EXPIRE_MINUTES = 60


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_bearer_token(request: Request) -> str:
    auth = request.headers.get("Authorization")
    if not auth or not auth.lower().startswith("bearer "):
        raise _unauthorized("Missing bearer token")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise _unauthorized("Missing bearer token")
    return token


# ========================
# JWT helpers
# ========================

def create_access_token(
    subject: str,
    *,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mint a token the way the external issuer does (dev tooling and tests)."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims: Dict[str, Any] = {"sub": subject, "iat": int(now.timestamp()), "exp": int(expire.timestamp())}
    if email:
        claims["email"] = email
    if settings.JWT_AUDIENCE:
        claims["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode & verify a JWT. Raises HTTPException(401) on failure."""
    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")


# ========================
# Account dependency
# ========================

def get_token_claims(request: Request) -> Dict[str, Any]:
    return decode_access_token(get_bearer_token(request))


def get_current_account(
    request: Request,
    db: Session = Depends(get_db),
    claims: Dict[str, Any] = Depends(get_token_claims),
) -> Account:
    sub = claims.get("sub")
    if not sub:
        raise _unauthorized("Invalid token payload")

    email = claims.get("email") or (claims.get("user_metadata") or {}).get("email")
    account = open_account(db, str(sub), email=email)
    # picked up by the access log
    request.state.account_id = account.id
    return account
