"""
JWT token utilities for caller identity.

Login and user management live outside this service. A token only carries
who the caller is, which cold storage they act on and whether they may
change the ledger.
"""

from datetime import timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from coldstore_ledger.app.core.config import settings
from coldstore_ledger.app.core.timeutil import utcnow

REQUIRED_CLAIMS = ("user_id", "cold_storage_id")


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Encode a signed token with an expiry.

    Args:
        data: Claims to encode (sub, user_id, cold_storage_id, access_type)
        expires_delta: Lifetime; defaults to access_token_expire_minutes

    Example payload:
        {
            "sub": "manager",
            "user_id": 7,
            "cold_storage_id": 1,
            "access_type": "edit",
            "exp": 1234567890
        }
    """
    claims = dict(data)
    claims["exp"] = utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def create_caller_token(user_id: int, cold_storage_id: int, access_type: str, subject: str = "manager") -> str:
    """Token for one caller acting on one cold storage."""
    return create_access_token({
        "sub": subject,
        "user_id": user_id,
        "cold_storage_id": cold_storage_id,
        "access_type": access_type,
    })


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid token that names a caller and a cold storage; None otherwise."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if any(not claims.get(name) for name in REQUIRED_CLAIMS):
        return None
    return claims
