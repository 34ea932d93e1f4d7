"""
Bearer token handling.

Identity is issued by an external gateway. Its HS256 access tokens carry the
user id in `sub` plus `role`, `email` and `name` claims. This module only
verifies them; `create_access_token` exists for the development token script
and the test suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Any
import uuid

from jose import JWTError, jwt

from orderflow.config import settings


ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    user_id: str,
    role: str,
    email: str = "",
    name: str = "",
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign an access token the way the identity gateway does.

    Args:
        user_id: Subject of the token
        role: purchaser, fulfillment or operator
        expires_delta: Lifetime, ACCESS_TOKEN_EXPIRE_MINUTES when omitted
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": user_id,
        "role": role,
        "email": email,
        "name": name,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """Signature and expiry checked; None when either fails."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[dict[str, Any]]:
    """
    Return the claims of a valid access token.

    None for a bad signature, an expired token, a token of another type or
    one without a subject.
    """
    claims = decode_token(token)
    if claims is None or claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    if not claims.get("sub"):
        return None
    return claims
