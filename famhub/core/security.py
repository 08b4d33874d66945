"""
FamHub - Security Module

Bearer tokens for the API. Login lives elsewhere; this service only
issues tokens for tooling and tests and verifies the ones it is handed.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import uuid

from jose import jwt, JWTError

from famhub.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    subject: Any,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Sign an access token for ``subject`` (a user id).

    ``additional_claims`` are merged last, so they may override the defaults.
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims: Dict[str, Any] = {
        "sub": str(subject),
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
    }
    claims.update(additional_claims or {})

    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a correctly signed, unexpired token; None otherwise."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def verify_token(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> Optional[int]:
    """
    Resolve a bearer token to the user id it was issued for.

    Returns None for bad signatures, expired tokens, the wrong token type
    or a subject that is not a numeric id.
    """
    claims = decode_token(token)
    if not claims or claims.get("type") != token_type:
        return None

    subject = str(claims.get("sub", ""))
    return int(subject) if subject.isdigit() else None
