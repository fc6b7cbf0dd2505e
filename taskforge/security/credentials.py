from __future__ import annotations

import base64
import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from ..api.errors import AuthenticationError
from ..config import settings


# --- Password helpers (bcrypt, no passlib) ---

def _prehash(password: str) -> bytes:
    # bcrypt reads at most 72 bytes; a SHA-256 digest keeps every byte significant
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str) -> str:
    """Return a bcrypt hash for the given plain password.

    A fresh salt is generated per call; the result embeds the algorithm,
    cost and salt, so verification needs nothing else. Passwords of any
    length are accepted; they are digested with SHA-256 before bcrypt.
    """
    if not isinstance(password, str):
        raise TypeError("password must be a string")
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_prehash(password), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain password against its bcrypt hash. Never raises."""
    try:
        return bcrypt.checkpw(
            _prehash(plain_password),
            password_hash.encode("utf-8"),
        )
    except (TypeError, ValueError, AttributeError):
        return False


# --- JWT helpers ---

def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    sub: uuid.UUID
    email: str
    issued_at: datetime
    expires_at: datetime


def issue_token(
    user_id: uuid.UUID,
    email: str,
    secret: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
) -> str:
    """
    Create a signed, time-bounded JWT for a user.
    - `sub` is the user id, `email` is carried for convenience.
    - Expiration defaults to settings.JWT_EXPIRE_SECONDS.
    """
    issued = _now_utc()
    ttl = settings.JWT_EXPIRE_SECONDS if ttl_seconds is None else ttl_seconds
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=ttl)).timestamp()),
    }
    return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def validate_token(token: str, secret: Optional[str] = None) -> TokenClaims:
    """Verify signature and expiry; raise AuthenticationError on any failure."""
    try:
        payload = jwt.decode(token, secret or settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as err:
        raise AuthenticationError("Invalid token: token has expired") from err
    except JWTError as err:
        raise AuthenticationError("Invalid token") from err

    try:
        subject = uuid.UUID(payload["sub"])
        return TokenClaims(
            sub=subject,
            email=payload.get("email", ""),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as err:
        raise AuthenticationError("Invalid token: malformed claims") from err
