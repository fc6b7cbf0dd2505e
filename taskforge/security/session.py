from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import APIKeyHeader

from ..api.errors import AuthenticationError
from .credentials import validate_token

BEARER_PREFIX = "Bearer "

# Registers the header in the OpenAPI schema; parsing is done by hand below
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, passed explicitly to every handler that needs it."""

    user_id: uuid.UUID
    email: str


def extract_bearer_token(header: Optional[str]) -> str:
    """Return the token part of an `Authorization: Bearer <token>` header."""
    if not header:
        raise AuthenticationError("Missing authorization header")
    if not header.startswith(BEARER_PREFIX):
        raise AuthenticationError("Invalid authorization header format")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("Invalid authorization header format")
    return token


def get_current_principal(authorization: Optional[str] = Depends(authorization_header)) -> Principal:
    """Resolve the bearer token into a Principal or reject the request with 401."""
    claims = validate_token(extract_bearer_token(authorization))
    return Principal(user_id=claims.sub, email=claims.email)
