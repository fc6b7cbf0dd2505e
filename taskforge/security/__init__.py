# Security utilities package: credentials (password hashing, tokens) and request sessions

from .credentials import (
    TokenClaims,
    hash_password,
    verify_password,
    issue_token,
    validate_token,
)
from .session import (
    Principal,
    extract_bearer_token,
    get_current_principal,
)

__all__ = [
    "TokenClaims",
    "hash_password",
    "verify_password",
    "issue_token",
    "validate_token",
    "Principal",
    "extract_bearer_token",
    "get_current_principal",
]
