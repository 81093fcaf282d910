"""Accounts, password hashing and sessions."""

from moneymate.auth.service import (
    AuthError,
    AuthService,
    hash_password,
    verify_password,
)

__all__ = [
    "AuthError",
    "AuthService",
    "hash_password",
    "verify_password",
]
