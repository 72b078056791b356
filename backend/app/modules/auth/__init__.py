"""
Auth Module - Accounts and access control.

Features:
- Registration with bcrypt password hashing
- Login issuing JWT auth cookies
- Role-based authorization policy
"""

from app.modules.auth.policy import Principal, authorize
from app.modules.auth.service import AuthService

__all__ = [
    "AuthService",
    "Principal",
    "authorize",
]
