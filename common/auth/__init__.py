"""
Authentication module - Pluggable identity providers (Firebase).
"""

from common.auth.base import AuthProvider, Principal, principal_from_claims
from common.auth.firebase_auth import FirebaseAuth
from common.auth.dependencies import authenticate_token, create_auth_dependency

__all__ = [
    "AuthProvider",
    "Principal",
    "principal_from_claims",
    "FirebaseAuth",
    "authenticate_token",
    "create_auth_dependency",
]
