"""
Abstract identity provider interface.

The identity provider is external: it verifies a bearer token and tells us
who the calling principal is. This module defines that contract and the
``Principal`` value every protected route receives.

Example:
    from common.auth import FirebaseAuth, principal_from_claims

    auth = FirebaseAuth(project_id="my-project")
    claims = await auth.verify_token(id_token)
    principal = principal_from_claims(claims)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any

from common.utils.exceptions import UnauthorizedException

ANONYMOUS_PROVIDER = "anonymous"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: identity-provider uid, email and display name."""

    uid: str
    email: str
    display_name: Optional[str] = None


class AuthProvider(ABC):
    """
    Abstract identity provider.

    Implement this interface for different identity back ends.
    All methods are async to support both sync and async implementations.
    """

    @abstractmethod
    async def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify an authentication token.

        Args:
            token: The token to verify

        Returns:
            Dictionary containing decoded token claims (at minimum: uid)

        Raises:
            ValueError: If token is invalid, expired, or revoked
        """
        pass


def principal_from_claims(claims: Dict[str, Any]) -> Principal:
    """
    Build a Principal from verified token claims.

    Anonymous identities and identities without a verified email are treated
    as unauthenticated.

    Raises:
        UnauthorizedException: If the identity may not perform mutations
    """
    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        raise UnauthorizedException(message="Token missing user ID", code="INVALID_TOKEN")

    provider = (claims.get("firebase") or {}).get("sign_in_provider")
    if provider == ANONYMOUS_PROVIDER:
        raise UnauthorizedException(
            message="Sign in with an account to use social features",
            code="ANONYMOUS_NOT_ALLOWED",
        )

    email = claims.get("email")
    if not email or not claims.get("email_verified", False):
        raise UnauthorizedException(
            message="Verify your email address to use social features",
            code="EMAIL_NOT_VERIFIED",
        )

    return Principal(uid=uid, email=email, display_name=claims.get("name"))
