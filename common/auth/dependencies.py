"""
FastAPI authentication dependencies.

Provides factory functions to create auth dependencies that can be
injected into route handlers. Works with any AuthProvider implementation.

Example:
    from common.auth import FirebaseAuth, create_auth_dependency

    auth = FirebaseAuth(project_id="my-project")
    require_principal = create_auth_dependency(lambda request: auth)

    @app.get("/profile")
    async def get_profile(principal: Principal = Depends(require_principal)):
        return {"uid": principal.uid}
"""

from typing import Callable, Optional
from fastapi import Header, Request

from common.auth.base import AuthProvider, Principal, principal_from_claims
from common.utils.exceptions import UnauthorizedException


async def authenticate_token(auth: AuthProvider, token: Optional[str]) -> Principal:
    """
    Verify a raw bearer token and resolve the calling principal.

    Shared by the HTTP dependency and the live-subscription socket, which
    receives its token as a query parameter.

    Raises:
        UnauthorizedException: If the token is missing, invalid, anonymous
            or lacks a verified email
    """
    if not token:
        raise UnauthorizedException(message="Token is empty", code="EMPTY_TOKEN")

    try:
        claims = await auth.verify_token(token)
    except ValueError as e:
        raise UnauthorizedException(message=str(e), code="INVALID_TOKEN")

    return principal_from_claims(claims)


def create_auth_dependency(
    get_auth_provider: Callable[[Request], AuthProvider],
    header_name: str = "Authorization",
    scheme: str = "Bearer",
):
    """
    Factory to create FastAPI auth dependencies.

    Args:
        get_auth_provider: Callable that returns the AuthProvider for a request
        header_name: Header to extract token from (default: Authorization)
        scheme: Auth scheme prefix (default: Bearer)

    Returns:
        A FastAPI dependency function that resolves the calling Principal
    """

    async def get_current_principal(
        request: Request,
        authorization: Optional[str] = Header(None, alias=header_name),
    ) -> Principal:
        """
        Extract and verify the principal from the authorization header.

        Raises:
            UnauthorizedException: If token is missing, invalid, or expired
        """
        if not authorization:
            raise UnauthorizedException(message="Missing authorization header")

        prefix = f"{scheme} "
        if not authorization.startswith(prefix):
            raise UnauthorizedException(
                message=f"Invalid authorization scheme. Expected: {scheme}",
                code="INVALID_AUTH_SCHEME",
            )

        token = authorization[len(prefix) :]
        return await authenticate_token(get_auth_provider(request), token)

    return get_current_principal
