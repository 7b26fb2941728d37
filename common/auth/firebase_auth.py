"""
Firebase identity provider.

The mobile and web clients sign users in with Firebase and send the
resulting ID token as a bearer token. This provider checks the token with
the Firebase Admin SDK and hands the claims to ``principal_from_claims``.
"""

import asyncio
import json
import logging
from typing import Dict, Any, Optional

import firebase_admin
from firebase_admin import auth, credentials

from common.auth.base import AuthProvider

logger = logging.getLogger(__name__)

# Admin SDK failures reported to callers as ValueError("<reason>")
_TOKEN_FAILURES = (
    (auth.RevokedIdTokenError, "Token has been revoked"),
    (auth.ExpiredIdTokenError, "Token has expired"),
)


def load_credential(
    credentials_path: Optional[str] = None,
    service_account_json: Optional[str] = None,
) -> credentials.Base:
    """
    Pick the Admin SDK credential: a key file, an inline service-account
    JSON document, or application default credentials on GCP.
    """
    if credentials_path:
        return credentials.Certificate(credentials_path)
    if service_account_json:
        info = json.loads(service_account_json)
        # keys pasted into env vars usually carry escaped newlines
        info["private_key"] = info.get("private_key", "").replace("\\n", "\n")
        return credentials.Certificate(info)
    return credentials.ApplicationDefault()


class FirebaseAuth(AuthProvider):
    """
    Verifies Firebase ID tokens.

    ``verify_id_token`` fetches Google's signing keys over blocking HTTP, so
    it runs in a worker thread.
    """

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        service_account_json: Optional[str] = None,
        project_id: Optional[str] = None,
        check_revoked: bool = False,
    ):
        self.check_revoked = check_revoked

        if not firebase_admin._apps:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(
                load_credential(credentials_path, service_account_json),
                options,
            )
            logger.info(f"Firebase app initialized (project: {project_id or 'from credentials'})")

    async def verify_token(self, token: str) -> Dict[str, Any]:
        try:
            return await asyncio.to_thread(auth.verify_id_token, token, check_revoked=self.check_revoked)
        except auth.InvalidIdTokenError as e:
            for error_type, reason in _TOKEN_FAILURES:
                if isinstance(e, error_type):
                    raise ValueError(reason) from e
            raise ValueError(f"Invalid token: {e}") from e
        except auth.UserDisabledError as e:
            raise ValueError("User account is disabled") from e
