"""
Credential re-issuance for a newly selected active organization.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import jwt

from orgroles.core import config
from orgroles.core.database.base import generate_ulid
from orgroles.features.organizations.models import Organization
from orgroles.features.users.models import User
from orgroles.features.users.schemas import TokenResponse


class TokenManager:
    """
    Mints an access/refresh token pair scoped to one organization.

    The session id of the token the request was made with is carried over so
    the new pair belongs to the same session.
    """

    def __init__(self, user: User, organization: Organization, claims: Optional[dict[str, Any]] = None):
        self.user = user
        self.organization = organization
        self.claims = claims or {}

    def _session_id(self) -> str:
        return self.claims.get("sid") or generate_ulid()

    def _encode(self, token_type: str, session_id: str, issued_at: datetime, lifespan: int) -> str:
        payload = {
            "iss": config.JWT_ISSUER,
            "sub": self.user.id,
            "typ": token_type,
            "sid": session_id,
            "jti": generate_ulid(),
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=lifespan),
            "userId": self.user.appwrite_id,
            "active_organization": {
                "id": self.organization.id,
                "name": self.organization.name,
            },
        }
        if token_type == "Bearer":
            payload["email"] = self.user.email
            payload["name"] = self.user.name
        return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)

    def generate_tokens(self) -> TokenResponse:
        issued_at = datetime.now(timezone.utc)
        session_id = self._session_id()
        return TokenResponse(
            access_token=self._encode("Bearer", session_id, issued_at, config.ACCESS_TOKEN_LIFESPAN),
            expires_in=config.ACCESS_TOKEN_LIFESPAN,
            refresh_token=self._encode("Refresh", session_id, issued_at, config.REFRESH_TOKEN_LIFESPAN),
            refresh_expires_in=config.REFRESH_TOKEN_LIFESPAN,
            token_type="Bearer",
            session_state=session_id,
        )
