from __future__ import annotations

import logging
from dataclasses import dataclass

import jwt

from carecall.core.config import AppSettings


logger = logging.getLogger(__name__)


class AuthenticationError(ValueError):
    """Raised when a bearer credential cannot be accepted."""


@dataclass(slots=True)
class AuthenticatedUser:
    user_id: str
    email: str | None = None


class SessionTokenVerifier:
    """Verify session tokens minted by the external identity provider.

    Only signature, expiry and audience are checked here; issuing and
    refreshing tokens stay with the provider.
    """

    def __init__(self, settings: AppSettings):
        self._settings = settings

    def verify_authorization_header(self, header: str | None) -> AuthenticatedUser:
        if not header:
            raise AuthenticationError("Missing authorization header")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationError("Authorization header must use the Bearer scheme")
        return self.verify_token(token.strip())

    def verify_token(self, token: str) -> AuthenticatedUser:
        if not self._settings.jwt_secret_key:
            logger.error("JWT_SECRET_KEY is not configured; rejecting bearer token.")
            raise AuthenticationError("Unauthorized")

        options: dict[str, object] = {"require": ["sub", "exp"]}
        if not self._settings.jwt_audience:
            options["verify_aud"] = False

        try:
            claims = jwt.decode(
                token,
                self._settings.jwt_secret_key.get_secret_value(),
                algorithms=[self._settings.jwt_algorithm],
                audience=self._settings.jwt_audience or None,
                options=options,
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Session token has expired") from exc
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected bearer token: %s", exc)
            raise AuthenticationError("Unauthorized") from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError("Unauthorized")
        email = claims.get("email")
        return AuthenticatedUser(user_id=subject, email=email if isinstance(email, str) else None)
