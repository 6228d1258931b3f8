"""Issue and verify signed bearer tokens.

Tokens are stateless: validity depends only on the signature and the expiry
claim, so a role change or logout does not affect tokens already handed out.
Callers depend on :class:`TokenService` rather than the JWT implementation so
a revocation-aware variant can be dropped in.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import jwt

from .config import Settings

DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


class InvalidToken(Exception):
    """Raised when a token is malformed, tampered with or expired."""


@dataclass(frozen=True)
class Identity:
    """Decoded token payload attached to authenticated requests."""

    user_id: str
    role: str
    email: str


class TokenService(Protocol):
    def issue(self, user_id, role: str, email: str) -> str:
        ...

    def verify(self, token: str) -> Identity:
        ...


class JWTTokenService:
    """HMAC-signed JWTs with a fixed lifetime."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = DEFAULT_TOKEN_LIFETIME,
    ):
        if not secret:
            raise ValueError("a token signing secret must be configured")
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    @classmethod
    def from_settings(cls, settings: Settings) -> "JWTTokenService":
        return cls(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            lifetime=timedelta(minutes=settings.access_token_expire_minutes),
        )

    def issue(
        self, user_id, role: str, email: str, issued_at: Optional[datetime] = None
    ) -> str:
        issued_at = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": role,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidToken(str(exc)) from exc

        role = payload.get("role")
        email = payload.get("email")
        if not isinstance(role, str) or not isinstance(email, str):
            raise InvalidToken("token is missing role or email claims")
        return Identity(user_id=payload["sub"], role=role, email=email)
