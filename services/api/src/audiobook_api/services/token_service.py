"""Signed session tokens and the cookie that carries them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import Request, Response
from jose import JWTError, jwt

from audiobook_shared.config import AuthSettings
from audiobook_shared.logging import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified session token."""

    user_id: int
    email: str


class TokenService:
    """Issues and verifies HS256 session tokens.

    Tokens carry ``{userId, email, iat, exp}``. Verification never raises:
    any malformed, expired, tampered or incomplete token yields ``None``.
    """

    def __init__(self, settings: AuthSettings, secure_cookies: bool = False) -> None:
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self._ttl_seconds = settings.token_ttl_seconds
        self._cookie_name = settings.cookie_name
        self._secure_cookies = secure_cookies

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, user_id: int, email: str, now: datetime | None = None) -> str:
        issued_at = int((now or datetime.now(timezone.utc)).timestamp())
        payload: dict[str, Any] = {
            "userId": user_id,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self._ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str | None) -> TokenClaims | None:
        if not token:
            return None
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            logger.debug("Token rejected", reason=type(exc).__name__)
            return None

        user_id = payload.get("userId")
        email = payload.get("email")
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(email, str):
            logger.debug("Token rejected", reason="missing claims")
            return None
        return TokenClaims(user_id=user_id, email=email)

    def extract_token(self, request: Request) -> str | None:
        """Return the bearer token if present, otherwise the session cookie."""
        authorization = request.headers.get("Authorization", "")
        if authorization.lower().startswith(BEARER_PREFIX):
            token = authorization[len(BEARER_PREFIX):].strip()
            if token:
                return token
        return request.cookies.get(self._cookie_name) or None

    def set_token_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            key=self._cookie_name,
            value=token,
            max_age=self._ttl_seconds,
            path="/",
            httponly=True,
            secure=self._secure_cookies,
            samesite="none" if self._secure_cookies else "lax",
        )

    def clear_token_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=self._cookie_name,
            path="/",
            httponly=True,
            secure=self._secure_cookies,
            samesite="none" if self._secure_cookies else "lax",
        )
