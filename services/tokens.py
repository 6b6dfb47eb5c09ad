# services/tokens.py
from __future__ import annotations

import jwt
from datetime import datetime, timedelta, timezone

__all__ = ["TokenIssuer", "DEFAULT_ROLE"]

DEFAULT_ROLE = "user"


class TokenIssuer:
    """Signs and checks HS256 session tokens carrying ``{id, role}``."""

    def __init__(self, secret: str, *, ttl_seconds: int = 3600, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("token signing secret is not set")
        self.secret = secret
        self.ttl = timedelta(seconds=ttl_seconds)
        self.algorithm = algorithm

    def issue(self, user_id, role: str = DEFAULT_ROLE, *, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "id": user_id,
            "role": role,
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> dict:
        """
        Return ``{"id", "role"}`` from a valid token.
        Raises jwt.InvalidTokenError (incl. ExpiredSignatureError) otherwise.
        """
        payload = jwt.decode(
            token,
            self.secret,
            algorithms=[self.algorithm],
            options={"require": ["exp", "id", "role"]},
        )
        return {"id": payload["id"], "role": payload["role"]}
