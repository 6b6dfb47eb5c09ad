# auth_guard.py
from __future__ import annotations

import jwt
from functools import wraps

from flask import request, g, current_app

from errors import AuthError

__all__ = ["require_role", "bearer_token", "authenticate"]

ACCESS_DENIED = "Access denied"


def bearer_token(header: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` value, or None."""
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def authenticate(header: str | None, issuer) -> dict:
    """
    Decode the bearer credential in ``header`` with ``issuer``.
    Raises AuthError(NO_TOKEN | INVALID_TOKEN, status 403).
    """
    token = bearer_token(header)
    if token is None:
        raise AuthError(ACCESS_DENIED, code="NO_TOKEN", status=403)
    try:
        return issuer.decode(token)
    except jwt.InvalidTokenError as e:  # includes ExpiredSignatureError
        raise AuthError(ACCESS_DENIED, code="INVALID_TOKEN", status=403) from e


def require_role(*roles):
    """
    Usage:
      @require_role()          -> any holder of a valid session token
      @require_role("user")    -> only tokens whose role claim is "user"
    Decoded claims are exposed as ``g.user_claims``.
    """
    if len(roles) == 1 and isinstance(roles[0], (list, tuple, set)):
        roles = tuple(roles[0])
    allowed = {str(r).lower() for r in roles if r}

    def decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            issuer = current_app.extensions["token_issuer"]
            try:
                claims = authenticate(request.headers.get("Authorization"), issuer)
            except AuthError as e:
                current_app.logger.info(
                    "[guard] %s %s rejected: %s ip=%s",
                    request.method, request.path, e.code, request.remote_addr,
                )
                return ACCESS_DENIED, 403, {"Content-Type": "text/plain; charset=utf-8"}

            role = str(claims.get("role") or "").lower()
            if allowed and role not in allowed:
                current_app.logger.info("[guard] %s %s role=%s not allowed", request.method, request.path, role)
                return ACCESS_DENIED, 403, {"Content-Type": "text/plain; charset=utf-8"}

            g.user_claims = claims  # type: ignore[attr-defined]
            return f(*args, **kwargs)

        return wrapped

    return decorator
