# errors.py
"""
Failure taxonomy for the account service.

Every workflow failure is raised as an ``AccountError`` subclass carrying the
HTTP status and a short machine code; the blueprint turns it into a
single-message response. Nothing here is localized.
"""
from __future__ import annotations

__all__ = [
    "AccountError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "AuthError",
    "DependencyError",
]


class AccountError(Exception):
    status = 500
    code = "ERROR"

    def __init__(self, message: str, *, code: str | None = None, status: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status is not None:
            self.status = status

    def to_dict(self) -> dict:
        return {"error": self.message}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, status={self.status}, message={self.message!r})"


class ValidationError(AccountError):
    """Bad email format or missing fields."""
    status = 400
    code = "VALIDATION"


class ConflictError(AccountError):
    """Email already registered. Reported as 400 like other input problems."""
    status = 400
    code = "USER_EXISTS"


class NotFoundError(AccountError):
    status = 404
    code = "USER_NOT_FOUND"


class AuthError(AccountError):
    """Bad password, bad/expired/mismatched OTP, missing/invalid token."""
    status = 400
    code = "BAD_CREDENTIALS"


class DependencyError(AccountError):
    """Mail delivery or persistence failure."""
    status = 500
    code = "DEPENDENCY_FAILED"
