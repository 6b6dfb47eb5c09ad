# services/passwords.py
from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash

__all__ = ["PasswordHasher"]


class PasswordHasher:
    """Salted one-way hashing via Werkzeug (scrypt unless configured otherwise)."""

    def __init__(self, method: str = "scrypt"):
        self.method = method

    def hash(self, raw: str) -> str:
        return generate_password_hash(raw, method=self.method)

    def verify(self, password_hash: str | None, raw: str | None) -> bool:
        try:
            return check_password_hash(password_hash or "", raw or "")
        except Exception:
            return False
