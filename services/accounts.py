# services/accounts.py
"""
Account workflow: OTP-gated registration and login, profile, password reset.

Every operation either returns a plain dict/model or raises an
``errors.AccountError`` subclass; HTTP shaping happens in ``routes.auth``.
Login is stateless between calls: the password is checked on every request,
the OTP step only adds a check on top.
"""
from __future__ import annotations

import re
from contextlib import contextmanager

from flask import current_app

from errors import AuthError, ConflictError, DependencyError, NotFoundError, ValidationError
from mailer import DeliveryError, Notifier, mask_email
from services.otp_store import OtpStore, VerifyOutcome, generate_code
from services.passwords import PasswordHasher
from services.tokens import DEFAULT_ROLE, TokenIssuer
from services.users import RepositoryError, UserRepository

__all__ = ["AccountService", "is_valid_email"]

_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")

REGISTRATION_SUBJECT = "Registration OTP"
REGISTRATION_BODY = "Your OTP for registration is: {code}"
LOGIN_SUBJECT = "Login OTP"
LOGIN_BODY = "Your OTP for login is: {code}"

_OTP_FAILURES = {
    VerifyOutcome.NOT_FOUND: ("OTP expired or not found", "OTP_NOT_FOUND"),
    VerifyOutcome.MISMATCH: ("Invalid OTP", "OTP_MISMATCH"),
    VerifyOutcome.EXPIRED: ("OTP expired", "OTP_EXPIRED"),
}


def is_valid_email(email) -> bool:
    return isinstance(email, str) and _EMAIL_RE.fullmatch(email) is not None


def _clean(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _normalize_email(value) -> str:
    return _clean(value).lower()


@contextmanager
def _persistence(message: str):
    """Map repository failures onto a 500 with the endpoint's own message."""
    try:
        yield
    except RepositoryError as e:
        current_app.logger.error("[accounts] persistence failure: %s", e)
        raise DependencyError(message, code="PERSISTENCE_FAILED") from e


class AccountService:
    def __init__(
        self,
        *,
        users: UserRepository,
        otps: OtpStore,
        notifier: Notifier,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
    ):
        self.users = users
        self.otps = otps
        self.notifier = notifier
        self.hasher = hasher
        self.tokens = tokens

    # ── OTP ─────────────────────────────────────────────────────────────────
    def send_registration_otp(self, email) -> None:
        """Email a registration code; the challenge is stored only once delivery succeeded."""
        email = _normalize_email(email)
        if not email:
            raise ValidationError("Email is required")

        with _persistence("Failed to send OTP"):
            if self.users.find_by_email(email) is not None:
                raise ConflictError("Email already registered", code="EMAIL_TAKEN")

        code = generate_code()
        self._deliver(email, REGISTRATION_SUBJECT, REGISTRATION_BODY.format(code=code),
                      failure="Failed to send OTP")
        self.otps.put(email, code)
        current_app.logger.info("[accounts] registration OTP issued for %s", mask_email(email))

    def verify_otp(self, email, otp) -> None:
        """Run the one-time verification protocol; raises AuthError on failure."""
        email = _normalize_email(email)
        outcome = self.otps.verify(email, _clean(otp))
        if outcome == VerifyOutcome.OK:
            return
        message, code = _OTP_FAILURES[outcome]
        current_app.logger.info("[accounts] OTP %s for %s", outcome, mask_email(email))
        raise AuthError(message, code=code)

    # ── Registration ────────────────────────────────────────────────────────
    def register(self, *, name, email, password):
        """
        Create an account. A verified OTP is not required here; callers are
        expected to run send-otp/verify-otp first.
        """
        # surrounding whitespace is rejected, not stripped
        if not is_valid_email(email):
            raise ValidationError("Invalid email format", code="INVALID_EMAIL")
        email = _normalize_email(email)
        name = _clean(name)
        if not name or not password:
            raise ValidationError("Missing fields")

        with _persistence("Error registering user"):
            if self.users.find_by_email(email) is not None:
                raise ConflictError("User already exists", code="USER_EXISTS")
            user = self.users.create(
                name=name,
                email=email,
                password_hash=self.hasher.hash(str(password)),
            )
        current_app.logger.info("[accounts] registered uid=%s email=%s", user.id, mask_email(email))
        return user

    # ── Login ───────────────────────────────────────────────────────────────
    def login(self, *, email, password, otp=None) -> dict:
        """
        Phase 1 (no otp): check credentials, email a login code, ask for it.
        Phase 2 (otp): check credentials again, verify the code, issue a token.
        """
        email = _normalize_email(email)
        with _persistence("Login process failed"):
            user = self.users.find_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        if not self.hasher.verify(user.password_hash, None if password is None else str(password)):
            current_app.logger.info("[accounts] bad credentials for %s", mask_email(email))
            raise AuthError("Invalid credentials", code="BAD_CREDENTIALS")

        otp = _clean(otp)
        if not otp:
            code = generate_code()
            # stored before delivery; a failed send leaves it to expire
            self.otps.put(email, code)
            self._deliver(email, LOGIN_SUBJECT, LOGIN_BODY.format(code=code),
                          failure="Login process failed")
            return {"message": "OTP sent successfully", "requireOtp": True}

        self.verify_otp(email, otp)
        token = self.tokens.issue(user.id, DEFAULT_ROLE)
        current_app.logger.info("[accounts] login uid=%s", user.id)
        return {
            "token": token,
            "name": user.name,
            "role": DEFAULT_ROLE,
            "_id": user.id,
        }

    # ── Profile ─────────────────────────────────────────────────────────────
    def get_profile(self, user_id) -> dict:
        with _persistence("Server error"):
            user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.to_profile()

    def update_profile(self, user_id, *, name=None, email=None) -> dict:
        """Replace name/email only when a non-empty value is supplied."""
        with _persistence("Server error"):
            user = self.users.get(user_id)
            if user is None:
                raise NotFoundError("User not found")
            user.name = _clean(name) or user.name
            user.email = _normalize_email(email) or user.email
            self.users.save(user)
        return user.to_profile()

    # ── Password reset ──────────────────────────────────────────────────────
    def reset_password(self, *, email, password) -> None:
        """Set a new password for ``email``. No proof of ownership is asked for."""
        email = _normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")
        with _persistence("Error updating password"):
            user = self.users.find_by_email(email)
            if user is None:
                raise NotFoundError("User not found")
            user.password_hash = self.hasher.hash(str(password))
            self.users.save(user)
        current_app.logger.info("[accounts] password reset uid=%s", user.id)

    # ── helpers ─────────────────────────────────────────────────────────────
    def _deliver(self, email: str, subject: str, body: str, *, failure: str) -> None:
        try:
            self.notifier.send(email, subject, body)
        except DeliveryError as e:
            current_app.logger.error("[accounts] OTP delivery to %s failed: %s", mask_email(email), e)
            raise DependencyError(failure, code="NOTIFY_FAILED") from e
