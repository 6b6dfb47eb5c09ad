# config.py
import os

from dotenv import load_dotenv

load_dotenv()


def _to_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}

def _to_int(val: str | None, default: int) -> int:
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


class Config:
    # ── Core ─────────────────────────────────────────────────────────────────
    DEBUG = _to_bool(os.environ.get("DEBUG") or os.environ.get("FLASK_DEBUG"), False)
    TESTING = False
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev_secret")  # ← override in prod!
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///ev_accounts.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 180,
    }
    AUTO_CREATE_TABLES = _to_bool(os.environ.get("AUTO_CREATE_TABLES"), True)

    # ── Auth / JWT ──────────────────────────────────────────────────────────
    JWT_SECRET = os.environ.get("JWT_SECRET") or SECRET_KEY
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_TTL_SECONDS = _to_int(os.environ.get("JWT_TTL_SECONDS"), 60 * 60)
    PASSWORD_HASH_METHOD = os.environ.get("PASSWORD_HASH_METHOD", "scrypt")

    # ── OTP ─────────────────────────────────────────────────────────────────
    OTP_TTL_SECONDS = _to_int(os.environ.get("OTP_TTL_SECONDS"), 5 * 60)
    OTP_SWEEP_INTERVAL_SECONDS = _to_int(os.environ.get("OTP_SWEEP_INTERVAL_SECONDS"), 60)
    OTP_SWEEPER_ENABLED = _to_bool(os.environ.get("OTP_SWEEPER_ENABLED"), True)

    # ── SMTP (OTP delivery) ─────────────────────────────────────────────────
    SMTP_HOST = os.environ.get("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT = _to_int(os.environ.get("SMTP_PORT"), 587)
    SMTP_USER = os.environ.get("SMTP_USER") or os.environ.get("EMAIL_USER")
    SMTP_PASS = os.environ.get("SMTP_PASS") or os.environ.get("EMAIL_PASS")
    SMTP_USE_TLS = _to_bool(os.environ.get("SMTP_USE_TLS"), True)
    SMTP_TIMEOUT_SECONDS = _to_int(os.environ.get("SMTP_TIMEOUT_SECONDS"), 10)
    MAIL_FROM = os.environ.get("MAIL_FROM", SMTP_USER or "no-reply@example.com")
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "EV Charging Office")


class ProductionConfig(Config):
    DEBUG = False
    SECRET_KEY = os.environ.get("SECRET_KEY")
    JWT_SECRET = os.environ.get("JWT_SECRET") or SECRET_KEY


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    DEBUG = True
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET = "test-jwt-signing-secret-0123456789"
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    AUTO_CREATE_TABLES = True
    OTP_SWEEPER_ENABLED = False
    # cheap hashing keeps the suite fast
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
