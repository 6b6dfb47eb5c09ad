# app.py
from __future__ import annotations

import atexit
import logging
import os
from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_cors import CORS

from config import Config
from db import db, migrate
from mailer import Notifier, SmtpNotifier

# Ensure models are imported so Flask-Migrate sees them
from models.user import User

# Blueprints
from routes.auth import auth_bp

from services.accounts import AccountService
from services.otp_store import OtpStore, OtpSweeper
from services.passwords import PasswordHasher
from services.tokens import TokenIssuer
from services.users import UserRepository


def create_app(config_class=Config, *, notifier: Notifier | None = None, otp_store: OtpStore | None = None) -> Flask:
    """
    Build the account service.

    ``notifier`` and ``otp_store`` may be injected (tests pass a recording
    notifier and a store with a controllable clock); otherwise SMTP and a
    wall-clock store are built from config.
    """
    app = Flask(__name__)

    # Respect reverse proxy headers (scheme / host) for correct URL generation
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[arg-type]

    # CORS (open for now; tighten origins for production)
    CORS(app, resources={r"/*": {"origins": "*"}})

    # Load config + init extensions
    app.config.from_object(config_class)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))
    if not app.config.get("JWT_SECRET"):
        raise RuntimeError("JWT_SECRET (or SECRET_KEY) must be set")

    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        # Touch models so Alembic/Flask-Migrate registers them
        _ = (User,)
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()

    # ── Collaborators ────────────────────────────────────────────────────────
    store = otp_store if otp_store is not None else OtpStore(ttl_seconds=app.config["OTP_TTL_SECONDS"])
    issuer = TokenIssuer(
        app.config["JWT_SECRET"],
        ttl_seconds=app.config["JWT_TTL_SECONDS"],
        algorithm=app.config["JWT_ALGORITHM"],
    )
    accounts = AccountService(
        users=UserRepository(),
        otps=store,
        notifier=notifier if notifier is not None else SmtpNotifier.from_config(app.config),
        hasher=PasswordHasher(app.config["PASSWORD_HASH_METHOD"]),
        tokens=issuer,
    )
    app.extensions["otp_store"] = store
    app.extensions["token_issuer"] = issuer
    app.extensions["accounts"] = accounts

    if app.config.get("OTP_SWEEPER_ENABLED"):
        sweeper = OtpSweeper(store, interval=app.config["OTP_SWEEP_INTERVAL_SECONDS"])
        sweeper.start()
        atexit.register(sweeper.stop)
        app.extensions["otp_sweeper"] = sweeper

    # Health check
    @app.route("/")
    def health_check():
        return jsonify(status="ok"), 200

    @app.errorhandler(404)
    def handle_404(e):
        return jsonify(error="Not Found", path=request.path), 404

    # Global error handler
    @app.errorhandler(Exception)
    def handle_any_error(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify(error=e.description), e.code
        app.logger.exception("[app] unhandled error on %s %s", request.method, request.path)
        return jsonify(error="Internal server error"), 500

    # --- Debug: list routes ---
    @app.route("/__routes")
    def __routes():
        lines = []
        for rule in app.url_map.iter_rules():
            methods = ",".join(sorted(m for m in rule.methods if m not in {"HEAD", "OPTIONS"}))
            lines.append(f"{methods:10s} {rule.rule}")
        lines.sort()
        return Response("\n".join(lines), mimetype="text/plain")

    # Register blueprints
    app.register_blueprint(auth_bp)

    # CLI
    @app.cli.command("init-db")
    def init_db_cmd():
        db.create_all()
        print("Tables created.")

    @app.cli.command("purge-otps")
    def purge_otps_cmd():
        evicted = store.sweep()
        print(f"Evicted {evicted} expired OTP challenge(s); {len(store)} pending.")

    return app


# Optional local entrypoint (useful for quick dev runs)
if __name__ == "__main__":
    app = create_app()
    app.run(
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "5000")),
        debug=bool(os.environ.get("FLASK_DEBUG", "")),
    )
