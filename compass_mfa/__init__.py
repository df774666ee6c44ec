import os
import logging
import click
from flask import Flask
from dotenv import load_dotenv

from .enrollment import TwoFactorEnrollment

DEFAULT_ENV_DIR = "/opt/compass-mfa"


def _load_env():
    base = os.getenv("COMPASS_ENV_DIR", DEFAULT_ENV_DIR)
    load_dotenv(dotenv_path=os.path.join(base, ".env"), override=False)

    # Optionally load extra env fragments (e.g., .env.d/*)
    envd = os.path.join(base, ".env.d")
    if os.path.isdir(envd):
        for name in sorted(os.listdir(envd)):
            p = os.path.join(envd, name)
            if os.path.isfile(p):
                load_dotenv(dotenv_path=p, override=True)


def _policy_defaults():
    return {
        "MFA_ISSUER": os.getenv("MFA_ISSUER", "Order Flow Compass"),
        "MFA_WINDOW": int(os.getenv("MFA_WINDOW", "1")),             # +/-1 step of drift
        "MFA_MAX_ATTEMPTS": int(os.getenv("MFA_MAX_ATTEMPTS", "5")),
        "MFA_LOCK_SECONDS": int(os.getenv("MFA_LOCK_SECONDS", "300")),  # 5m, doubles after
        "MFA_STRICT_SECRETS": os.getenv("MFA_STRICT_SECRETS", "false").lower() == "true",
        "IDENTITY_MAX_AGE": int(os.getenv("IDENTITY_MAX_AGE", "3600")),
    }


def create_app(config=None, store=None):
    _load_env()

    app = Flask(__name__)

    # Core secrets
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "CHANGE_ME_DEV_ONLY")
    app.config["DATABASE_URL"] = os.getenv("DATABASE_URL", "")
    app.config.update(_policy_defaults())
    if config:
        app.config.update(config)

    if app.config["SECRET_KEY"] == "CHANGE_ME_DEV_ONLY" and not app.testing:
        app.logger.warning("SECRET_KEY is not set; identity tokens are forgeable")

    gunicorn_logger = logging.getLogger("gunicorn.error")
    if gunicorn_logger.handlers:
        app.logger.handlers = gunicorn_logger.handlers
        app.logger.setLevel(gunicorn_logger.level)

    if store is None:
        from .db import MySQLEnrollmentStore
        store = MySQLEnrollmentStore(app.config["DATABASE_URL"])

    app.extensions["compass_mfa"] = TwoFactorEnrollment(
        store,
        issuer=app.config["MFA_ISSUER"],
        window=app.config["MFA_WINDOW"],
        max_attempts=app.config["MFA_MAX_ATTEMPTS"],
        lock_seconds=app.config["MFA_LOCK_SECONDS"],
        strict_secrets=app.config["MFA_STRICT_SECRETS"],
    )

    # Blueprints
    from .mfa import bp as mfa_bp
    from .routes import bp as web_bp
    app.register_blueprint(mfa_bp)    # /mfa/provision, /mfa/verify, /mfa/challenge, /mfa/disable, /mfa/status
    app.register_blueprint(web_bp)    # /healthz, /readyz

    @app.cli.command("init-db")
    def init_db():
        """Create the mfa_enrollments table if it does not exist."""
        if not hasattr(store, "create_schema"):
            click.echo(f"{type(store).__name__} has no schema to create")
            return
        store.create_schema()
        click.echo("mfa_enrollments ready")

    return app
