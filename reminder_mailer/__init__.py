import os
from flask import Flask

# Load .env only for local/dev. In prod, env vars come from the platform.
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env", override=False)


from .config import get_config
from .extensions import db, migrate
from .observability import init_logging, init_sentry
from .services.providers import get_provider

STORE_BACKENDS = ("sql", "rest")


def _validate_settings(app):
    """Refuse to start without the settings every dispatch needs."""
    def _require(name: str, config_key: str = None):
        val = app.config.get(config_key or name)
        if not val:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return val

    backend = app.config.get("STORE_BACKEND")
    if backend not in STORE_BACKENDS:
        raise RuntimeError(f"Unsupported STORE_BACKEND: {backend!r} (expected one of: {', '.join(STORE_BACKENDS)})")
    if backend == "sql":
        _require("DATABASE_URL", "SQLALCHEMY_DATABASE_URI")
    else:
        _require("STORE_URL")
        _require("STORE_SERVICE_KEY")
    _require("MAILING_TOKEN")


def create_app(config_overrides=None):
    app = Flask(__name__, template_folder="templates")

    # Config: clean, explicit, class-based
    app.config.from_object(get_config())
    if config_overrides:
        app.config.update(config_overrides)

    _validate_settings(app)
    # Provider is fixed for the life of the process
    app.extensions["mail_provider"] = get_provider(app.config["MAILING_PROVIDER"])

    init_logging(app)
    init_sentry(app)

    # Init extensions
    if app.config.get("SQLALCHEMY_DATABASE_URI"):
        db.init_app(app)
        migrate.init_app(app, db, directory="migrations")

    from .blueprints.reminders import bp as reminders_bp
    app.register_blueprint(reminders_bp, url_prefix="/reminders")

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "not_found", "code": 404}, 404

    # CLI commands (ops-grade utilities)
    from .cli import register_cli
    register_cli(app)

    return app
