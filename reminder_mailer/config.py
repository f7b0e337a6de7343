import os

from dotenv import dotenv_values


def _env_int(name: str, default=None):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_float(name: str, default=None):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def database_url():
    """DATABASE_URL from the environment, then from .env; None when neither sets it."""
    return os.environ.get("DATABASE_URL") or dotenv_values(".env").get("DATABASE_URL")


class BaseConfig:
    # Store: no default outside tests, create_app() fails fast when unset
    STORE_BACKEND = os.getenv("STORE_BACKEND", "sql").lower()
    SQLALCHEMY_DATABASE_URI = database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Hosted REST store (STORE_BACKEND=rest)
    STORE_URL = os.getenv("STORE_URL")
    STORE_SERVICE_KEY = os.getenv("STORE_SERVICE_KEY")

    # Logging / misc
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # --- Mailing provider ---
    MAILING_PROVIDER = os.getenv("MAILING_PROVIDER", "sendgrid").lower()
    MAILING_TOKEN = os.getenv("MAILING_TOKEN")
    MAILING_TIMEOUT_SECONDS = _env_float("MAILING_TIMEOUT_SECONDS")
    # Sender is optional; providers reject an empty sender per request, not at boot
    MAIL_FROM_EMAIL = os.getenv("MAIL_FROM_EMAIL", "")
    MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "")

    # --- Reminder batches ---
    REMINDER_BATCH_SIZE = _env_int("REMINDER_BATCH_SIZE", 50)
    REMINDER_STAGGER_MS = _env_int("REMINDER_STAGGER_MS", 200)
    REMINDER_MAX_WORKERS = _env_int("REMINDER_MAX_WORKERS")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
    # Platform env only; .env is not read in production
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL")


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")


_ENV_MAP = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config():
    env = os.environ.get("APP_ENV", "development").lower()
    return _ENV_MAP.get(env, DevelopmentConfig)
