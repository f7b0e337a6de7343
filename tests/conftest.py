import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("STORE_BACKEND", "sql")
# Startup validation reads these from config at create_app() time
os.environ.setdefault("MAILING_TOKEN", "test-mailing-token")
os.environ.setdefault("MAILING_PROVIDER", "sendgrid")

from datetime import datetime, timedelta

import pytest
from reminder_mailer import create_app
from reminder_mailer.extensions import db
from reminder_mailer.models import EmailLog, EMAIL_TYPE_REPORT_REMINDER, STATUS_PENDING


class FakeResponse:
    def __init__(self, status_code=202, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload


@pytest.fixture(scope="session")
def app():
    app = create_app({
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "MAILING_TOKEN": "test-mailing-token",
        "MAIL_FROM_EMAIL": "noreply@example.test",
        "MAIL_FROM_NAME": "Reports",
    })
    app.config.update(
        TESTING=True,
        # No real waiting and one worker: in-memory SQLite shares a single connection
        REMINDER_STAGGER_MS=0,
        REMINDER_MAX_WORKERS=1,
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def _db_clean(app):
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


@pytest.fixture()
def make_log(app):
    """Insert an email_logs row; rows get increasing created_at in call order."""
    base = datetime(2024, 1, 1, 8, 0, 0)
    counter = {"n": 0}

    def _make(email="user@example.com", username="user", status=STATUS_PENDING,
              email_type=EMAIL_TYPE_REPORT_REMINDER, last_report_time=None, id=None):
        meta = {"email": email, "username": username}
        if last_report_time:
            meta["last_report_time"] = last_report_time
        counter["n"] += 1
        with app.app_context():
            row = EmailLog(
                user_id=f"user-{counter['n']}",
                email_type=email_type,
                status=status,
                meta=meta,
                created_at=base + timedelta(minutes=counter["n"]),
            )
            if id:
                row.id = id
            db.session.add(row)
            db.session.commit()
            return row.id

    return _make


@pytest.fixture()
def fetch_log(app):
    def _fetch(log_id):
        with app.app_context():
            row = db.session.get(EmailLog, log_id)
            db.session.expunge(row)
            return row
    return _fetch
