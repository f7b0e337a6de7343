import json

from conftest import FakeResponse
from reminder_mailer.models import STATUS_PENDING, STATUS_SUCCESS, EmailLog
from reminder_mailer.extensions import db


def test_enqueue_creates_pending_reminder(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "reminders", "enqueue",
        "--user-id", "42",
        "--email", "Someone@Example.com",
        "--username", "someone",
        "--last-report-time", "2024-01-15T10:30:00Z",
    ])
    assert result.exit_code == 0, result.output
    assert "Reminder queued" in result.output

    with app.app_context():
        row = db.session.query(EmailLog).one()
        assert row.status == STATUS_PENDING
        assert row.email_type == "report_reminder"
        assert row.meta == {
            "email": "someone@example.com",
            "username": "someone",
            "last_report_time": "2024-01-15T10:30:00Z",
        }


def test_enqueue_rejects_bad_timestamp(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "reminders", "enqueue",
        "--user-id", "42", "--email", "a@example.com", "--username", "a",
        "--last-report-time", "yesterday",
    ])
    assert result.exit_code != 0
    with app.app_context():
        assert db.session.query(EmailLog).count() == 0


def test_dispatch_command_prints_summary(app, make_log, fetch_log, monkeypatch):
    log_id = make_log(email="cli@example.com")
    monkeypatch.setattr("requests.post", lambda *a, **kw: FakeResponse(202))

    result = app.test_cli_runner().invoke(args=["reminders", "dispatch"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["processed"] == 1
    assert payload["stats"] == {"success": 1}
    assert fetch_log(log_id).status == STATUS_SUCCESS


def test_dispatch_command_with_nothing_pending(app):
    result = app.test_cli_runner().invoke(args=["reminders", "dispatch"])
    assert result.exit_code == 0
    assert json.loads(result.output)["message"] == "No pending emails to process"


def test_dispatch_command_exits_non_zero_when_query_fails(app, monkeypatch):
    from reminder_mailer.services.repository import SqlEmailLogRepository, StoreError

    def _down(self, limit):
        raise StoreError("db down")

    monkeypatch.setattr(SqlEmailLogRepository, "find_pending_reminders", _down)

    result = app.test_cli_runner().invoke(args=["reminders", "dispatch"])

    assert result.exit_code == 1
    assert "Error: db down" in result.output
