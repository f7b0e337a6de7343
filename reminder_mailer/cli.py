import json

import click
from flask import current_app
from flask.cli import with_appcontext

from reminder_mailer.extensions import db
from reminder_mailer.models import EmailLog, EMAIL_TYPE_REPORT_REMINDER, STATUS_PENDING
from reminder_mailer.services.dispatcher import get_dispatcher
from reminder_mailer.utils.helpers import parse_timestamp


@click.group()
def reminders():
    """Report reminder operations."""


@reminders.command("dispatch")
@with_appcontext
def reminders_dispatch():
    """Run one dispatch batch (cron entry point)."""
    try:
        payload = get_dispatcher(current_app._get_current_object()).run()
    except Exception as e:
        current_app.logger.exception("reminder dispatch failed")
        raise click.ClickException(str(e) or type(e).__name__)
    click.echo(json.dumps(payload))


@reminders.command("enqueue")
@click.option("--user-id", required=True)
@click.option("--email", required=True)
@click.option("--username", required=True)
@click.option("--last-report-time", default=None, help="ISO-8601 timestamp of the user's last report")
@with_appcontext
def reminders_enqueue(user_id, email, username, last_report_time):
    """Queue one pending report reminder."""
    if current_app.config.get("STORE_BACKEND") != "sql":
        raise click.ClickException("enqueue is only available with STORE_BACKEND=sql")

    meta = {"email": email.strip().lower(), "username": username}
    if last_report_time:
        if parse_timestamp(last_report_time) is None:
            raise click.BadParameter("not an ISO-8601 timestamp", param_hint="--last-report-time")
        meta["last_report_time"] = last_report_time

    row = EmailLog(
        user_id=user_id,
        email_type=EMAIL_TYPE_REPORT_REMINDER,
        status=STATUS_PENDING,
        meta=meta,
    )
    db.session.add(row)
    db.session.commit()

    click.echo(f"Reminder queued id={row.id} to={meta['email']}")


def register_cli(app):
    app.cli.add_command(reminders)
