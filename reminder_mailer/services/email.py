from typing import Any, Dict, Optional
import json

import requests
from jinja2 import Environment, PackageLoader, select_autoescape

from reminder_mailer.utils.helpers import format_timestamp
from .providers import MailProvider, OutgoingEmail

REMINDER_SUBJECT = "Report Reminder"

# Standalone environment: rendering needs no app context and no request state
_templates = Environment(
    loader=PackageLoader("reminder_mailer", "templates"),
    autoescape=select_autoescape(["html"]),
)


class MailSendError(Exception):
    """Provider answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


def _context(username: str, last_report_time: Any) -> Dict[str, Any]:
    return {
        "username": username,
        "last_report_time": format_timestamp(last_report_time) if last_report_time else None,
    }


def render_reminder_html(username: str, last_report_time: Any = None) -> str:
    """
    Render the reminder body. Deterministic for a given (username, last_report_time);
    a missing last_report_time renders the "no reports yet" sentence.
    """
    return _templates.get_template("email/report_reminder.html").render(**_context(username, last_report_time))


def render_reminder_text(username: str, last_report_time: Any = None) -> str:
    return _templates.get_template("email/report_reminder.txt").render(**_context(username, last_report_time))


def build_reminder_email(record, from_email: str, from_name: str) -> OutgoingEmail:
    return OutgoingEmail(
        to=record.email,
        from_email=from_email,
        from_name=from_name,
        subject=REMINDER_SUBJECT,
        html_content=render_reminder_html(record.username, record.last_report_time),
        text_content=render_reminder_text(record.username, record.last_report_time),
    )


class MailSender:
    """POSTs provider-shaped messages with bearer-token auth."""

    def __init__(self, provider: MailProvider, token: str, timeout: Optional[float] = None, http=requests):
        self.provider = provider
        self._token = token
        self._timeout = timeout
        self._http = http

    def send(self, message: OutgoingEmail) -> None:
        resp = self._http.post(
            self.provider.endpoint,
            json=self.provider.build_request(message),
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json",
            },
            timeout=self._timeout,
        )
        if not resp.ok:
            try:
                payload = resp.json()
            except ValueError:
                payload = resp.text
            raise MailSendError(
                f"MAILING API error: {json.dumps(payload)}",
                status_code=resp.status_code,
                payload=payload,
            )
