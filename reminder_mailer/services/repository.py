"""
Typed access to the ``email_logs`` store.

The dispatcher only sees ``EmailLogRecord`` values and ``StoreError``; which
store sits behind them (SQL database or the hosted PostgREST API) is decided
by ``STORE_BACKEND`` at startup.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from reminder_mailer.extensions import db
from reminder_mailer.models import (
    EmailLog,
    EMAIL_TYPE_REPORT_REMINDER,
    STATUS_PENDING,
)
from reminder_mailer.utils.helpers import utcnow, parse_timestamp


class StoreError(Exception):
    """Reading from or writing to the email_logs store failed."""


@dataclass(frozen=True)
class EmailLogRecord:
    id: str
    user_id: Optional[str]
    email_type: str
    status: str
    email: str
    username: str
    last_report_time: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, row: Dict[str, Any]) -> "EmailLogRecord":
        meta = row.get("metadata") or {}
        return cls(
            id=str(row["id"]),
            user_id=row.get("user_id"),
            email_type=row.get("email_type") or "",
            status=row.get("status") or "",
            email=meta.get("email") or "",
            username=meta.get("username") or "",
            last_report_time=meta.get("last_report_time"),
            created_at=parse_timestamp(row.get("created_at")),
        )

    @classmethod
    def from_model(cls, row: EmailLog) -> "EmailLogRecord":
        meta = row.meta or {}
        return cls(
            id=row.id,
            user_id=row.user_id,
            email_type=row.email_type,
            status=row.status,
            email=meta.get("email") or "",
            username=meta.get("username") or "",
            last_report_time=meta.get("last_report_time"),
            created_at=row.created_at,
        )


class EmailLogRepository:
    def find_pending_reminders(self, limit: int) -> List[EmailLogRecord]:
        raise NotImplementedError

    def update_status(self, id: str, status: str, error: Optional[str] = None) -> None:
        raise NotImplementedError


class SqlEmailLogRepository(EmailLogRepository):
    """
    Flask-SQLAlchemy store. Every call pushes its own app context (and so gets
    its own scoped session), which keeps it usable from dispatcher worker threads.
    """

    def __init__(self, app):
        self._app = app

    def find_pending_reminders(self, limit: int) -> List[EmailLogRecord]:
        with self._app.app_context():
            try:
                rows = (
                    db.session.query(EmailLog)
                    .filter(EmailLog.status == STATUS_PENDING)
                    .filter(EmailLog.email_type == EMAIL_TYPE_REPORT_REMINDER)
                    .order_by(EmailLog.created_at.asc())
                    .limit(limit)
                    .all()
                )
                return [EmailLogRecord.from_model(r) for r in rows]
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise StoreError(f"email_logs query failed: {exc}") from exc

    def update_status(self, id: str, status: str, error: Optional[str] = None) -> None:
        values: Dict[str, Any] = {"status": status, "updated_at": utcnow()}
        if error is not None:
            values["error_message"] = error
        with self._app.app_context():
            try:
                db.session.execute(update(EmailLog).where(EmailLog.id == id).values(**values))
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise StoreError(f"email_logs update failed for {id}: {exc}") from exc


class RestEmailLogRepository(EmailLogRepository):
    """PostgREST (Supabase) store reached over HTTPS with a service key."""

    table = "email_logs"

    def __init__(self, base_url: str, service_key: str, timeout: Optional[float] = None, session=None):
        self._url = f"{base_url.rstrip('/')}/rest/v1/{self.table}"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        })

    @staticmethod
    def _error_detail(resp) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text or f"HTTP {resp.status_code}"
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or str(body)
        return str(body)

    def find_pending_reminders(self, limit: int) -> List[EmailLogRecord]:
        params = {
            "select": "*",
            "status": f"eq.{STATUS_PENDING}",
            "email_type": f"eq.{EMAIL_TYPE_REPORT_REMINDER}",
            "order": "created_at.asc",
            "limit": str(limit),
        }
        try:
            resp = self._session.get(self._url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise StoreError(f"email_logs query failed: {exc}") from exc
        if not resp.ok:
            raise StoreError(self._error_detail(resp))
        return [EmailLogRecord.from_mapping(row) for row in resp.json() or []]

    def update_status(self, id: str, status: str, error: Optional[str] = None) -> None:
        body: Dict[str, Any] = {"status": status, "updated_at": utcnow().isoformat() + "Z"}
        if error is not None:
            body["error_message"] = error
        try:
            resp = self._session.patch(
                self._url,
                params={"id": f"eq.{id}"},
                json=body,
                headers={"Prefer": "return=minimal"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise StoreError(f"email_logs update failed for {id}: {exc}") from exc
        if not resp.ok:
            raise StoreError(self._error_detail(resp))


def build_repository(app) -> EmailLogRepository:
    backend = app.config.get("STORE_BACKEND", "sql")
    if backend == "rest":
        return RestEmailLogRepository(
            app.config["STORE_URL"],
            app.config["STORE_SERVICE_KEY"],
        )
    return SqlEmailLogRepository(app)
