import uuid
from datetime import datetime

from reminder_mailer.extensions import db

EMAIL_TYPE_REPORT_REMINDER = "report_reminder"

STATUS_PENDING = "pending"
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


def _new_id() -> str:
    return str(uuid.uuid4())


class EmailLog(db.Model):
    __tablename__ = "email_logs"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(64), nullable=True)
    email_type = db.Column(db.String(64), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, index=True, default=STATUS_PENDING)  # pending|success|failed
    # "metadata" is reserved on declarative models; keep the column name, rename the attribute
    meta = db.Column("metadata", db.JSON, nullable=False, default=dict)
    error_message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<EmailLog id={self.id} type={self.email_type} status={self.status}>"
