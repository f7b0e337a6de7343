from .email_log import (
    EmailLog,
    EMAIL_TYPE_REPORT_REMINDER,
    STATUS_PENDING,
    STATUS_SUCCESS,
    STATUS_FAILED,
)
