"""
Report reminder dispatch.

One invocation loads a batch of pending reminders, sends them with staggered
start times and writes a terminal status back for each record. There is no
claim step before sending: overlapping invocations can pick up the same rows.
"""
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
import json
import logging
import time

from reminder_mailer.models import STATUS_SUCCESS, STATUS_FAILED
from .email import MailSender, build_reminder_email
from .repository import EmailLogRecord, EmailLogRepository, build_repository

logger = logging.getLogger(__name__)

NO_PENDING_MESSAGE = "No pending emails to process"


@dataclass(frozen=True)
class DispatchPolicy:
    batch_size: int = 50
    stagger_seconds: float = 0.2
    max_workers: Optional[int] = None  # None: one worker per record

    def delay_for(self, index: int) -> float:
        return index * self.stagger_seconds

    def workers_for(self, count: int) -> int:
        if self.max_workers:
            return max(1, min(self.max_workers, count))
        return max(1, count)


@dataclass(frozen=True)
class ProcessingResult:
    id: str
    status: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "status": self.status}
        if self.error is not None:
            out["error"] = self.error
        return out


class ReminderDispatcher:
    def __init__(
        self,
        repository: EmailLogRepository,
        sender: MailSender,
        from_email: str = "",
        from_name: str = "",
        policy: Optional[DispatchPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repository = repository
        self.sender = sender
        self.from_email = from_email
        self.from_name = from_name
        self.policy = policy or DispatchPolicy()
        self._sleep = sleep
        self._clock = clock

    def run(self) -> Dict[str, Any]:
        """
        Process one batch and return the response payload.
        Store errors from the initial query propagate to the caller untouched.
        """
        records = self.repository.find_pending_reminders(self.policy.batch_size)
        if not records:
            return {"success": True, "message": NO_PENDING_MESSAGE}

        results = self._process_all(records)
        stats = dict(Counter(r.status for r in results))
        logger.info(json.dumps({
            "event": "reminder_dispatch",
            "processed": len(results),
            "stats": stats,
        }))
        return {
            "success": True,
            "processed": len(results),
            "stats": stats,
            "results": [r.to_dict() for r in results],
        }

    def _process_all(self, records: List[EmailLogRecord]) -> List[ProcessingResult]:
        start = self._clock()

        def _staggered(index: int, record: EmailLogRecord) -> ProcessingResult:
            wait = start + self.policy.delay_for(index) - self._clock()
            if wait > 0:
                self._sleep(wait)
            return self.process_one(record)

        with ThreadPoolExecutor(max_workers=self.policy.workers_for(len(records))) as pool:
            futures = [pool.submit(_staggered, i, rec) for i, rec in enumerate(records)]
            return [f.result() for f in futures]

    def process_one(self, record: EmailLogRecord) -> ProcessingResult:
        try:
            message = build_reminder_email(record, self.from_email, self.from_name)
            self.sender.send(message)
            # A failed write here still lands in the failure path, even though the mail went out
            self.repository.update_status(record.id, STATUS_SUCCESS)
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            logger.warning(json.dumps({
                "event": "reminder_send",
                "id": record.id,
                "outcome": STATUS_FAILED,
                "error": error,
            }))
            try:
                self.repository.update_status(record.id, STATUS_FAILED, error=error)
            except Exception as write_exc:
                logger.warning(json.dumps({
                    "event": "reminder_status_write_failed",
                    "id": record.id,
                    "error": str(write_exc),
                }))
            return ProcessingResult(id=record.id, status=STATUS_FAILED, error=error)

        logger.info(json.dumps({
            "event": "reminder_send",
            "id": record.id,
            "provider": self.sender.provider.name,
            "outcome": STATUS_SUCCESS,
        }))
        return ProcessingResult(id=record.id, status=STATUS_SUCCESS)


def policy_from_config(config) -> DispatchPolicy:
    return DispatchPolicy(
        batch_size=50 if config.get("REMINDER_BATCH_SIZE") is None else int(config["REMINDER_BATCH_SIZE"]),
        stagger_seconds=(config.get("REMINDER_STAGGER_MS") or 0) / 1000.0,
        max_workers=config.get("REMINDER_MAX_WORKERS"),
    )


def get_dispatcher(app) -> ReminderDispatcher:
    """Build a dispatcher for one invocation from app config and the provider chosen at startup."""
    sender = MailSender(
        app.extensions["mail_provider"],
        app.config["MAILING_TOKEN"],
        timeout=app.config.get("MAILING_TIMEOUT_SECONDS"),
    )
    return ReminderDispatcher(
        repository=build_repository(app),
        sender=sender,
        from_email=app.config.get("MAIL_FROM_EMAIL") or "",
        from_name=app.config.get("MAIL_FROM_NAME") or "",
        policy=policy_from_config(app.config),
    )
