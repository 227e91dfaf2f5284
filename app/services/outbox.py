"""Emails queued during a request and released only after it commits.

Handlers call :func:`queue_email`; nothing leaves the process until the
session's transaction commits, and a rollback discards the queue. Enqueue
failures are logged and never reach the caller.
"""

import logging

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_OUTBOX_KEY = "email_outbox"


def queue_email(db: Session, template: str, recipient: str, data: dict) -> None:
    db.info.setdefault(_OUTBOX_KEY, []).append(
        {"template": template, "recipient": recipient, "data": data}
    )


def pending_emails(db: Session) -> list[dict]:
    return list(db.info.get(_OUTBOX_KEY, []))


def _deliver(messages: list[dict]) -> None:
    from app.tasks.email import send_email

    for message in messages:
        try:
            send_email.delay(**message)
        except Exception as e:
            logger.exception(
                "Failed to queue %s email to %s: %s",
                message["template"],
                message["recipient"],
                e,
            )


@event.listens_for(Session, "after_commit")
def _release_outbox(session: Session) -> None:
    messages = session.info.pop(_OUTBOX_KEY, None)
    if messages:
        _deliver(messages)


@event.listens_for(Session, "after_soft_rollback")
def _discard_outbox(session: Session, previous_transaction) -> None:
    dropped = session.info.pop(_OUTBOX_KEY, None)
    if dropped:
        logger.info("Discarded %d queued emails after rollback", len(dropped))
