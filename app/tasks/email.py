import logging

import httpx

from app.celery_app import celery_app
from app.services.email import email_service

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.tasks.email.send_email",
    ignore_result=True,
    bind=True,
    max_retries=3,
    default_retry_delay=30,
)
def send_email(
    self: "celery_app.Task",  # type: ignore[name-defined]
    template: str,
    recipient: str,
    data: dict,
) -> None:
    """Deliver one templated email; transport failures retry with backoff."""
    try:
        email_service.send(template, recipient, data)
    except (httpx.HTTPError, OSError) as e:
        logger.warning("Email %s to %s failed: %s", template, recipient, e)
        # Eager mode (tests, local dev) runs in the caller, so no backoff
        if self.request.is_eager:
            return
        try:
            self.retry(countdown=30 * (2 ** (self.request.retries or 0)))
        except self.MaxRetriesExceededError:
            logger.error("Email %s to %s exhausted retries", template, recipient)
