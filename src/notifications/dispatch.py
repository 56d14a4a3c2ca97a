"""Mail dispatcher — drains the mail outbox through the email channel.

Picks up every ``Mail`` still pending delivery, sends it to each recipient
and records the outcome on the record (``SUCCESS`` or ``ERROR`` with the
failure reason). The order engine never waits on this: it only enqueues
mail.
"""

from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from notifications.channel import get_email_channel
from notifications.channel.email_port import EmailPort
from notifications.outbox import PENDING, Mail

logger = structlog.get_logger(__name__)


class MailDispatcher:
    def __init__(self, channel: EmailPort | None = None) -> None:
        self.channel = channel or get_email_channel()

    def pending(self) -> list[Mail]:
        repo = current_domain.repository_for(Mail)
        return repo._dao.query.filter(delivery_state=PENDING).order_by("created_at").all().items

    def dispatch_pending(self) -> dict:
        """Send every undelivered mail once. Returns counts by outcome."""
        repo = current_domain.repository_for(Mail)
        sent = failed = 0

        for mail in self.pending():
            started = datetime.now(UTC)
            errors = []
            for recipient in mail.recipients:
                result = self.channel.send(
                    to=recipient,
                    subject=mail.subject,
                    body=mail.text or "",
                    html_body=mail.html or None,
                )
                if result.get("status") != "sent":
                    errors.append(result.get("error", "Unknown dispatch error"))

            mail.record_delivery(started, errors)
            repo.add(mail)

            if errors:
                failed += 1
                logger.error("Mail delivery failed", mail_id=str(mail.id), error=mail.delivery_error)
            else:
                sent += 1

        logger.info("Mail outbox drained", sent=sent, failed=failed)
        return {"sent": sent, "failed": failed}
