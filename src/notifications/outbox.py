"""Mail outbox — notification records consumed by the mail dispatcher.

Each ``Mail`` is one message addressed to one or more recipients. The engine
only ever *enqueues* mail through ``enqueue_mail``: inside a command handler
the record joins that handler's unit of work, so a message can never outlive
an aborted checkout; called outside one it is written immediately. Delivery
bookkeeping is filled in later by ``notifications.dispatch.MailDispatcher``.
"""

import json
from datetime import UTC, datetime

from protean.fields import DateTime, Integer, String, Text
from protean.utils.globals import current_domain

from notifications.templates import get_template
from ordering.domain import ordering

PENDING = "PENDING"
SUCCESS = "SUCCESS"
ERROR = "ERROR"


@ordering.aggregate
class Mail:
    to = Text(required=True)  # JSON: list of recipient addresses
    mail_type = String(max_length=50)
    subject = String(required=True, max_length=500)
    text = Text()
    html = Text()
    delivery_state = String(max_length=20, default=PENDING)
    delivery_started_at = DateTime()
    delivery_ended_at = DateTime()
    delivery_attempts = Integer(default=0)
    delivery_error = Text()
    created_at = DateTime()

    @property
    def recipients(self) -> list[str]:
        return json.loads(self.to) if self.to else []

    @property
    def is_pending(self) -> bool:
        return self.delivery_state == PENDING

    def record_delivery(self, started_at: datetime, errors: list[str]) -> None:
        self.delivery_state = ERROR if errors else SUCCESS
        self.delivery_started_at = started_at
        self.delivery_ended_at = datetime.now(UTC)
        self.delivery_attempts = (self.delivery_attempts or 0) + 1
        self.delivery_error = "; ".join(errors) or None

    def delivery(self) -> dict | None:
        if self.is_pending:
            return None
        return {
            "state": self.delivery_state,
            "start_time": self.delivery_started_at,
            "end_time": self.delivery_ended_at,
            "attempts": self.delivery_attempts,
            "error": self.delivery_error,
        }


def compose_mail(to: str | list[str], mail_type: str, context: dict, now: datetime | None = None) -> Mail:
    """Render the template registered for ``mail_type`` into a pending Mail."""
    content = get_template(mail_type).render(context)
    recipients = [to] if isinstance(to, str) else list(to)
    return Mail(
        to=json.dumps(recipients),
        mail_type=mail_type,
        subject=content["subject"],
        text=content["body"].strip(),
        html=(content.get("html") or "").strip(),
        created_at=now or datetime.now(UTC),
    )


def enqueue_mail(to: str | list[str], mail_type: str, context: dict) -> Mail:
    mail = compose_mail(to, mail_type, context)
    current_domain.repository_for(Mail).add(mail)
    return mail
