"""Tests for the mail outbox and its dispatcher."""

import pytest
from protean.utils.globals import current_domain

from notifications.dispatch import MailDispatcher
from notifications.outbox import ERROR, PENDING, SUCCESS, Mail, compose_mail, enqueue_mail

CANCELLATION = {"order_number": "ATB-20260301-AB12", "reason": "Rupture fournisseur", "refunded": True}


def _reload(mail: Mail) -> Mail:
    return current_domain.repository_for(Mail).get(mail.id)


class TestOutbox:
    def test_composed_mail_is_rendered_from_its_template(self):
        mail = compose_mail("camille@example.com", "order_cancellation", CANCELLATION)

        assert mail.recipients == ["camille@example.com"]
        assert mail.mail_type == "order_cancellation"
        assert mail.subject == "Annulation de votre commande n°ATB-20260301-AB12"
        assert "Rupture fournisseur" in mail.text
        assert mail.text == mail.text.strip()
        assert mail.delivery_state == PENDING
        assert mail.delivery() is None
        assert mail.created_at is not None

    def test_unknown_mail_type_is_rejected(self):
        with pytest.raises(ValueError, match="newsletter"):
            compose_mail("camille@example.com", "newsletter", {})

    def test_enqueue_outside_a_handler_writes_immediately(self):
        mail = enqueue_mail(["a@example.com", "b@example.com"], "order_cancellation", CANCELLATION)

        stored = _reload(mail)
        assert stored.recipients == ["a@example.com", "b@example.com"]
        assert stored.is_pending


class TestMailDispatcher:
    def test_sends_pending_mail_once(self, email_channel):
        mail = enqueue_mail(["a@example.com", "b@example.com"], "order_cancellation", CANCELLATION)
        dispatcher = MailDispatcher()

        assert dispatcher.dispatch_pending() == {"sent": 1, "failed": 0}
        assert dispatcher.dispatch_pending() == {"sent": 0, "failed": 0}

        assert len(email_channel.sent_emails) == 2
        assert "ATB-20260301-AB12" in email_channel.sent_to("b@example.com")[0]["html_body"]
        delivery = _reload(mail).delivery()
        assert delivery["state"] == SUCCESS
        assert delivery["attempts"] == 1
        assert delivery["error"] is None

    def test_failures_are_recorded(self, email_channel):
        mail = enqueue_mail("a@example.com", "order_cancellation", CANCELLATION)
        email_channel.configure(should_succeed=False, failure_reason="Mailbox full")

        assert MailDispatcher().dispatch_pending() == {"sent": 0, "failed": 1}

        delivery = _reload(mail).delivery()
        assert delivery["state"] == ERROR
        assert delivery["error"] == "Mailbox full"

    def test_already_delivered_mail_is_skipped(self, email_channel):
        mail = enqueue_mail("a@example.com", "order_cancellation", CANCELLATION)
        MailDispatcher(channel=email_channel).dispatch_pending()
        email_channel.reset()

        assert MailDispatcher(channel=email_channel).pending() == []
        assert MailDispatcher(channel=email_channel).dispatch_pending() == {"sent": 0, "failed": 0}
        assert email_channel.sent_emails == []
        assert _reload(mail).delivery_state == SUCCESS
