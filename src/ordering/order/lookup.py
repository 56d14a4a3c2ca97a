"""Order lookups for customers and the back office."""

import re
from collections import defaultdict

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from notifications.outbox import Mail, enqueue_mail
from notifications.templates.order_history import OrderHistoryTemplate
from ordering import settings
from ordering.order.order import Order

logger = structlog.get_logger(__name__)

_ORDER_NUMBER_IN_SUBJECT = re.compile(r"n°\s*([A-Z0-9-]+)")


def find_order_by_number(order_number: str) -> Order:
    """Tracking lookup by the number printed on the confirmation mail."""
    normalized = (order_number or "").strip().upper()
    orders = (
        current_domain.repository_for(Order)._dao.query.filter(order_number=normalized).all().items
        if normalized
        else []
    )
    if not orders:
        raise ObjectNotFoundError({"_entity": f"Order {normalized} not found"})
    return orders[0]


def orders_for(email: str) -> list[Order]:
    return (
        current_domain.repository_for(Order)
        ._dao.query.filter(customer_email=email)
        .order_by("-created_at")
        .limit(None)
        .all()
        .items
    )


def send_order_history(email: str, locale: str | None = None) -> int:
    """Mail a customer the list of their orders. Returns how many were found.

    A mail goes out even when nothing matches, so the response never tells
    the caller whether an address has ordered before.
    """
    email = (email or "").strip()
    if not email or "@" not in email:
        raise ValidationError({"email": ["A valid email address is required"]})

    orders = orders_for(email)
    enqueue_mail(
        email,
        OrderHistoryTemplate.mail_type,
        {
            "email": email,
            "locale": locale or settings.DEFAULT_LOCALE,
            "orders": [
                {
                    "order_number": order.order_number,
                    "status": order.status,
                    "created_on": order.created_at.strftime("%d/%m/%Y"),
                }
                for order in orders
            ],
        },
    )
    logger.info("Order history mailed", orders_found=len(orders))
    return len(orders)


def mail_history_by_order_number() -> dict[str, list[dict]]:
    history: dict[str, list[dict]] = defaultdict(list)
    for mail in current_domain.repository_for(Mail)._dao.query.order_by("created_at").limit(None).all().items:
        match = _ORDER_NUMBER_IN_SUBJECT.search(mail.subject or "")
        if match is None:
            continue
        history[match.group(1)].append(
            {
                "id": str(mail.id),
                "to": mail.recipients,
                "subject": mail.subject,
                "delivery": mail.delivery(),
            }
        )
    return history


def list_orders() -> list[dict]:
    """All orders, newest first, each with the mail sent about it."""
    history = mail_history_by_order_number()
    orders = current_domain.repository_for(Order)._dao.query.order_by("-created_at").limit(None).all().items
    return [{**order.to_dict(), "mail_history": history.get(order.order_number, [])} for order in orders]
