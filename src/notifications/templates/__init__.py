"""Template registry — maps mail types to template classes.

Each template renders ``{"subject", "body", "html"}`` from a context dict.
"""

from notifications.templates.creator_reward import CreatorRewardTemplate
from notifications.templates.order_cancellation import OrderCancellationTemplate
from notifications.templates.order_confirmation import OrderConfirmationTemplate
from notifications.templates.order_history import OrderHistoryTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    OrderConfirmationTemplate.mail_type: OrderConfirmationTemplate,
    OrderCancellationTemplate.mail_type: OrderCancellationTemplate,
    CreatorRewardTemplate.mail_type: CreatorRewardTemplate,
    OrderHistoryTemplate.mail_type: OrderHistoryTemplate,
}


def get_template(mail_type: str):
    """Look up a template class by mail type string."""
    template_cls = TEMPLATE_REGISTRY.get(mail_type)
    if template_cls is None:
        raise ValueError(f"No template registered for mail type: {mail_type}")
    return template_cls
