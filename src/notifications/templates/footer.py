"""Support footer appended to every customer-facing mail."""

from ordering import settings


def footer_text(order_number: str | None = None) -> str:
    text = (
        "\n\nPour toute question, vous pouvez répondre directement à cet e-mail "
        f"ou contacter notre support à {settings.SUPPORT_EMAIL}"
    )
    if order_number:
        text += f" en précisant votre numéro de commande ({order_number})"
    return text + "."


def footer_html(order_number: str | None = None) -> str:
    support = settings.SUPPORT_EMAIL
    html = (
        '<p style="font-size:12px;color:#666;">Pour toute question, vous pouvez répondre '
        f'directement à cet e-mail ou contacter notre support à <a href="mailto:{support}">{support}</a>'
    )
    if order_number:
        html += f" en précisant votre numéro de commande ({order_number})"
    return html + ".</p>"


def tracking_url(order_number: str, locale: str | None = None) -> str:
    locale = locale or settings.DEFAULT_LOCALE
    return f"{settings.STOREFRONT_BASE_URL}/{locale}/orders/track?orderNumber={order_number}"
