"""Order cancellation template — sent after a cancellation has committed."""

from notifications.templates.footer import footer_html, footer_text

_REFUND_NOTICE = (
    "Le remboursement complet a été initié et devrait apparaître sur votre compte d'ici quelques jours."
)


class OrderCancellationTemplate:
    mail_type = "order_cancellation"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context["order_number"]
        reason = context.get("reason", "")
        refunded = context.get("refunded", False)

        refund_text = f"\n{_REFUND_NOTICE}" if refunded else ""
        refund_html = f"<p>{_REFUND_NOTICE}</p>" if refunded else ""
        return {
            "subject": f"Annulation de votre commande n°{order_number}",
            "body": (
                "Bonjour,\n\n"
                f"Votre commande n°{order_number} a été annulée.\n\n"
                f"Motif : {reason}{refund_text}\n\n"
                "Nous nous excusons pour ce désagrément.\n\n"
                "L'équipe Atelier à bijoux" + footer_text(order_number)
            ),
            "html": (
                f"<h1>Votre commande n°{order_number} a été annulée</h1><p>Bonjour,</p>"
                f"<p>Votre commande n°<strong>{order_number}</strong> a été annulée.</p>"
                f"<p><strong>Motif de l'annulation :</strong> {reason}</p>{refund_html}"
                "<p>Nous nous excusons pour ce désagrément.</p>"
                "<p>L'équipe Atelier à bijoux</p>" + footer_html(order_number)
            ),
        }
