"""Order confirmation template — staged with the order in the checkout transaction."""

from notifications.templates.footer import footer_html, footer_text, tracking_url


class OrderConfirmationTemplate:
    mail_type = "order_confirmation"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context["order_number"]
        total = context.get("total_price", 0.0)
        items = context.get("items", [])
        url = tracking_url(order_number, context.get("locale"))

        lines_text = "\n".join(
            f"- {item['model_name']} avec {len(item.get('charms', []))} breloque(s)" for item in items
        )
        lines_html = "".join(
            f"<li>{item['model_name']} avec {len(item.get('charms', []))} breloque(s)</li>" for item in items
        )
        return {
            "subject": f"Confirmation de votre commande n°{order_number}",
            "body": (
                "Bonjour,\n\n"
                f"Nous avons bien reçu votre commande n°{order_number} "
                f"d'un montant total de {total:.2f}€.\n\n"
                f"Récapitulatif :\n{lines_text}\n\n"
                f"Vous pouvez suivre votre commande ici : {url}\n\n"
                "Vous recevrez un autre e-mail lorsque votre commande sera expédiée.\n\n"
                "L'équipe Atelier à bijoux" + footer_text(order_number)
            ),
            "html": (
                "<h1>Merci pour votre commande !</h1><p>Bonjour,</p>"
                f"<p>Nous avons bien reçu votre commande n°<strong>{order_number}</strong> "
                f"d'un montant total de {total:.2f}€.</p>"
                f"<h2>Récapitulatif :</h2><ul>{lines_html}</ul>"
                "<p>Vous pouvez suivre l'avancement de votre commande en cliquant sur ce lien : "
                f'<a href="{url}">{url}</a>.</p>'
                "<p>Vous recevrez un autre e-mail lorsque votre commande sera expédiée.</p>"
                "<p>L'équipe Atelier à bijoux</p>" + footer_html(order_number)
            ),
        }
