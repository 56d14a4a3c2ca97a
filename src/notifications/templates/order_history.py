"""Order history template — a customer asked to be mailed their orders."""

from notifications.templates.footer import footer_html, footer_text, tracking_url


class OrderHistoryTemplate:
    mail_type = "order_history"

    @staticmethod
    def render(context: dict) -> dict:
        email = context["email"]
        locale = context.get("locale")
        orders = context.get("orders", [])

        if not orders:
            notice = (
                "Vous avez récemment demandé à retrouver vos commandes. Aucune commande "
                f"n'est associée à cette adresse e-mail ({email})."
            )
            advice = (
                "Si vous pensez qu'il s'agit d'une erreur, veuillez vérifier l'adresse "
                "e-mail ou contacter notre support."
            )
            return {
                "subject": "Vos commandes chez Atelier à bijoux",
                "body": f"Bonjour,\n\n{notice}\n\n{advice}" + footer_text(),
                "html": (
                    f"<h1>Vos commandes Atelier à bijoux</h1><p>Bonjour,</p><p>{notice}</p><p>{advice}</p>"
                    + footer_html()
                ),
            }

        lines_text = "\n".join(
            f"- Commande {o['order_number']} (du {o['created_on']}) - Statut : {o['status']}" for o in orders
        )
        lines_html = "".join(
            f"<li>Commande <strong>{o['order_number']}</strong> (du {o['created_on']}) - "
            f"Statut : {o['status']} - "
            f'<a href="{tracking_url(o["order_number"], locale)}">Suivre cette commande</a></li>'
            for o in orders
        )
        return {
            "subject": "Vos commandes chez Atelier à bijoux",
            "body": (
                "Bonjour,\n\n"
                "Voici la liste de vos commandes récentes passées avec cette adresse e-mail :\n\n"
                f"{lines_text}\n\n"
                "Vous pouvez cliquer sur le lien de chaque commande pour voir son statut.\n\n"
                "L'équipe Atelier à bijoux" + footer_text()
            ),
            "html": (
                "<h1>Vos commandes Atelier à bijoux</h1><p>Bonjour,</p>"
                "<p>Voici la liste de vos commandes récentes passées avec cette adresse e-mail :</p>"
                f"<ul>{lines_html}</ul><p>L'équipe Atelier à bijoux</p>" + footer_html()
            ),
        }
