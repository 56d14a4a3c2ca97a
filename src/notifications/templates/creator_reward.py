"""Creator reward template — a creator's design was bought."""


class CreatorRewardTemplate:
    mail_type = "creator_reward"

    @staticmethod
    def render(context: dict) -> dict:
        creator_name = context.get("creator_name", "")
        creation_name = context.get("creation_name", "")
        points = context.get("points", 0)
        return {
            "subject": "Votre création a été vendue ! Vous avez gagné des points.",
            "body": (
                f"Bonjour {creator_name},\n\n"
                f'Félicitations ! Votre création "{creation_name}" a été achetée.\n\n'
                f"Vous venez de gagner {points} points de récompense.\n\n"
                "Continuez à créer !"
            ),
            "html": (
                f"<h1>Félicitations !</h1><p>Bonjour {creator_name},</p>"
                f"<p>Excellente nouvelle ! Votre création, <strong>\"{creation_name}\"</strong>, "
                "a été achetée par un autre utilisateur.</p>"
                "<p>Pour vous récompenser, nous venons de créditer votre compte de "
                f"<strong>{points} points</strong>.</p>"
                "<p>Merci pour votre contribution à la communauté !</p>"
            ),
        }
