"""Email channel port — abstract interface for mail delivery."""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    """Abstract interface for email delivery adapters."""

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        """Deliver one message to one recipient.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
