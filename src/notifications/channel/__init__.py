"""Mail channel registry.

Provides get_email_channel() / set_email_channel() / reset_channels().
Uses the recording fake by default (MAIL_CHANNEL=fake); production delivery
is an external mail service reading the ``mail`` collection, so only the
dispatcher used in development and tests goes through this channel.
"""

import os

from notifications.channel.email_port import EmailPort

_email_channel: EmailPort | None = None


def get_email_channel() -> EmailPort:
    """Return the configured email channel (singleton)."""
    global _email_channel
    if _email_channel is None:
        adapter = os.environ.get("MAIL_CHANNEL", "fake")
        if adapter == "fake":
            from notifications.channel.fake_email import FakeEmailAdapter

            _email_channel = FakeEmailAdapter()
        else:
            raise ValueError(f"Unknown mail channel: {adapter}")
    return _email_channel


def set_email_channel(channel: EmailPort) -> None:
    global _email_channel
    _email_channel = channel


def reset_channels() -> None:
    """Reset the channel singleton (useful for testing)."""
    global _email_channel
    _email_channel = None
