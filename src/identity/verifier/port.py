"""Identity verification port — validates bearer tokens issued elsewhere.

The engine never issues sessions. It only trusts an identity that was
verified for the current request, e.g. before debiting loyalty points.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class VerifiedIdentity:
    uid: str
    email: str | None = None
    name: str | None = None


class InvalidToken(Exception):
    """The presented token could not be verified."""


class IdentityVerifier(ABC):
    """Abstract identity verification interface."""

    @abstractmethod
    def verify_token(self, token: str) -> VerifiedIdentity:
        """Verify ``token`` and return the identity it was issued to.

        Raises:
            InvalidToken: if the token is unknown, expired or revoked.
        """
        ...
