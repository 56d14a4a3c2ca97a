"""Fake identity verifier — tokens are registered up front by tests."""

from identity.verifier.port import IdentityVerifier, InvalidToken, VerifiedIdentity


class FakeIdentityVerifier(IdentityVerifier):
    def __init__(self):
        self._tokens: dict[str, VerifiedIdentity] = {}

    def register(self, token: str, uid: str, email: str | None = None, name: str | None = None):
        self._tokens[token] = VerifiedIdentity(uid=uid, email=email, name=name)

    def revoke(self, token: str):
        self._tokens.pop(token, None)

    def verify_token(self, token: str) -> VerifiedIdentity:
        identity = self._tokens.get(token)
        if identity is None:
            raise InvalidToken("Unknown or revoked token")
        return identity
