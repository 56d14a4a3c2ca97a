"""Identity verifier registry — FakeIdentityVerifier unless one is injected."""

from identity.verifier.port import IdentityVerifier

_verifier: IdentityVerifier | None = None


def get_verifier() -> IdentityVerifier:
    global _verifier
    if _verifier is None:
        from identity.verifier.fake_adapter import FakeIdentityVerifier

        _verifier = FakeIdentityVerifier()
    return _verifier


def set_verifier(verifier: IdentityVerifier) -> None:
    global _verifier
    _verifier = verifier


def reset_verifier():
    global _verifier
    _verifier = None
