"""Tests for the identity verifier adapter."""

import pytest
from identity.verifier import get_verifier, reset_verifier, set_verifier
from identity.verifier.fake_adapter import FakeIdentityVerifier
from identity.verifier.port import InvalidToken, VerifiedIdentity


class TestFakeIdentityVerifier:
    def test_registered_token_verifies(self):
        verifier = FakeIdentityVerifier()
        verifier.register("tok-1", uid="user-1", email="camille@example.com")

        assert verifier.verify_token("tok-1") == VerifiedIdentity(uid="user-1", email="camille@example.com")

    def test_unknown_token(self):
        with pytest.raises(InvalidToken):
            FakeIdentityVerifier().verify_token("nope")

    def test_revoked_token(self):
        verifier = FakeIdentityVerifier()
        verifier.register("tok-1", uid="user-1")
        verifier.revoke("tok-1")
        with pytest.raises(InvalidToken):
            verifier.verify_token("tok-1")


class TestVerifierRegistry:
    def test_override_and_reset(self):
        custom = FakeIdentityVerifier()
        set_verifier(custom)
        assert get_verifier() is custom

        reset_verifier()
        assert get_verifier() is not custom
        reset_verifier()
