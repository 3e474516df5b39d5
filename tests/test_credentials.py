"""Tests for the credential digest schemes."""

import hashlib

import pytest

from budget_tracker.config import AppConfig
from budget_tracker.services.credentials import (
    Pbkdf2CredentialVerifier,
    Sha256DigestVerifier,
    create_credential_verifier,
)


class TestSha256DigestVerifier:
    """The unsalted mock digest."""

    def test_digest_is_hex_sha256(self):
        verifier = Sha256DigestVerifier()
        assert verifier.digest("secret1") == hashlib.sha256(b"secret1").hexdigest()

    def test_verify(self):
        verifier = Sha256DigestVerifier()
        stored = verifier.digest("secret1")
        assert verifier.verify("secret1", stored)
        assert not verifier.verify("secret2", stored)


class TestPbkdf2CredentialVerifier:
    """Salted PBKDF2-HMAC-SHA256."""

    @pytest.fixture
    def verifier(self, logger):
        return Pbkdf2CredentialVerifier(iterations=1000, logger=logger)

    def test_digest_format(self, verifier):
        prefix, iterations, salt, derived = verifier.digest("secret1").split("$")
        assert prefix == "pbkdf2_sha256"
        assert iterations == "1000"
        assert len(bytes.fromhex(salt)) == 16
        assert len(bytes.fromhex(derived)) == 32

    def test_digest_is_salted(self, verifier):
        assert verifier.digest("secret1") != verifier.digest("secret1")

    def test_plaintext_never_in_digest(self, verifier):
        assert "secret1" not in verifier.digest("secret1")

    def test_verify(self, verifier):
        stored = verifier.digest("secret1")
        assert verifier.verify("secret1", stored)
        assert not verifier.verify("Secret1", stored)

    def test_verify_uses_stored_iteration_count(self, verifier, logger):
        stored = verifier.digest("secret1")
        stronger = Pbkdf2CredentialVerifier(iterations=2000, logger=logger)
        assert stronger.verify("secret1", stored)

    @pytest.mark.parametrize(
        "stored",
        [
            "",
            "not-a-digest",
            hashlib.sha256(b"secret1").hexdigest(),
            "md5$1000$00$00",
            "pbkdf2_sha256$many$00$00",
            "pbkdf2_sha256$1000$zz$00",
        ],
    )
    def test_malformed_digest_never_verifies(self, verifier, stored):
        assert verifier.verify("secret1", stored) is False


class TestFactory:
    """Scheme selection from configuration."""

    def test_default_is_pbkdf2(self, config, logger):
        assert create_credential_verifier(config, logger).scheme == "pbkdf2"

    def test_sha256_scheme(self, logger):
        config = AppConfig(CREDENTIAL_SCHEME="sha256")
        assert isinstance(create_credential_verifier(config, logger), Sha256DigestVerifier)
