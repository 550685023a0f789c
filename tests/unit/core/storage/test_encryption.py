"""Tests for the FieldEncryptor (Fernet-based free-text encryption)."""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from companion.core.storage.encryption import EncryptionError, FieldEncryptor


@pytest.fixture
def key() -> str:
    return Fernet.generate_key().decode()


@pytest.fixture
def encryptor(key: str) -> FieldEncryptor:
    return FieldEncryptor(key)


class TestRoundTrip:
    def test_text_round_trip(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt("felt queasy after lunch")
        assert token != "felt queasy after lunch"
        assert encryptor.decrypt(token) == "felt queasy after lunch"

    def test_unicode_round_trip(self, encryptor: FieldEncryptor):
        assert encryptor.decrypt(encryptor.encrypt("Soupe à l'oignon · 250 kcal")) == (
            "Soupe à l'oignon · 250 kcal"
        )

    def test_none_passes_through(self, encryptor: FieldEncryptor):
        assert encryptor.encrypt(None) is None
        assert encryptor.decrypt(None) is None

    def test_empty_string_is_encrypted(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt("")
        assert token
        assert encryptor.decrypt(token) == ""

    def test_tokens_are_not_deterministic(self, encryptor: FieldEncryptor):
        assert encryptor.encrypt("same") != encryptor.encrypt("same")


class TestKeys:
    def test_empty_key_rejected(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            FieldEncryptor("   ")

    def test_invalid_key_rejected(self):
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            FieldEncryptor("not-a-fernet-key")

    def test_wrong_key_cannot_decrypt(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt("secret")
        other = FieldEncryptor(FieldEncryptor.generate_key())
        with pytest.raises(EncryptionError, match="Decryption failed"):
            other.decrypt(token)

    def test_garbage_token_rejected(self, encryptor: FieldEncryptor):
        with pytest.raises(EncryptionError):
            encryptor.decrypt("garbage")

    def test_generate_key_is_usable(self):
        key = FieldEncryptor.generate_key()
        assert FieldEncryptor(key).decrypt(FieldEncryptor(key).encrypt("x")) == "x"
