"""
Tests for encrypted API key storage.
"""
import base64

import pytest

from weatherwidget.core.models import get_option, update_option
from weatherwidget.weather.errors import (
    ConfigurationError,
    DecryptionError,
    EmptyInputError,
    NotConfiguredError,
)
from weatherwidget.weather.vault import API_KEY_OPTION, PLACEHOLDER, AesCbcVault

from conftest import AUTH_KEY, NONCE_KEY


class TestAesCbcVault:

    def test_round_trip(self, vault):
        vault.store("0123456789abcdef0123456789abcdef")
        assert vault.retrieve() == "0123456789abcdef0123456789abcdef"

    def test_second_instance_with_same_secrets_decrypts(self, vault):
        vault.store("my-api-key")
        assert AesCbcVault(AUTH_KEY, NONCE_KEY).retrieve() == "my-api-key"

    def test_plaintext_is_not_persisted(self, vault):
        vault.store("my-api-key")
        stored = get_option(API_KEY_OPTION)
        assert stored
        assert "my-api-key" not in stored
        # Stored form is base64 text
        base64.b64decode(stored, validate=True)

    def test_same_key_same_ciphertext(self, vault):
        """Fixed IV: encryption is deterministic under unchanged secrets."""
        vault.store("my-api-key")
        first = get_option(API_KEY_OPTION)
        vault.store("my-api-key")
        assert get_option(API_KEY_OPTION) == first

    def test_store_replaces_previous_value(self, vault):
        vault.store("old-key")
        vault.store("new-key")
        assert vault.retrieve() == "new-key"

    def test_store_trims_whitespace(self, vault):
        vault.store("  padded-key \n")
        assert vault.retrieve() == "padded-key"

    @pytest.mark.parametrize("raw", ["", "   ", "\t\n", None])
    def test_blank_input_rejected(self, vault, raw):
        with pytest.raises(EmptyInputError):
            vault.store(raw)
        assert get_option(API_KEY_OPTION) is None

    def test_blank_input_keeps_existing_key(self, vault):
        vault.store("keep-me")
        with pytest.raises(EmptyInputError):
            vault.store("  ")
        assert vault.retrieve() == "keep-me"

    def test_retrieve_without_key(self, vault):
        with pytest.raises(NotConfiguredError):
            vault.retrieve()

    def test_rotated_secrets_fail_to_decrypt(self, vault):
        vault.store("my-api-key")
        rotated = AesCbcVault("a-completely-different-auth-key", "and-another-nonce")
        with pytest.raises(DecryptionError):
            rotated.retrieve()

    def test_corrupted_storage(self, vault):
        update_option(API_KEY_OPTION, "not base64 at all!!")
        with pytest.raises(DecryptionError):
            vault.retrieve()

    def test_truncated_ciphertext(self, vault):
        inner = base64.b64encode(b"0123456789")  # not a whole AES block
        update_option(API_KEY_OPTION, base64.b64encode(inner).decode("ascii"))
        with pytest.raises(DecryptionError):
            vault.retrieve()

    def test_placeholder_masks_key(self, vault):
        assert vault.placeholder() == ""
        assert not vault.has_credential()
        vault.store("my-api-key")
        assert vault.has_credential()
        assert vault.placeholder() == PLACEHOLDER
        assert "my-api-key" not in vault.placeholder()

    @pytest.mark.parametrize("auth_key,nonce_key", [("", "nonce"), ("auth", ""), ("", "")])
    def test_missing_secrets(self, db, auth_key, nonce_key):
        with pytest.raises(ConfigurationError):
            AesCbcVault(auth_key, nonce_key)

    def test_long_passphrase_is_truncated_to_key_size(self, db):
        long_vault = AesCbcVault("a" * 40, "b" * 40)
        long_vault.store("my-api-key")
        assert long_vault.retrieve() == "my-api-key"
