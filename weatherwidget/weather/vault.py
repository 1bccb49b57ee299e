"""
Encrypted storage of the OpenWeather API key.

AesCbcVault derives everything from two process-wide secrets: the passphrase is
auth_key + nonce_key, the AES-256 key is that passphrase fitted to 32 bytes and the
IV is the first 16 bytes of its SHA-256 digest. The IV is therefore fixed, so equal
keys encrypt to equal ciphertexts. Callers only see the CredentialVault interface.
"""
import base64
import binascii
import hashlib
import logging
from abc import ABC, abstractmethod

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from weatherwidget.core.models import OptionStore
from weatherwidget.weather.errors import (
    ConfigurationError,
    DecryptionError,
    EmptyInputError,
    NotConfiguredError,
)

logger = logging.getLogger(__name__)

API_KEY_OPTION = "weather_encrypted_api_key"
PLACEHOLDER = "•" * 16

KEY_SIZE = 32
BLOCK_SIZE = 16


class CredentialVault(ABC):
    """Stores one secret and hands it back only to the fetch path."""

    @abstractmethod
    def store(self, raw_credential: str) -> None:
        """Encrypt and persist, replacing any previous value. Raises EmptyInputError for blank input."""

    @abstractmethod
    def retrieve(self) -> str:
        """Return the plaintext. Raises NotConfiguredError or DecryptionError."""

    @abstractmethod
    def has_credential(self) -> bool:
        pass

    def placeholder(self) -> str:
        """Mask shown in place of a stored key; the key itself is never displayed."""
        return PLACEHOLDER if self.has_credential() else ""


class AesCbcVault(CredentialVault):
    def __init__(self, auth_key: str, nonce_key: str, options=None):
        if not auth_key or not nonce_key:
            raise ConfigurationError("Encryption secrets are not configured (secrets.auth_key / secrets.nonce_key).")
        passphrase = f"{auth_key}{nonce_key}".encode("utf-8")
        self._key = passphrase[:KEY_SIZE].ljust(KEY_SIZE, b"\0")
        self._iv = hashlib.sha256(passphrase).digest()[:BLOCK_SIZE]
        self.options = options or OptionStore()

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(self._iv))

    def _encrypt(self, plaintext: str) -> str:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        data = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = self._cipher().encryptor()
        ciphertext = encryptor.update(data) + encryptor.finalize()
        # Encoded twice: the inner layer is the cipher's text form, the outer is the storage form
        inner = base64.b64encode(ciphertext)
        return base64.b64encode(inner).decode("ascii")

    def _decrypt(self, stored: str) -> str:
        try:
            inner = base64.b64decode(stored, validate=True)
            ciphertext = base64.b64decode(inner, validate=True)
            decryptor = self._cipher().decryptor()
            data = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(data) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (binascii.Error, ValueError) as e:
            # UnicodeDecodeError is a ValueError
            raise DecryptionError() from e

    def store(self, raw_credential: str) -> None:
        raw_credential = (raw_credential or "").strip()
        if not raw_credential:
            raise EmptyInputError()
        self.options.set(API_KEY_OPTION, self._encrypt(raw_credential))
        logger.info("API key encrypted and stored")

    def retrieve(self) -> str:
        stored = self.options.get(API_KEY_OPTION, "")
        if not stored:
            raise NotConfiguredError()
        plaintext = self._decrypt(stored)
        if not plaintext:
            raise DecryptionError()
        return plaintext

    def has_credential(self) -> bool:
        return bool(self.options.get(API_KEY_OPTION, ""))
