"""AES-256-GCM vault for upstream credentials and device PINs.

Sealed values are ``b64(nonce).b64(tag).b64(ciphertext)`` so they can be stored
in a plain string column. A fresh 96-bit nonce is drawn for every call.
"""

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from streamgate.errors import VaultAuthenticationFailed, VaultKeyError, VaultMalformed

logger = logging.getLogger(__name__)

KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16


def _b64decode(part: str) -> bytes:
    try:
        raw = base64.b64decode(part, validate=True)
    except (binascii.Error, ValueError):
        raise VaultMalformed("Invalid encrypted payload encoding")
    # Unused padding bits must be zero so every sealed byte is significant.
    if base64.b64encode(raw).decode("ascii") != part:
        raise VaultMalformed("Non-canonical encrypted payload encoding")
    return raw


class CredentialVault:
    def __init__(self, key: bytes):
        if len(key) != KEY_BYTES:
            raise VaultKeyError(
                f"Invalid vault key: expected {KEY_BYTES} bytes, got {len(key)}"
            )
        self._aead = AESGCM(key)

    @classmethod
    def from_base64(cls, value: str) -> "CredentialVault":
        value = (value or "").strip()
        if not value:
            raise VaultKeyError("Missing vault key (base64-encoded 32-byte key)")
        try:
            key = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise VaultKeyError("Vault key is not valid base64")
        return cls(key)

    @classmethod
    def from_settings(cls, settings) -> "CredentialVault":
        return cls.from_base64(settings.vault_key)

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, str(plaintext).encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
        return ".".join(
            base64.b64encode(p).decode("ascii") for p in (nonce, tag, ciphertext)
        )

    def decrypt(self, sealed: str) -> str:
        parts = str(sealed).split(".")
        # The ciphertext part is empty only for an empty plaintext.
        if len(parts) != 3 or not parts[0] or not parts[1]:
            raise VaultMalformed("Invalid encrypted payload format")

        nonce, tag, ciphertext = (_b64decode(p) for p in parts)
        if len(nonce) != NONCE_BYTES or len(tag) != TAG_BYTES:
            raise VaultMalformed("Invalid encrypted payload format")

        try:
            plain = self._aead.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag:
            logger.warning("Vault payload failed authentication")
            raise VaultAuthenticationFailed("Encrypted payload failed authentication")
        return plain.decode("utf-8")
