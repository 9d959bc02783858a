from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from diagnostics.errors import DecryptionError, EncryptionError

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000
SALT_LENGTH = 16
NONCE_LENGTH = 12
KEY_LENGTH = 32  # AES-256


def derive_key(password: str, salt: bytes) -> bytes:
    """PBKDF2-HMAC-SHA256 over the UTF-8 password; returns a 32-byte key."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=bytes(salt),
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def encrypt(plaintext: bytes, password: str) -> Tuple[str, str, str]:
    """
    Encrypt plaintext under a key derived from password.

    Returns (salt_b64, nonce_b64, ciphertext_b64). Salt and nonce are drawn
    from os.urandom on every call, so every call gets its own key and a
    nonce is never reused under it.
    """
    salt = os.urandom(SALT_LENGTH)
    nonce = os.urandom(NONCE_LENGTH)

    try:
        cipher = AESGCM(derive_key(password, salt))
        ciphertext = cipher.encrypt(nonce, bytes(plaintext), None)
    except (ValueError, TypeError) as e:
        raise EncryptionError(f"Encryption failed: {type(e).__name__}: {e}") from e

    return _b64(salt), _b64(nonce), _b64(ciphertext)


def decrypt(ciphertext_b64: str, password: str, salt_b64: str, nonce_b64: str) -> bytes:
    """
    Reverse of encrypt().

    Any failure (bad base64, wrong password, tampered bytes) raises the same
    DecryptionError; nothing about the cause is exposed.
    """
    try:
        salt = base64.b64decode(salt_b64, validate=True)
        nonce = base64.b64decode(nonce_b64, validate=True)
        ciphertext = base64.b64decode(ciphertext_b64, validate=True)

        cipher = AESGCM(derive_key(password, salt))
        return cipher.decrypt(nonce, ciphertext, None)
    except (InvalidTag, binascii.Error, ValueError, TypeError):
        logger.debug("credential decryption rejected")
        raise DecryptionError() from None
