"""
Password-based authenticated encryption for stored account credentials.

PBKDF2-HMAC-SHA256 (100k iterations) stretches the password with a fresh
16-byte salt; AES-256-GCM with a fresh 12-byte nonce seals the payload.
"""

from .cipher import (
    KEY_LENGTH,
    NONCE_LENGTH,
    PBKDF2_ITERATIONS,
    SALT_LENGTH,
    decrypt,
    derive_key,
    encrypt,
)
from .payload import EncryptedPayload, open_json, seal_json

__all__ = [
    "KEY_LENGTH",
    "NONCE_LENGTH",
    "PBKDF2_ITERATIONS",
    "SALT_LENGTH",
    "EncryptedPayload",
    "decrypt",
    "derive_key",
    "encrypt",
    "open_json",
    "seal_json",
]
