from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping

from diagnostics.errors import DecryptionError

from .cipher import decrypt, encrypt


@dataclass(frozen=True)
class EncryptedPayload:
    """The three base64 strings the persistence layer stores for a secret."""

    salt: str
    nonce: str
    ciphertext: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EncryptedPayload":
        try:
            return cls(
                salt=str(data["salt"]),
                nonce=str(data["nonce"]),
                ciphertext=str(data["ciphertext"]),
            )
        except (KeyError, TypeError):
            raise DecryptionError() from None

    @classmethod
    def seal(cls, plaintext: bytes, password: str) -> "EncryptedPayload":
        salt, nonce, ciphertext = encrypt(plaintext, password)
        return cls(salt=salt, nonce=nonce, ciphertext=ciphertext)

    def open(self, password: str) -> bytes:
        return decrypt(self.ciphertext, password, self.salt, self.nonce)


# Account credentials travel as JSON documents (provider -> {key: secret}).
def seal_json(obj: Any, password: str) -> EncryptedPayload:
    raw = json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return EncryptedPayload.seal(raw, password)


def open_json(payload: EncryptedPayload, password: str) -> Any:
    raw = payload.open(password)
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise DecryptionError() from None
