from __future__ import annotations

from typing import Dict

from .models import KeyRole

# DNSSEC algorithm numbers (RFC 8624 naming)
ALGORITHM_NAMES: Dict[int, str] = {
    1: "RSA/MD5 (deprecated)",
    3: "DSA/SHA-1 (deprecated)",
    5: "RSA/SHA-1",
    6: "DSA-NSEC3-SHA1 (deprecated)",
    7: "RSASHA1-NSEC3-SHA1",
    8: "RSA/SHA-256",
    10: "RSA/SHA-512",
    12: "GOST R 34.10-2001",
    13: "ECDSAP256SHA256",
    14: "ECDSAP384SHA384",
    15: "Ed25519",
    16: "Ed448",
}

# DS digest types (RFC 4034 registry)
DIGEST_TYPE_NAMES: Dict[int, str] = {
    1: "SHA-1",
    2: "SHA-256",
    3: "GOST R 34.11-94",
    4: "SHA-384",
}

# DNSKEY flag bits
FLAG_ZONE = 0x0100
FLAG_SEP = 0x0001


def algorithm_name(code: int) -> str:
    return ALGORITHM_NAMES.get(int(code), f"Unknown ({int(code)})")


def digest_type_name(code: int) -> str:
    return DIGEST_TYPE_NAMES.get(int(code), f"Unknown ({int(code)})")


def key_type(flags: int) -> str:
    """KSK when the Secure-Entry-Point bit is set, ZSK for a plain zone key."""
    if flags & FLAG_SEP:
        return KeyRole.KSK.value
    if flags & FLAG_ZONE:
        return KeyRole.ZSK.value
    return f"{KeyRole.UNKNOWN.value} (flags={flags})"
