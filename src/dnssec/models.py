from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ValidationStatus(str, Enum):
    """Presence-based verdict: what security material the zone advertises."""

    SECURE = "secure"
    INSECURE = "insecure"
    INDETERMINATE = "indeterminate"


class KeyRole(str, Enum):
    KSK = "KSK"
    ZSK = "ZSK"
    UNKNOWN = "Unknown"


@dataclass
class DnskeyRecord:
    flags: int
    protocol: int
    algorithm: int
    algorithm_name: str
    public_key: str  # base64
    key_tag: int
    key_type: str  # "KSK" | "ZSK" | "Unknown (flags=N)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flags": self.flags,
            "protocol": self.protocol,
            "algorithm": self.algorithm,
            "algorithmName": self.algorithm_name,
            "publicKey": self.public_key,
            "keyTag": self.key_tag,
            "keyType": self.key_type,
        }


@dataclass
class DsRecord:
    key_tag: int
    algorithm: int
    algorithm_name: str
    digest_type: int
    digest_type_name: str
    digest: str  # lowercase hex

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyTag": self.key_tag,
            "algorithm": self.algorithm,
            "algorithmName": self.algorithm_name,
            "digestType": self.digest_type,
            "digestTypeName": self.digest_type_name,
            "digest": self.digest,
        }


@dataclass
class RrsigRecord:
    type_covered: str
    algorithm: int
    algorithm_name: str
    labels: int
    original_ttl: int
    signature_expiration: str  # "YYYY-MM-DD HH:MM:SS UTC" or "Invalid (<raw>)"
    signature_inception: str
    key_tag: int
    signer_name: str
    signature: str  # base64

    def to_dict(self) -> Dict[str, Any]:
        return {
            "typeCovered": self.type_covered,
            "algorithm": self.algorithm,
            "algorithmName": self.algorithm_name,
            "labels": self.labels,
            "originalTtl": self.original_ttl,
            "signatureExpiration": self.signature_expiration,
            "signatureInception": self.signature_inception,
            "keyTag": self.key_tag,
            "signerName": self.signer_name,
            "signature": self.signature,
        }


@dataclass
class DnssecResult:
    """
    Outcome of one DNSSEC inspection.

    dnssec_enabled is true iff at least one of the three record lists is
    non-empty; finalize() keeps that invariant and derives the verdict.
    """

    domain: str
    nameserver: str
    dnssec_enabled: bool = False
    dnskey_records: List[DnskeyRecord] = field(default_factory=list)
    ds_records: List[DsRecord] = field(default_factory=list)
    rrsig_records: List[RrsigRecord] = field(default_factory=list)
    validation_status: ValidationStatus = ValidationStatus.INSECURE
    response_time_ms: int = 0
    error: Optional[str] = None

    def finalize(self) -> None:
        self.dnssec_enabled = bool(self.dnskey_records or self.ds_records or self.rrsig_records)
        self.validation_status = derive_validation_status(
            self.dnssec_enabled,
            has_dnskey=bool(self.dnskey_records),
            has_ds=bool(self.ds_records),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "dnssecEnabled": self.dnssec_enabled,
            "dnskeyRecords": [r.to_dict() for r in self.dnskey_records],
            "dsRecords": [r.to_dict() for r in self.ds_records],
            "rrsigRecords": [r.to_dict() for r in self.rrsig_records],
            "validationStatus": self.validation_status.value,
            "nameserver": self.nameserver,
            "responseTimeMs": self.response_time_ms,
            "error": self.error,
        }


def derive_validation_status(enabled: bool, has_dnskey: bool, has_ds: bool) -> ValidationStatus:
    # RRSIG-only zones land in INSECURE, same as unsigned ones.
    if not enabled:
        return ValidationStatus.INSECURE
    if has_dnskey and has_ds:
        return ValidationStatus.SECURE
    if has_dnskey or has_ds:
        return ValidationStatus.INDETERMINATE
    return ValidationStatus.INSECURE
