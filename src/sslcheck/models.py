from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ConnectionStatus(str, Enum):
    HTTPS = "https"
    HTTP = "http"
    FAILED = "failed"


@dataclass
class CertChainItem:
    subject: str
    issuer: str
    is_ca: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"subject": self.subject, "issuer": self.issuer, "isCa": self.is_ca}


@dataclass
class SslCertInfo:
    """
    Parsed leaf certificate.

    domain is the certificate's own identity (CN, else first SAN, else the
    queried name); is_valid means not expired AND the queried name matches.
    """

    domain: str
    issuer: str
    subject: str
    valid_from: str
    valid_to: str
    days_remaining: int
    is_expired: bool
    is_valid: bool
    san: List[str] = field(default_factory=list)
    serial_number: str = ""
    signature_algorithm: str = ""
    certificate_chain: List[CertChainItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "issuer": self.issuer,
            "subject": self.subject,
            "validFrom": self.valid_from,
            "validTo": self.valid_to,
            "daysRemaining": self.days_remaining,
            "isExpired": self.is_expired,
            "isValid": self.is_valid,
            "san": list(self.san),
            "serialNumber": self.serial_number,
            "signatureAlgorithm": self.signature_algorithm,
            "certificateChain": [c.to_dict() for c in self.certificate_chain],
        }


@dataclass
class SslCheckResult:
    domain: str
    port: int
    connection_status: ConnectionStatus
    cert_info: Optional[SslCertInfo] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "port": self.port,
            "connectionStatus": self.connection_status.value,
            "certInfo": self.cert_info.to_dict() if self.cert_info else None,
            "error": self.error,
        }
