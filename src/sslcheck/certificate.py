from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import List, Optional, Sequence

from cryptography import x509
from cryptography.x509.oid import NameOID

from diagnostics.errors import ParseError

from .matching import check_domain_match
from .models import CertChainItem, SslCertInfo

logger = logging.getLogger(__name__)


def load_der(der: bytes) -> x509.Certificate:
    try:
        return x509.load_der_x509_certificate(bytes(der))
    except (ValueError, TypeError) as e:
        raise ParseError(f"certificate parse failed: {e}") from e


def _name(name: x509.Name) -> str:
    try:
        return name.rfc4514_string()
    except ValueError:
        # undecodable attribute values; fall back to the raw repr
        return str(name)


def common_name(cert: x509.Certificate) -> Optional[str]:
    try:
        attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    except ValueError:
        return None
    for attr in attrs:
        value = attr.value
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        return value
    return None


def dns_sans(cert: x509.Certificate) -> List[str]:
    """DNS-type subject alternative names only; other name types are ignored."""
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    except ValueError as e:
        logger.warning("unreadable SAN extension: %s", e)
        return []
    return list(ext.value.get_values_for_type(x509.DNSName))


def is_ca(cert: x509.Certificate) -> bool:
    try:
        return bool(cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca)
    except x509.ExtensionNotFound:
        return False
    except ValueError as e:
        logger.warning("unreadable basicConstraints extension: %s", e)
        return False


def chain_item(cert: x509.Certificate) -> CertChainItem:
    return CertChainItem(subject=_name(cert.subject), issuer=_name(cert.issuer), is_ca=is_ca(cert))


def build_chain(chain_der: Sequence[bytes]) -> List[CertChainItem]:
    """Leaf first; certificates that fail to parse are skipped."""
    out: List[CertChainItem] = []
    for i, der in enumerate(chain_der):
        try:
            out.append(chain_item(load_der(der)))
        except ParseError as e:
            logger.warning("skipping chain certificate #%d: %s", i, e)
    return out


def parse_certificate(
    query: str,
    leaf_der: bytes,
    chain_der: Optional[Sequence[bytes]] = None,
    now: Optional[datetime] = None,
) -> SslCertInfo:
    """
    Turn the peer's leaf certificate into SslCertInfo.

    query is the name the caller asked about; it drives is_valid. chain_der
    (leaf first) populates certificate_chain; without it the chain holds the
    leaf alone. Raises ParseError if the leaf itself cannot be decoded.
    """
    cert = load_der(leaf_der)
    now = now or datetime.now(timezone.utc)

    not_before = cert.not_valid_before_utc
    not_after = cert.not_valid_after_utc

    # floor division: an hour past expiry is already day -1
    days_remaining = (not_after - now).days
    is_expired = days_remaining < 0

    san = dns_sans(cert)
    cn = common_name(cert)

    cert_domain = cn or (san[0] if san else query)
    domain_matches = check_domain_match(query, cn, san)

    chain = build_chain(chain_der) if chain_der else []
    if not chain:
        chain = [chain_item(cert)]

    return SslCertInfo(
        domain=cert_domain,
        issuer=_name(cert.issuer),
        subject=_name(cert.subject),
        valid_from=format_datetime(not_before),
        valid_to=format_datetime(not_after),
        days_remaining=days_remaining,
        is_expired=is_expired,
        is_valid=(not is_expired) and domain_matches,
        san=san,
        serial_number=format(cert.serial_number, "X"),
        signature_algorithm=cert.signature_algorithm_oid.dotted_string,
        certificate_chain=chain,
    )
