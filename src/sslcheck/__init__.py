"""
TLS certificate inspection.

Public entrypoint: SSLInspector. The TLS implementation is reached only
through the TLSBackend capability (one production implementation,
StdlibTLSBackend), so tests can substitute their own.
"""

from .backend import StdlibTLSBackend, TLSBackend
from .certificate import parse_certificate
from .inspector import ConnectionGuard, SSLInspector
from .matching import check_domain_match, matches_domain
from .models import CertChainItem, ConnectionStatus, SslCertInfo, SslCheckResult

__all__ = [
    "CertChainItem",
    "ConnectionGuard",
    "ConnectionStatus",
    "SSLInspector",
    "SslCertInfo",
    "SslCheckResult",
    "StdlibTLSBackend",
    "TLSBackend",
    "check_domain_match",
    "matches_domain",
    "parse_certificate",
]
