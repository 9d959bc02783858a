"""Shared fakes and certificate builders for the test suite."""

from __future__ import annotations

import datetime as dt
import ipaddress
import threading
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import dns.exception
import dns.resolver
import dns.rrset
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from dnssec.resolver import ResolverSelection

FIXED_NOW = dt.datetime(2026, 1, 15, 12, 0, 0, tzinfo=dt.timezone.utc)


# ----------------------------
# DNS fakes
# ----------------------------
class FakeResolver:
    """
    Stands in for dns.asyncresolver.Resolver.

    answers maps rdtype text ("DNSKEY", "DS", "SOA") to either an answer-like
    object (with .rrset and .response.answer) or an exception to raise.
    Missing rdtypes raise NoAnswer, like an unsigned zone.
    """

    def __init__(self, answers: Optional[Dict[str, Any]] = None):
        self.answers = answers or {}
        self.calls: List[Tuple[str, str]] = []

    async def resolve(self, qname: str, rdtype: str):
        self.calls.append((qname, rdtype))
        ans = self.answers.get(rdtype)
        if ans is None:
            raise dns.resolver.NoAnswer()
        if isinstance(ans, BaseException):
            raise ans
        return ans


def make_answer(*rrsets) -> SimpleNamespace:
    """Answer whose .rrset is the first rrset and whose response carries them all."""
    return SimpleNamespace(rrset=rrsets[0] if rrsets else None, response=SimpleNamespace(answer=list(rrsets)))


def rrset(rdtype: str, *rdatas: str, name: str = "example.com.") -> dns.rrset.RRset:
    return dns.rrset.from_text(name, 3600, "IN", rdtype, *rdatas)


@pytest.fixture
def resolver_factory() -> Callable[..., Callable[[Optional[str]], ResolverSelection]]:
    """Build a DNSSECInspector resolver_factory around a FakeResolver."""

    def build(answers: Optional[Dict[str, Any]] = None, fake: Optional[FakeResolver] = None):
        resolver = fake or FakeResolver(answers)

        def factory(nameserver: Optional[str]) -> ResolverSelection:
            return ResolverSelection(resolver=resolver, nameserver=nameserver or "192.0.2.53")

        factory.resolver = resolver  # type: ignore[attr-defined]
        return factory

    return build


# ----------------------------
# TLS fakes
# ----------------------------
class FakeSocket:
    def __init__(self, reply: bytes = b""):
        self.reply = reply
        self.sent: List[bytes] = []
        self.closed = False
        self.timeout: Optional[float] = None
        self.aborted = threading.Event()

    def settimeout(self, value: float) -> None:
        self.timeout = value

    def sendall(self, data: bytes) -> None:
        self.sent.append(data)

    def recv(self, n: int) -> bytes:
        return self.reply[:n]

    def close(self) -> None:
        self.closed = True

    def dup(self) -> "FakeSocket":
        return self

    def shutdown(self, how: int) -> None:
        self.aborted.set()


@dataclass
class FakeBackend:
    connect_error: Optional[BaseException] = None
    handshake_error: Optional[BaseException] = None
    chain: Sequence[bytes] = ()
    http_reply: bytes = b""
    tls_reply: bytes = b"HTTP/1.1 200 OK\r\n\r\n"
    plain_sockets: List[FakeSocket] = field(default_factory=list)
    tls_sockets: List[FakeSocket] = field(default_factory=list)

    def connect(self, host: str, port: int, timeout: float) -> FakeSocket:
        if self.connect_error is not None:
            raise self.connect_error
        sock = FakeSocket(self.http_reply)
        sock.settimeout(timeout)
        self.plain_sockets.append(sock)
        return sock

    def handshake(self, sock: FakeSocket, server_hostname: str) -> FakeSocket:
        if self.handshake_error is not None:
            raise self.handshake_error
        tls = FakeSocket(self.tls_reply)
        self.tls_sockets.append(tls)
        return tls

    def peer_chain(self, tls_sock: FakeSocket) -> List[bytes]:
        return list(self.chain)


# ----------------------------
# Certificates
# ----------------------------
@dataclass
class Issued:
    cert: x509.Certificate
    key: ec.EllipticCurvePrivateKey

    @property
    def der(self) -> bytes:
        return self.cert.public_bytes(serialization.Encoding.DER)

    def pem(self) -> bytes:
        return self.cert.public_bytes(serialization.Encoding.PEM)

    def key_pem(self) -> bytes:
        return self.key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )


def issue_cert(
    cn: Optional[str] = "example.com",
    san: Sequence[str] = ("example.com", "*.example.com"),
    not_before: Optional[dt.datetime] = None,
    not_after: Optional[dt.datetime] = None,
    ca: bool = False,
    issuer: Optional[Issued] = None,
    serial: int = 0xABCDEF12,
    with_ip_san: bool = True,
) -> Issued:
    key = ec.generate_private_key(ec.SECP256R1())
    attrs = [x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Example Org")]
    if cn:
        attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, cn))
    subject = x509.Name(attrs)

    not_before = not_before or (FIXED_NOW - dt.timedelta(days=30))
    not_after = not_after or (FIXED_NOW + dt.timedelta(days=60))

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer.cert.subject if issuer else subject)
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    )

    names: List[x509.GeneralName] = [x509.DNSName(s) for s in san]
    if with_ip_san:
        names.append(x509.IPAddress(ipaddress.ip_address("192.0.2.1")))
    if names:
        builder = builder.add_extension(x509.SubjectAlternativeName(names), critical=False)

    signer = issuer.key if issuer else key
    return Issued(cert=builder.sign(signer, hashes.SHA256()), key=key)


@pytest.fixture
def fixed_clock() -> Callable[[], dt.datetime]:
    return lambda: FIXED_NOW
