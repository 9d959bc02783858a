from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import credentials
from dnssec import DNSSECInspector, DnssecResult
from sslcheck import SSLInspector, SslCheckResult

from .config import Settings
from .targets import require_domain, require_host, require_nameserver, require_port

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass
class ApiResponse:
    """{success, data, error} envelope returned by the HTTP surface."""

    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "ApiResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str) -> "ApiResponse":
        return cls(success=False, error=message)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            out["data"] = _jsonable(self.data)
        if self.error is not None:
            out["error"] = self.error
        return out


class ToolboxService:
    """
    Diagnostics facade used by the HTTP app and the CLI.

    Validates caller input, then hands off to the inspectors. Each call is
    independent; nothing is shared between inspections.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        dnssec_inspector: Optional[DNSSECInspector] = None,
        ssl_inspector: Optional[SSLInspector] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.dnssec = dnssec_inspector or DNSSECInspector(
            timeout=self.settings.dns_timeout,
            lifetime=self.settings.dns_lifetime,
        )
        self.ssl = ssl_inspector or SSLInspector(
            connect_timeout=self.settings.tls_connect_timeout,
            http_probe_timeout=self.settings.http_probe_timeout,
        )

    async def dnssec_check(self, domain: str, nameserver: Optional[str] = None) -> DnssecResult:
        zone = require_domain(domain)
        return await self.dnssec.inspect(zone, require_nameserver(nameserver))

    async def ssl_check(self, domain: str, port: Optional[int] = None) -> SslCheckResult:
        host = require_host(domain)
        return await self.ssl.inspect(host, require_port(port))

    async def inspect_many(
        self,
        domains: Sequence[str],
        kind: str = "dnssec",
        *,
        nameserver: Optional[str] = None,
        port: Optional[int] = None,
    ) -> List[Union[DnssecResult, SslCheckResult]]:
        if kind == "dnssec":
            jobs = [self.dnssec_check(d, nameserver) for d in domains]
        elif kind == "ssl":
            jobs = [self.ssl_check(d, port) for d in domains]
        else:
            raise ValueError(f"unknown inspection kind: {kind}")
        return list(await asyncio.gather(*jobs))


# -------------------------
# Entry points
# -------------------------

async def dnssec_inspect(domain: str, nameserver: Optional[str] = None) -> DnssecResult:
    return await ToolboxService().dnssec_check(domain, nameserver)


async def tls_inspect(domain: str, port: Optional[int] = 443) -> SslCheckResult:
    return await ToolboxService().ssl_check(domain, port)


def credential_encrypt(plaintext: bytes, password: str) -> Tuple[str, str, str]:
    return credentials.encrypt(plaintext, password)


def credential_decrypt(ciphertext_b64: str, password: str, salt_b64: str, nonce_b64: str) -> bytes:
    return credentials.decrypt(ciphertext_b64, password, salt_b64, nonce_b64)
