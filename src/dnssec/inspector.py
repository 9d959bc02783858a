from __future__ import annotations

import asyncio
import base64
import logging
import struct
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional

import dns.dnssec
import dns.exception
import dns.name
import dns.rdatatype

from diagnostics.errors import ParseError, ValidationError

from .algorithms import algorithm_name, digest_type_name, key_type
from .models import DnskeyRecord, DnssecResult, DsRecord, RrsigRecord
from .resolver import ResolverSelection, select_resolver

logger = logging.getLogger(__name__)

SIG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

# type_covered, algorithm, labels, original_ttl, expiration, inception, key_tag
_SIG_FIXED = struct.Struct("!HBBIIIH")

_SIGNATURE_TYPES = (dns.rdatatype.RRSIG, dns.rdatatype.SIG)


# ------------------------- record parsing -------------------------

def format_sig_time(ts: int) -> str:
    try:
        return datetime.fromtimestamp(int(ts), tz=timezone.utc).strftime(SIG_TIME_FORMAT)
    except (OverflowError, OSError, ValueError):
        return f"Invalid ({ts})"


def _b64(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def parse_dnskey(rdata: Any) -> DnskeyRecord:
    flags = int(rdata.flags)
    alg = int(rdata.algorithm)
    return DnskeyRecord(
        flags=flags,
        protocol=int(rdata.protocol),
        algorithm=alg,
        algorithm_name=algorithm_name(alg),
        public_key=_b64(rdata.key),
        key_tag=dns.dnssec.key_id(rdata),
        key_type=key_type(flags),
    )


def parse_ds(rdata: Any) -> DsRecord:
    alg = int(rdata.algorithm)
    dt = int(rdata.digest_type)
    return DsRecord(
        key_tag=int(rdata.key_tag),
        algorithm=alg,
        algorithm_name=algorithm_name(alg),
        digest_type=dt,
        digest_type_name=digest_type_name(dt),
        digest=bytes(rdata.digest).hex(),
    )


def parse_sig_wire(data: bytes) -> RrsigRecord:
    """
    Decode RRSIG/SIG rdata from its wire form.

    Used for record types dnspython hands back as generic rdata (legacy SIG).
    """
    data = bytes(data)
    if len(data) < _SIG_FIXED.size + 1:
        raise ParseError(f"signature rdata too short ({len(data)} bytes)")

    covered, alg, labels, ttl, expiration, inception, key_tag = _SIG_FIXED.unpack_from(data, 0)
    try:
        signer, used = dns.name.from_wire(data, _SIG_FIXED.size)
    except (dns.exception.DNSException, IndexError, ValueError) as e:
        raise ParseError(f"bad signer name in signature rdata: {e}") from e

    signature = data[_SIG_FIXED.size + used:]
    return RrsigRecord(
        type_covered=dns.rdatatype.to_text(covered),
        algorithm=alg,
        algorithm_name=algorithm_name(alg),
        labels=labels,
        original_ttl=ttl,
        signature_expiration=format_sig_time(expiration),
        signature_inception=format_sig_time(inception),
        key_tag=key_tag,
        signer_name=signer.to_text(),
        signature=_b64(signature),
    )


def parse_rrsig(rdata: Any) -> RrsigRecord:
    if not hasattr(rdata, "type_covered"):
        # GenericRdata: keep the raw bytes and decode by hand
        raw = getattr(rdata, "data", None)
        if raw is None:
            raise ParseError(f"unsupported signature rdata {type(rdata).__name__}")
        return parse_sig_wire(raw)

    alg = int(rdata.algorithm)
    return RrsigRecord(
        type_covered=dns.rdatatype.to_text(rdata.type_covered),
        algorithm=alg,
        algorithm_name=algorithm_name(alg),
        labels=int(rdata.labels),
        original_ttl=int(rdata.original_ttl),
        signature_expiration=format_sig_time(rdata.expiration),
        signature_inception=format_sig_time(rdata.inception),
        key_tag=int(rdata.key_tag),
        signer_name=rdata.signer.to_text(),
        signature=_b64(rdata.signature),
    )


def _collect(kind: str, rdatas: Iterable[Any], parse: Callable[[Any], Any]) -> List[Any]:
    out: List[Any] = []
    for rdata in rdatas:
        try:
            out.append(parse(rdata))
        except (ParseError, AttributeError, TypeError, ValueError, dns.exception.DNSException) as e:
            logger.warning("skipping malformed %s record: %s: %s", kind, type(e).__name__, e)
    return out


# ------------------------- inspector -------------------------

class DNSSECInspector:
    """
    Reports the DNSSEC material a domain advertises.

    Three lookups run concurrently (DNSKEY, DS, SOA+signatures). A failed
    lookup simply leaves its list empty; the verdict is derived only after
    all three have finished. This is a presence heuristic, no signature is
    cryptographically verified.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        lifetime: float = 5.0,
        resolver_factory: Optional[Callable[[Optional[str]], ResolverSelection]] = None,
    ) -> None:
        self.timeout = float(timeout)
        self.lifetime = float(lifetime)
        self._resolver_factory = resolver_factory or self._default_factory

    def _default_factory(self, nameserver: Optional[str]) -> ResolverSelection:
        return select_resolver(nameserver, timeout=self.timeout, lifetime=self.lifetime)

    async def inspect(self, domain: str, nameserver: Optional[str] = None) -> DnssecResult:
        domain = (domain or "").strip()
        if not domain:
            raise ValidationError("Empty domain provided.")

        # Rejected before any query is attempted
        selection = self._resolver_factory(nameserver)

        started = time.perf_counter()
        logger.debug("dnssec inspect %s via %s", domain, selection.nameserver)

        dnskeys, ds, rrsigs = await asyncio.gather(
            self._dnskey_records(selection, domain),
            self._ds_records(selection, domain),
            self._rrsig_records(selection, domain),
        )

        result = DnssecResult(
            domain=domain,
            nameserver=selection.nameserver,
            dnskey_records=dnskeys,
            ds_records=ds,
            rrsig_records=rrsigs,
        )
        result.finalize()
        result.response_time_ms = int((time.perf_counter() - started) * 1000)

        logger.info(
            "dnssec %s: %s (dnskey=%d ds=%d rrsig=%d, %dms)",
            domain,
            result.validation_status.value,
            len(dnskeys),
            len(ds),
            len(rrsigs),
            result.response_time_ms,
        )
        return result

    # ---- individual lookups ----

    @staticmethod
    async def _lookup(selection: ResolverSelection, domain: str, rdtype: str) -> Optional[Any]:
        try:
            return await selection.resolver.resolve(domain, rdtype)
        except (dns.exception.DNSException, OSError) as e:
            logger.debug("%s lookup for %s failed: %s: %s", rdtype, domain, type(e).__name__, e)
            return None

    async def _dnskey_records(self, selection: ResolverSelection, domain: str) -> List[DnskeyRecord]:
        answer = await self._lookup(selection, domain, "DNSKEY")
        if answer is None or answer.rrset is None:
            return []
        return _collect("DNSKEY", answer.rrset, parse_dnskey)

    async def _ds_records(self, selection: ResolverSelection, domain: str) -> List[DsRecord]:
        answer = await self._lookup(selection, domain, "DS")
        if answer is None or answer.rrset is None:
            return []
        return _collect("DS", answer.rrset, parse_ds)

    async def _rrsig_records(self, selection: ResolverSelection, domain: str) -> List[RrsigRecord]:
        answer = await self._lookup(selection, domain, "SOA")
        if answer is None or answer.response is None:
            return []

        out: List[RrsigRecord] = []
        for rrset in answer.response.answer:
            if rrset.rdtype not in _SIGNATURE_TYPES:
                continue
            out.extend(_collect(dns.rdatatype.to_text(rrset.rdtype), rrset, parse_rrsig))
        return out
