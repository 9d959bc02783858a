from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import dns.asyncresolver
import dns.flags
import dns.resolver

from diagnostics.errors import ValidationError

logger = logging.getLogger(__name__)

SYSTEM_DEFAULT = "System Default"
DNS_PORT = 53
EDNS_PAYLOAD = 1232


@dataclass
class ResolverSelection:
    """Which resolver services a lookup, and how to report it."""

    resolver: dns.asyncresolver.Resolver
    nameserver: str


def _nameserver_addresses(resolver: dns.resolver.BaseResolver) -> List[str]:
    # dnspython may hand back plain strings or Nameserver objects here
    out: List[str] = []
    for ns in resolver.nameservers:
        address: Any = ns if isinstance(ns, str) else getattr(ns, "address", None)
        if address:
            out.append(str(address))
    return out


def _system_resolver() -> dns.asyncresolver.Resolver:
    try:
        return dns.asyncresolver.Resolver(configure=True)
    except dns.resolver.NoResolverConfiguration:
        logger.warning("no system resolver configuration found; lookups will fail")
        return dns.asyncresolver.Resolver(configure=False)


def select_resolver(
    nameserver: Optional[str],
    timeout: float = 5.0,
    lifetime: float = 5.0,
) -> ResolverSelection:
    """
    Build the resolver for one inspection.

    None or "" -> system resolver(s), reported as their comma-joined IPs (or
    "System Default" when none are configured). Anything else must be an IP
    literal and is queried on port 53; otherwise ValidationError.
    """
    ns = (nameserver or "").strip()

    if ns:
        try:
            ipaddress.ip_address(ns)
        except ValueError:
            raise ValidationError(f"Invalid DNS server address: {ns}") from None
        resolver = dns.asyncresolver.Resolver(configure=False)
        resolver.nameservers = [ns]
        resolver.port = DNS_PORT
        reported = ns
    else:
        resolver = _system_resolver()
        addresses = _nameserver_addresses(resolver)
        reported = ", ".join(addresses) if addresses else SYSTEM_DEFAULT

    resolver.timeout = float(timeout)
    resolver.lifetime = float(lifetime)
    # DO bit so signatures come back alongside the answers
    resolver.use_edns(0, dns.flags.DO, EDNS_PAYLOAD)

    return ResolverSelection(resolver=resolver, nameserver=reported)
