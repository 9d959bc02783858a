from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd

from dnssec import DnssecResult
from sslcheck import SslCheckResult

DNSSEC_COLUMNS = [
    "domain",
    "nameserver",
    "dnssec_enabled",
    "validation_status",
    "dnskey_count",
    "ksk_count",
    "ds_count",
    "rrsig_count",
    "response_time_ms",
    "error",
]

SSL_COLUMNS = [
    "domain",
    "port",
    "connection_status",
    "cert_domain",
    "issuer",
    "valid_to",
    "days_remaining",
    "is_expired",
    "is_valid",
    "chain_length",
    "error",
]


class Reporter:
    """
    Turns inspection results into DataFrames for table/CSV output.
    Always one row per target, even when the inspection found nothing.
    """

    @staticmethod
    def dnssec_frame(results: Sequence[DnssecResult]) -> pd.DataFrame:
        rows: List[Dict[str, Any]] = []
        for r in results:
            rows.append(
                {
                    "domain": r.domain,
                    "nameserver": r.nameserver,
                    "dnssec_enabled": r.dnssec_enabled,
                    "validation_status": r.validation_status.value,
                    "dnskey_count": len(r.dnskey_records),
                    "ksk_count": sum(1 for k in r.dnskey_records if k.key_type == "KSK"),
                    "ds_count": len(r.ds_records),
                    "rrsig_count": len(r.rrsig_records),
                    "response_time_ms": r.response_time_ms,
                    "error": r.error,
                }
            )
        return pd.DataFrame(rows, columns=DNSSEC_COLUMNS)

    @staticmethod
    def ssl_frame(results: Sequence[SslCheckResult]) -> pd.DataFrame:
        rows: List[Dict[str, Any]] = []
        for r in results:
            info = r.cert_info
            rows.append(
                {
                    "domain": r.domain,
                    "port": r.port,
                    "connection_status": r.connection_status.value,
                    "cert_domain": info.domain if info else None,
                    "issuer": info.issuer if info else None,
                    "valid_to": info.valid_to if info else None,
                    "days_remaining": info.days_remaining if info else None,
                    "is_expired": info.is_expired if info else None,
                    "is_valid": info.is_valid if info else None,
                    "chain_length": len(info.certificate_chain) if info else 0,
                    "error": r.error,
                }
            )
        return pd.DataFrame(rows, columns=SSL_COLUMNS)
