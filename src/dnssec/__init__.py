"""
DNSSEC inspection.

Public entrypoint: DNSSECInspector (async). Resolver selection lives in
dnssec.resolver; record models in dnssec.models.
"""

from .inspector import DNSSECInspector
from .models import DnskeyRecord, DnssecResult, DsRecord, RrsigRecord, ValidationStatus
from .resolver import SYSTEM_DEFAULT, ResolverSelection, select_resolver

__all__ = [
    "DNSSECInspector",
    "DnskeyRecord",
    "DnssecResult",
    "DsRecord",
    "ResolverSelection",
    "RrsigRecord",
    "SYSTEM_DEFAULT",
    "ValidationStatus",
    "select_resolver",
]
