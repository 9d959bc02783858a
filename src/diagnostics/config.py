from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ValidationError

ENV_PREFIX = "TRUST_DIAG_"


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValidationError(f"{ENV_PREFIX}{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """
    Runtime knobs, read from TRUST_DIAG_* environment variables.

    Timeouts are in seconds. The TLS defaults match the inspector's contract
    (10s connect/handshake, 5s for the plain-HTTP fallback probe).
    """

    dns_timeout: float = 5.0
    dns_lifetime: float = 5.0
    tls_connect_timeout: float = 10.0
    http_probe_timeout: float = 5.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            dns_timeout=_float_env(env, "DNS_TIMEOUT", cls.dns_timeout),
            dns_lifetime=_float_env(env, "DNS_LIFETIME", cls.dns_lifetime),
            tls_connect_timeout=_float_env(env, "TLS_CONNECT_TIMEOUT", cls.tls_connect_timeout),
            http_probe_timeout=_float_env(env, "HTTP_PROBE_TIMEOUT", cls.http_probe_timeout),
            log_level=(env.get(ENV_PREFIX + "LOG_LEVEL") or cls.log_level).strip().upper(),
        )
