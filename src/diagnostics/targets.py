import ipaddress
import re
from typing import Optional

from .errors import ValidationError

# Invalid user input base error
class InvalidTarget(ValidationError):
    """Base error for invalid user input targets."""

# Invalid domain name
class InvalidDomain(InvalidTarget):
    """Raised when a target is not a valid domain/zone."""

# Normalize the user input by trimming white space and removing trailing dots and turning it into lower case.
def normalize_target(raw: str) -> str:
    return (raw or "").strip().rstrip(".").lower()

# Check to ensure the provided domain is a valid domain. Checks only format not existence
_LABEL = re.compile(r"^_?[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
def is_domain(s: str) -> bool:
    if not s or len(s) > 253 or any(c.isspace() for c in s):
        return False

    labels = s.split(".")
    if any(label == "" or len(label) > 63 for label in labels):
        return False

    return all(_LABEL.match(label) for label in labels)

def is_ip(s: str) -> bool:
    try:
        ipaddress.ip_address(s)
    except ValueError:
        return False
    return True

# normalizes text and checks to see if it is a domain
def require_domain(raw: str) -> str:
    s = normalize_target(raw)
    if not is_domain(s):
        raise InvalidDomain("Invalid domain format")
    return s

# TLS targets may also be bare IP literals
def require_host(raw: str) -> str:
    s = normalize_target(raw)
    if is_ip(s):
        return s
    return require_domain(s)

def require_port(raw: Optional[int], default: int = 443) -> int:
    if raw is None:
        return default
    try:
        port = int(raw)
    except (TypeError, ValueError):
        raise InvalidTarget(f"Invalid port: {raw!r}") from None
    if not 1 <= port <= 65535:
        raise InvalidTarget(f"Port out of range: {port}")
    return port

# Empty means "use the system resolver"; anything else must be an IP literal.
def require_nameserver(raw: Optional[str]) -> Optional[str]:
    s = (raw or "").strip()
    if not s:
        return None
    if not is_ip(s):
        raise InvalidTarget(f"Invalid DNS server address: {s}")
    return s
