from __future__ import annotations

from typing import Iterable, Optional


def matches_domain(query: str, pattern: str) -> bool:
    """
    Case-insensitive name match with single-level wildcards.

    "*.example.com" matches "foo.example.com" but neither
    "foo.bar.example.com" nor "example.com".
    """
    q = (query or "").lower()
    p = (pattern or "").lower()
    if not q or not p:
        return False

    if q == p:
        return True

    if p.startswith("*."):
        suffix = p[1:]  # ".example.com"
        if q.endswith(suffix):
            label = q[: -len(suffix)]
            return bool(label) and "." not in label
    return False


def check_domain_match(query: str, common_name: Optional[str], san: Iterable[str]) -> bool:
    if common_name and matches_domain(query, common_name):
        return True
    return any(matches_domain(query, name) for name in san)
