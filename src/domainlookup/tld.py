from __future__ import annotations

from .errors import InvalidDomainError


def normalize_domain(domain: str) -> str:
    return domain.strip().lower()


def candidate_tlds(domain: str) -> list[str]:
    """Lookup keys for a domain, most specific first.

    ``example.co.uk`` yields ``["co.uk", "uk"]``; ``example.com`` yields ``["com"]``.
    """
    labels = domain.split(".")
    if len(labels) < 2:
        raise InvalidDomainError(f"invalid domain: {domain}")
    keys: list[str] = []
    if len(labels) >= 3:
        keys.append(".".join(labels[-2:]))
    keys.append(labels[-1])
    return keys
