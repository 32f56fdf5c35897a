"""Shared FastAPI dependencies."""

from functools import lru_cache

from storefront_domains.services.dns_verifier import DNSVerifier


@lru_cache
def _default_verifier() -> DNSVerifier:
    return DNSVerifier()


def get_dns_verifier() -> DNSVerifier:
    """DNS verifier used by the verify endpoint. Overridden in tests."""
    return _default_verifier()
