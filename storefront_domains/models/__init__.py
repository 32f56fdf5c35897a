"""SQLAlchemy models."""

from storefront_domains.models.domain_binding import (
    DomainBinding,
    DomainStatus,
    DomainType,
    SslStatus,
    VerificationMethod,
)
from storefront_domains.models.tenant import StorefrontSettings, Tenant

__all__ = [
    "DomainBinding",
    "DomainStatus",
    "DomainType",
    "SslStatus",
    "VerificationMethod",
    "StorefrontSettings",
    "Tenant",
]
