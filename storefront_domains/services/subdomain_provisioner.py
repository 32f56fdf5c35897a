"""Platform subdomain provisioning."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_domains.config import settings
from storefront_domains.exceptions import ValidationError
from storefront_domains.models.domain_binding import (
    DomainBinding,
    DomainStatus,
    DomainType,
    SslStatus,
)
from storefront_domains.services.domain_service import lock_tenant_bindings
from storefront_domains.utils.hostname import normalize_hostname, validate_hostname

logger = logging.getLogger(__name__)


def subdomain_for(tenant_slug: str) -> str:
    """Platform hostname for a tenant slug."""
    return normalize_hostname(f"{tenant_slug}.{settings.PLATFORM_DOMAIN_SUFFIX}")


def _new_subdomain(tenant_id: UUID, domain_name: str, is_primary: bool) -> DomainBinding:
    return DomainBinding(
        tenant_id=tenant_id,
        domain=domain_name,
        domain_type=DomainType.SUBDOMAIN,
        is_primary=is_primary,
        status=DomainStatus.ACTIVE,
        ssl_status=SslStatus.ACTIVE,
        verified_at=datetime.now(timezone.utc),
    )


async def get_subdomain(db: AsyncSession, tenant_id: UUID) -> DomainBinding | None:
    result = await db.execute(
        select(DomainBinding).where(
            DomainBinding.tenant_id == tenant_id,
            DomainBinding.domain_type == DomainType.SUBDOMAIN,
        )
    )
    return result.scalar_one_or_none()


async def ensure_subdomain(db: AsyncSession, tenant_id: UUID, tenant_slug: str) -> DomainBinding:
    """
    Create the tenant's platform subdomain if it does not exist yet.

    The platform controls this zone, so the binding is born active. It
    becomes primary unless the tenant already has a primary domain.

    Args:
        db: Database session
        tenant_id: Owning tenant
        tenant_slug: Tenant slug, used as the subdomain label

    Returns:
        Existing or newly created subdomain binding

    Raises:
        ValidationError: Slug does not form a valid hostname
    """
    existing = await get_subdomain(db, tenant_id)
    if existing is not None:
        return existing

    domain_name = subdomain_for(tenant_slug)
    is_valid, error_msg = validate_hostname(domain_name)
    if not is_valid:
        raise ValidationError(
            f"Attraction slug cannot be used as a subdomain: {error_msg}",
            details={"slug": tenant_slug},
        )

    # Serialized with set_primary_domain through the tenant row locks
    bindings = await lock_tenant_bindings(db, tenant_id)
    has_primary = any(b.is_primary for b in bindings)

    binding = _new_subdomain(tenant_id, domain_name, is_primary=not has_primary)
    try:
        async with db.begin_nested():
            db.add(binding)
    except IntegrityError:
        winner = await get_subdomain(db, tenant_id)
        if winner is not None:
            logger.info(f"Subdomain for tenant {tenant_id} was provisioned concurrently")
            return winner
        if not binding.is_primary:
            raise
        # Another binding became primary after the check
        logger.info(f"Primary for tenant {tenant_id} changed concurrently, provisioning subdomain as secondary")
        binding = _new_subdomain(tenant_id, domain_name, is_primary=False)
        async with db.begin_nested():
            db.add(binding)

    await db.refresh(binding)

    logger.info(f"Provisioned subdomain {binding.domain} for tenant {tenant_id}")
    return binding
