"""Resolve public identifiers (host or slug) to a published tenant."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_domains.config import settings
from storefront_domains.models.domain_binding import DomainBinding, DomainStatus, DomainType
from storefront_domains.schemas.storefront import DomainContext, PublicTenantContext
from storefront_domains.services import storefront_service
from storefront_domains.services.domain_service import get_primary_domain
from storefront_domains.services.subdomain_provisioner import subdomain_for
from storefront_domains.utils.hostname import normalize_host_header

logger = logging.getLogger(__name__)


async def _find_active_binding(db: AsyncSession, domain_name: str) -> DomainBinding | None:
    result = await db.execute(
        select(DomainBinding).where(
            DomainBinding.domain == domain_name,
            DomainBinding.status == DomainStatus.ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def _has_active_custom_domain(db: AsyncSession, tenant_id: UUID) -> bool:
    result = await db.execute(
        select(DomainBinding.id).where(
            DomainBinding.tenant_id == tenant_id,
            DomainBinding.domain_type == DomainType.CUSTOM,
            DomainBinding.status == DomainStatus.ACTIVE,
        ).limit(1)
    )
    return result.first() is not None


async def resolve_public_tenant(db: AsyncSession, identifier: str) -> PublicTenantContext | None:
    """
    Resolve a host header or tenant slug to a published tenant.

    Active domain bindings take precedence over slugs. Unknown and
    unpublished tenants both resolve to None. Reads persisted state
    only; never performs DNS lookups.

    Args:
        db: Database session
        identifier: Host header value, domain or tenant slug

    Returns:
        Tenant context, or None when nothing public matches
    """
    key = normalize_host_header(identifier)
    if not key:
        return None

    tenant = None
    current_domain = None

    binding = await _find_active_binding(db, key)
    if binding is not None:
        tenant = await storefront_service.get_tenant(db, binding.tenant_id)
        current_domain = binding.domain
    else:
        tenant = await storefront_service.get_tenant_by_slug(db, key)
        if tenant is not None:
            if (
                not settings.SLUG_FALLBACK_WITH_CUSTOM_DOMAIN
                and await _has_active_custom_domain(db, tenant.id)
            ):
                logger.debug(f"Slug lookup disabled for {key}: custom domain active")
                return None
            current_domain = subdomain_for(tenant.slug)

    if tenant is None:
        return None

    published = await storefront_service.get_published_settings(db, tenant.id)
    if published is None:
        return None

    primary = await get_primary_domain(db, tenant.id)
    canonical_host = primary.domain if primary is not None else current_domain

    return PublicTenantContext(
        tenant_id=tenant.id,
        tenant_slug=tenant.slug,
        tenant_name=tenant.name,
        domain=DomainContext(
            current=current_domain,
            canonical=f"https://{canonical_host}",
        ),
    )
