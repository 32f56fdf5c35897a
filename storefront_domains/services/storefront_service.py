"""Tenant and storefront settings lookups used by domain resolution."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_domains.exceptions import NotFoundError
from storefront_domains.models.tenant import StorefrontSettings, Tenant
from storefront_domains.services.subdomain_provisioner import ensure_subdomain

logger = logging.getLogger(__name__)


async def get_tenant(db: AsyncSession, tenant_id: UUID) -> Tenant | None:
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalar_one_or_none()


async def get_tenant_by_slug(db: AsyncSession, slug: str) -> Tenant | None:
    result = await db.execute(select(Tenant).where(Tenant.slug == slug.lower()))
    return result.scalar_one_or_none()


async def get_settings(db: AsyncSession, tenant_id: UUID) -> StorefrontSettings | None:
    result = await db.execute(
        select(StorefrontSettings).where(StorefrontSettings.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none()


async def get_published_settings(db: AsyncSession, tenant_id: UUID) -> StorefrontSettings | None:
    """Return settings only when the storefront is published."""
    result = await db.execute(
        select(StorefrontSettings).where(
            StorefrontSettings.tenant_id == tenant_id,
            StorefrontSettings.is_published.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def save_settings(
    db: AsyncSession,
    tenant_id: UUID,
    is_published: bool | None = None,
) -> StorefrontSettings:
    """
    Create or update a tenant's storefront settings.

    The first write also provisions the tenant's platform subdomain.

    Args:
        db: Database session
        tenant_id: Owning tenant
        is_published: New publish flag, or None to leave unchanged

    Returns:
        Saved settings

    Raises:
        NotFoundError: Unknown tenant
    """
    tenant = await get_tenant(db, tenant_id)
    if tenant is None:
        raise NotFoundError("Attraction not found")

    storefront = await get_settings(db, tenant_id)
    created = False

    if storefront is None:
        storefront = StorefrontSettings(tenant_id=tenant_id, is_published=False)
        try:
            async with db.begin_nested():
                db.add(storefront)
            created = True
        except IntegrityError:
            # First write raced with another request; update the winner
            storefront = await get_settings(db, tenant_id)
            if storefront is None:
                raise
            logger.info(f"Storefront settings for tenant {tenant_id} were created concurrently")

    if is_published is not None and is_published != storefront.is_published:
        storefront.is_published = is_published
        storefront.published_at = datetime.now(timezone.utc) if is_published else None
        logger.info(f"Storefront for tenant {tenant_id} {'published' if is_published else 'unpublished'}")

    await db.flush()

    if created:
        await ensure_subdomain(db, tenant.id, tenant.slug)

    await db.refresh(storefront)
    return storefront
