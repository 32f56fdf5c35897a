"""Storefront settings and public resolution routes."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_domains.database import get_session
from storefront_domains.exceptions import DomainError
from storefront_domains.schemas.common import raise_api_error, raise_domain_error
from storefront_domains.schemas.storefront import (
    PublicTenantContext,
    SettingsResponse,
    UpdateSettingsRequest,
)
from storefront_domains.services import storefront_service, tenant_resolver

logger = logging.getLogger(__name__)

router = APIRouter()

PUBLIC_CACHE_CONTROL = "public, max-age=60, stale-while-revalidate=30"


@router.patch("/tenants/{tenant_id}/storefront", response_model=SettingsResponse)
async def update_settings(
    tenant_id: UUID,
    request: UpdateSettingsRequest,
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    """
    Create or update storefront settings.

    The first save provisions the attraction's platform subdomain.
    """
    try:
        storefront = await storefront_service.save_settings(
            db,
            tenant_id,
            is_published=request.is_published,
        )
    except DomainError as e:
        raise_domain_error(e)

    return SettingsResponse.model_validate(storefront)


@router.get("/storefronts/{identifier}", response_model=PublicTenantContext)
async def get_public_storefront(
    identifier: str,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> PublicTenantContext:
    """
    Resolve a public storefront by domain or attraction slug.

    Unknown and unpublished storefronts return the same 404 so the
    response does not reveal which domains exist.
    """
    context = await tenant_resolver.resolve_public_tenant(db, identifier)
    if context is None:
        raise_api_error(
            code="STOREFRONT_NOT_FOUND",
            message="Storefront not found or not published",
            status_code=status.HTTP_404_NOT_FOUND,
        )

    response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
    return context
