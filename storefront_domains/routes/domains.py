"""Operator API routes for storefront domains."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_domains.database import get_session
from storefront_domains.dependencies import get_dns_verifier
from storefront_domains.exceptions import DomainError, VerificationFailedError
from storefront_domains.models.domain_binding import DomainBinding
from storefront_domains.schemas.common import raise_domain_error
from storefront_domains.schemas.domain import (
    AddDomainRequest,
    DomainItem,
    DomainListResponse,
    DomainResponse,
    SetPrimaryResponse,
)
from storefront_domains.services import domain_service
from storefront_domains.services.dns_verifier import DNSVerifier

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_item(binding: DomainBinding, include_verification: bool = False) -> DomainItem:
    item = DomainItem.model_validate(binding)
    if include_verification:
        item.verification = domain_service.build_verification_instructions(binding)
    return item


@router.get("/tenants/{tenant_id}/storefront/domains", response_model=DomainListResponse)
async def list_domains(
    tenant_id: UUID,
    db: AsyncSession = Depends(get_session),
) -> DomainListResponse:
    """
    List the storefront's domains, primary first.

    Pending and failed custom domains include the DNS record that must
    be published to verify them.
    """
    bindings = await domain_service.list_domains(db, tenant_id)
    return DomainListResponse(
        domains=[_to_item(b, include_verification=not b.is_active) for b in bindings],
    )


@router.post(
    "/tenants/{tenant_id}/storefront/domains",
    response_model=DomainResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_domain(
    tenant_id: UUID,
    request: AddDomainRequest,
    db: AsyncSession = Depends(get_session),
) -> DomainResponse:
    """
    Add a custom domain to the storefront.

    **Request Body:**
    ```json
    { "domain": "nightmaremanor.com", "verification_method": "dns_txt" }
    ```

    **Response:**
    - The pending domain with verification instructions

    **DNS Records Required:**
    - `dns_txt`: TXT record at `_haunt-verify.<domain>` with the token
    - `dns_cname`: CNAME record at `<domain>` pointing to the platform target

    **Errors:**
    - 400 `DOMAIN_VALIDATION_FAILED`: malformed domain
    - 409 `DOMAIN_CONFLICT`: already added here, or registered to another attraction
    """
    try:
        binding = await domain_service.add_domain(
            db,
            tenant_id,
            request.domain,
            request.verification_method,
        )
    except DomainError as e:
        raise_domain_error(e)

    return DomainResponse(domain=_to_item(binding, include_verification=True))


@router.post(
    "/tenants/{tenant_id}/storefront/domains/{domain_id}/verify",
    response_model=DomainResponse,
)
async def verify_domain(
    tenant_id: UUID,
    domain_id: UUID,
    db: AsyncSession = Depends(get_session),
    verifier: DNSVerifier = Depends(get_dns_verifier),
) -> DomainResponse:
    """
    Check the domain's DNS proof and activate it.

    Already active domains are returned without a DNS query. A failed
    check marks the domain `failed`; call again once DNS has propagated.
    """
    try:
        binding = await domain_service.verify_domain(db, tenant_id, domain_id, verifier)
    except VerificationFailedError as e:
        # Keep the failed status even though the request errors
        await db.commit()
        raise_domain_error(e)
    except DomainError as e:
        raise_domain_error(e)

    return DomainResponse(domain=_to_item(binding))


@router.post(
    "/tenants/{tenant_id}/storefront/domains/{domain_id}/set-primary",
    response_model=SetPrimaryResponse,
)
async def set_primary_domain(
    tenant_id: UUID,
    domain_id: UUID,
    db: AsyncSession = Depends(get_session),
) -> SetPrimaryResponse:
    """Make an active domain the storefront's canonical domain."""
    try:
        await domain_service.set_primary_domain(db, tenant_id, domain_id)
    except DomainError as e:
        raise_domain_error(e)

    return SetPrimaryResponse()


@router.delete(
    "/tenants/{tenant_id}/storefront/domains/{domain_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_domain(
    tenant_id: UUID,
    domain_id: UUID,
    db: AsyncSession = Depends(get_session),
) -> Response:
    """
    Remove a custom domain.

    **Response:**
    - 204 No Content: Domain removed
    - 400: Auto-generated subdomain, or primary while other domains exist
    - 404: Domain not found for this storefront
    """
    try:
        await domain_service.delete_domain(db, tenant_id, domain_id)
    except DomainError as e:
        raise_domain_error(e)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
